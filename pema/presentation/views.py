import logging

from django.conf import settings
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from pema.core import relatorios
from pema.core.exceptions import PersistenciaError
from pema.infrastructure.repositories import PersistenciaDjango

from .serializers import (
    PedidoConcluidoSerializer,
    PeriodoSerializer,
    ProdutoSerializer,
    RelatorioVendasSerializer,
)

logger = logging.getLogger(__name__)


# ====================================================================
# VIEWS: Consultas somente leitura sobre o armazenamento do PDV.
# ====================================================================

# -- Instância da Persistência (dependência) --
persistencia = PersistenciaDjango()


def _erro_persistencia(e: PersistenciaError):
    logger.error("Falha ao ler o armazenamento do PDV: %s", e.message)
    return Response({'message': e.message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class ProdutosAPIView(APIView):
    """Lista os produtos ativos do catálogo, na ordem em que são exibidos no terminal."""

    @extend_schema(responses=ProdutoSerializer(many=True))
    def get(self, request):
        try:
            produtos = [p for p in persistencia.carregar_catalogo() if p.ativo]
        except PersistenciaError as e:
            return _erro_persistencia(e)
        return Response(ProdutoSerializer(produtos, many=True).data)


class PedidosAPIView(APIView):
    """
    Histórico de vendas concluídas, da mais recente para a mais antiga.
    Aceita os mesmos filtros de período do relatório.
    """

    @extend_schema(parameters=[PeriodoSerializer], responses=PedidoConcluidoSerializer(many=True))
    def get(self, request):
        filtro = PeriodoSerializer(data=request.query_params)
        if not filtro.is_valid():
            return Response(filtro.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            pedidos = persistencia.carregar_pedidos_concluidos()
        except PersistenciaError as e:
            return _erro_persistencia(e)

        fuso = timezone.get_current_timezone()
        periodo = filtro.to_intervalo(timezone.localdate())
        filtrados = relatorios.filtrar_por_periodo(pedidos, periodo, fuso)
        return Response(PedidoConcluidoSerializer(relatorios.historico_recente(filtrados), many=True).data)


class RelatorioVendasAPIView(APIView):
    """Relatório consolidado: resumo, vendas por dia, por local, por forma de pagamento e ranking."""

    @extend_schema(parameters=[PeriodoSerializer], responses=RelatorioVendasSerializer)
    def get(self, request):
        filtro = PeriodoSerializer(data=request.query_params)
        if not filtro.is_valid():
            return Response(filtro.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            pedidos = persistencia.carregar_pedidos_concluidos()
        except PersistenciaError as e:
            return _erro_persistencia(e)

        relatorio = relatorios.gerar_relatorio(
            pedidos,
            periodo=filtro.to_intervalo(timezone.localdate()),
            fuso=timezone.get_current_timezone(),
            rotulo_sem_local=settings.LOCAL_PADRAO_RELATORIO,
        )
        return Response(RelatorioVendasSerializer(relatorio).data)
