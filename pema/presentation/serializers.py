from rest_framework import serializers

from pema.core import relatorios
from pema.core.entities import IntervaloDatas
from pema.core.exceptions import DadosInvalidosError

# Valores monetários saem como texto (COERCE_DECIMAL_TO_STRING) para não perder precisão.
MAX_DIGITOS = 14


def _dinheiro(**kwargs):
    return serializers.DecimalField(max_digits=MAX_DIGITOS, decimal_places=2, read_only=True, **kwargs)


class ProdutoSerializer(serializers.Serializer):
    codigo = serializers.CharField(read_only=True)
    categoria = serializers.CharField(read_only=True)
    descricao = serializers.CharField(read_only=True)
    preco = _dinheiro()
    ativo = serializers.BooleanField(read_only=True)
    url_imagem = serializers.CharField(read_only=True, allow_null=True)


# ====================================================================
# SERIALIZERS PARA AS VENDAS CONCLUÍDAS
# ====================================================================

class ItemPedidoSerializer(serializers.Serializer):
    """Item vendido com o produto aninhado e o subtotal calculado."""
    produto = ProdutoSerializer(read_only=True)
    quantidade = serializers.IntegerField(read_only=True)
    subtotal = _dinheiro()


class PedidoConcluidoSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    data = serializers.DateTimeField(read_only=True)
    itens = ItemPedidoSerializer(many=True, read_only=True)
    total = _dinheiro()
    forma_pagamento = serializers.CharField(source='forma_pagamento.value', read_only=True)
    local = serializers.CharField(read_only=True, allow_null=True)
    valor_recebido = _dinheiro(allow_null=True)
    troco = _dinheiro(allow_null=True)


# ====================================================================
# SERIALIZER PARA O FILTRO DE PERÍODO
# ====================================================================

class PeriodoSerializer(serializers.Serializer):
    """
    Valida os parâmetros de consulta do período: um intervalo explícito
    (`de` e opcionalmente `ate`) ou um atalho (`periodo`). Sem nada, vale
    todo o histórico.
    """
    PERIODOS = [
        ('hoje', 'Hoje'),
        ('mes', 'Este mês'),
        ('ano', 'Este ano'),
    ]

    de = serializers.DateField(required=False)
    ate = serializers.DateField(required=False)
    periodo = serializers.ChoiceField(choices=PERIODOS, required=False)

    def validate(self, attrs):
        if attrs.get('periodo') and (attrs.get('de') or attrs.get('ate')):
            raise serializers.ValidationError("Informe um atalho de período ou um intervalo de datas, não ambos.")
        if attrs.get('ate') and not attrs.get('de'):
            raise serializers.ValidationError({'de': "A data inicial é obrigatória quando a final é informada."})
        if attrs.get('de') and attrs.get('ate') and attrs['ate'] < attrs['de']:
            raise serializers.ValidationError({'ate': "A data final não pode ser anterior à data inicial."})
        return attrs

    def to_intervalo(self, hoje):
        """Converte os dados validados em IntervaloDatas (ou None para todo o histórico)."""
        periodo = self.validated_data.get('periodo')
        if periodo == 'hoje':
            return relatorios.periodo_hoje(hoje)
        if periodo == 'mes':
            return relatorios.periodo_mes(hoje)
        if periodo == 'ano':
            return relatorios.periodo_ano(hoje)

        inicio = self.validated_data.get('de')
        if inicio is None:
            return None
        try:
            return IntervaloDatas(inicio=inicio, fim=self.validated_data.get('ate'))
        except DadosInvalidosError as e:
            raise serializers.ValidationError(e.message)


# ====================================================================
# SERIALIZERS PARA O RELATÓRIO DE VENDAS
# ====================================================================

class IntervaloDatasSerializer(serializers.Serializer):
    inicio = serializers.DateField(read_only=True)
    fim = serializers.DateField(source='ultimo_dia', read_only=True)


class ResumoVendasSerializer(serializers.Serializer):
    faturamento = _dinheiro()
    quantidade_pedidos = serializers.IntegerField(read_only=True)
    itens_vendidos = serializers.IntegerField(read_only=True)
    ticket_medio = _dinheiro()


class VendaDiaSerializer(serializers.Serializer):
    dia = serializers.DateField(read_only=True)
    total = _dinheiro()


class VendaLocalSerializer(serializers.Serializer):
    local = serializers.CharField(read_only=True)
    total = _dinheiro()


class ProdutoVendidoSerializer(serializers.Serializer):
    produto = ProdutoSerializer(read_only=True)
    quantidade = serializers.IntegerField(read_only=True)


class VendaFormaPagamentoSerializer(serializers.Serializer):
    forma_pagamento = serializers.CharField(source='forma_pagamento.value', read_only=True)
    rotulo = serializers.CharField(source='forma_pagamento.rotulo', read_only=True)
    total = _dinheiro()
    quantidade_pedidos = serializers.IntegerField(read_only=True)


class RelatorioVendasSerializer(serializers.Serializer):
    periodo = IntervaloDatasSerializer(read_only=True, allow_null=True)
    resumo = ResumoVendasSerializer(read_only=True)
    por_dia = VendaDiaSerializer(many=True, read_only=True)
    por_local = VendaLocalSerializer(many=True, read_only=True)
    mais_vendidos = ProdutoVendidoSerializer(many=True, read_only=True)
    por_forma_pagamento = VendaFormaPagamentoSerializer(many=True, read_only=True)
    pedidos = PedidoConcluidoSerializer(many=True, read_only=True)
