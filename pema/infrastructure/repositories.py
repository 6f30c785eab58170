"""
Camada de Infraestrutura: Implementação da Persistência e do Relógio.

Esta camada traduz as operações abstratas definidas nas Portas da Core
em chamadas concretas ao framework (Django ORM).
"""
import logging
import uuid
from datetime import datetime
from typing import List

from django.apps import apps
from django.db import transaction
from django.utils import timezone

from pema.core.entities import PedidoConcluido, Produto
from pema.core.ports import IPersistencia, IRelogio

from .mappers import (
    PedidoConcluidoMapper,
    ProdutoMapper,
    converter_lista,
)

logger = logging.getLogger(__name__)


# Helper para Lazy Loading
def get_model(app_label, model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# 1. PERSISTÊNCIA (Implementação Django ORM)
# ====================================================================

class PersistenciaDjango(IPersistencia):
    """Guarda cada coleção como um documento JSON em RegistroArmazenado."""

    @property
    def RegistroModel(self):
        return get_model('infrastructure', 'RegistroArmazenado')

    def _ler(self, chave: str) -> list:
        registro = self.RegistroModel.objects.filter(chave=chave).first()
        return registro.valor if registro else []

    @transaction.atomic
    def _gravar(self, chave: str, valor: list):
        self.RegistroModel.objects.update_or_create(chave=chave, defaults={'valor': valor})
        logger.debug("Registro '%s' gravado com %d itens", chave, len(valor))

    # --- Vendas concluídas ---

    def carregar_pedidos_concluidos(self) -> List[PedidoConcluido]:
        chave = self.RegistroModel.CHAVE_PEDIDOS
        return converter_lista(self._ler(chave), PedidoConcluidoMapper.to_entity, chave)

    def salvar_pedidos_concluidos(self, pedidos: List[PedidoConcluido]) -> None:
        self._gravar(self.RegistroModel.CHAVE_PEDIDOS, [PedidoConcluidoMapper.to_dict(p) for p in pedidos])

    # --- Histórico de códigos ---

    def carregar_historico(self) -> List[str]:
        chave = self.RegistroModel.CHAVE_HISTORICO
        return converter_lista(self._ler(chave), str, chave)

    def salvar_historico(self, codigos: List[str]) -> None:
        self._gravar(self.RegistroModel.CHAVE_HISTORICO, list(codigos))

    # --- Catálogo ---

    def carregar_catalogo(self) -> List[Produto]:
        chave = self.RegistroModel.CHAVE_CATALOGO
        return converter_lista(self._ler(chave), ProdutoMapper.to_entity, chave)

    def salvar_catalogo(self, produtos: List[Produto]) -> None:
        self._gravar(self.RegistroModel.CHAVE_CATALOGO, [ProdutoMapper.to_dict(p) for p in produtos])


# ====================================================================
# 2. RELÓGIO E GERADOR DE IDs
# ====================================================================

class RelogioSistema(IRelogio):
    """Hora atual do Django (com fuso quando USE_TZ) e ids UUID4."""

    def agora(self) -> datetime:
        return timezone.now()

    def novo_id(self) -> str:
        return str(uuid.uuid4())
