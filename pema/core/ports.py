# pema/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Estes protocolos definem o contrato que a camada de Infraestrutura (Repositorios, Gateways)
DEVE seguir para se conectar à camada Core (Carrinho, Checkout, Sugestões).
"""

from typing import Protocol, List
from abc import abstractmethod
from datetime import datetime

from pema.core.entities import Produto, PedidoConcluido, Sugestao


# ====================================================================
# 1. PERSISTÊNCIA (Armazenamento chave-valor durável)
# ====================================================================

class IPersistencia(Protocol):
    """
    Protocolo para o armazenamento do catálogo, das vendas concluídas e do
    histórico de códigos usado nas sugestões. Chamadas síncronas: uma leitura
    reflete o último salvamento feito pela mesma sessão.
    """

    @abstractmethod
    def carregar_pedidos_concluidos(self) -> List[PedidoConcluido]: ...

    @abstractmethod
    def salvar_pedidos_concluidos(self, pedidos: List[PedidoConcluido]) -> None: ...

    @abstractmethod
    def carregar_historico(self) -> List[str]: ...

    @abstractmethod
    def salvar_historico(self, codigos: List[str]) -> None: ...

    @abstractmethod
    def carregar_catalogo(self) -> List[Produto]: ...

    @abstractmethod
    def salvar_catalogo(self, produtos: List[Produto]) -> None: ...


# ====================================================================
# 2. GATEWAYS (Portas de Serviços Externos)
# ====================================================================

class IRecomendador(Protocol):
    """Protocolo para o serviço externo que sugere o próximo produto."""

    @abstractmethod
    async def sugerir_proximo(self, pedido_atual: List[str], historico: List[str]) -> Sugestao:
        """Retorna uma Sugestao ou levanta exceção em caso de falha."""
        ...


class IRelogio(Protocol):
    """Protocolo para a fonte de tempo e de identificadores únicos."""

    @abstractmethod
    def agora(self) -> datetime: ...

    @abstractmethod
    def novo_id(self) -> str: ...
