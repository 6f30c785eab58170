# pema/core/cart_manager.py
# Gerencia a manipulação do pedido em andamento no terminal.

import logging
from decimal import Decimal
from typing import Callable, List, Tuple

from pema.core.entities import ItemPedido, Produto

logger = logging.getLogger(__name__)

OuvinteCarrinho = Callable[[Tuple[ItemPedido, ...]], None]


class CartManager:
    """
    Gerencia a lógica do carrinho do terminal. Os itens só mudam pelos métodos
    add_item, set_quantity e clear; a lista interna nunca é exposta.
    """

    def __init__(self):
        self._itens: List[ItemPedido] = []
        self._ouvintes: List[OuvinteCarrinho] = []

    # --- Notificação ---

    def inscrever(self, ouvinte: OuvinteCarrinho) -> Callable[[], None]:
        """Registra um ouvinte chamado após cada mudança. Retorna a função de cancelamento."""
        self._ouvintes.append(ouvinte)

        def cancelar():
            if ouvinte in self._ouvintes:
                self._ouvintes.remove(ouvinte)

        return cancelar

    def _notificar(self):
        snapshot = self.itens
        for ouvinte in list(self._ouvintes):
            ouvinte(snapshot)

    # --- Métodos de Manipulação ---

    def add_item(self, produto: Produto):
        """Adiciona uma unidade do produto, criando o item se ainda não existir."""
        item = self._buscar(produto.codigo)
        if item:
            item.quantidade += 1
        else:
            self._itens.append(ItemPedido(produto=produto, quantidade=1))
        self._notificar()

    def set_quantity(self, codigo: str, nova_quantidade: int):
        """
        Define a quantidade de um item existente. Quantidade <= 0 remove o item.
        Código ausente é ignorado.
        """
        item = self._buscar(codigo)
        if item is None:
            logger.debug("set_quantity ignorado: código %s não está no carrinho", codigo)
            return

        if nova_quantidade <= 0:
            self._itens = [i for i in self._itens if i.produto.codigo != codigo]
        elif item.quantidade == nova_quantidade:
            return
        else:
            item.quantidade = nova_quantidade
        self._notificar()

    def clear(self):
        """Esvazia o carrinho (usado após a venda ser concluída)."""
        if not self._itens:
            return
        self._itens = []
        self._notificar()

    # --- Métodos de Consulta ---

    def total(self) -> Decimal:
        """Total exato do pedido: soma de preço x quantidade."""
        return sum((item.subtotal for item in self._itens), Decimal('0'))

    @property
    def itens(self) -> Tuple[ItemPedido, ...]:
        """Cópia dos itens; alterá-la não afeta o carrinho."""
        return tuple(item.copiar() for item in self._itens)

    def codigos(self) -> List[str]:
        return [item.produto.codigo for item in self._itens]

    def total_unidades(self) -> int:
        return sum(item.quantidade for item in self._itens)

    def is_empty(self) -> bool:
        return not self._itens

    def _buscar(self, codigo: str):
        return next((item for item in self._itens if item.produto.codigo == codigo), None)
