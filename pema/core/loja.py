# pema/core/loja.py
"""
Estado da loja para uma sessão de terminal: catálogo, vendas concluídas e
histórico de códigos vendidos. Toda leitura e escrita durável passa pela
porta IPersistencia injetada; não há estado global de módulo.
"""
import logging
from typing import List, Optional, Tuple

from pema.core.entities import PedidoConcluido, Produto
from pema.core.ports import IPersistencia

logger = logging.getLogger(__name__)


class Loja:
    """Armazém em memória da sessão, sincronizado com a persistência a cada escrita."""

    def __init__(self, persistencia: IPersistencia):
        self.persistencia = persistencia
        self._catalogo: List[Produto] = list(persistencia.carregar_catalogo())
        self._pedidos: List[PedidoConcluido] = list(persistencia.carregar_pedidos_concluidos())
        self._historico: List[str] = list(persistencia.carregar_historico())
        logger.info(
            "Loja carregada: %d produtos, %d vendas, %d códigos no histórico",
            len(self._catalogo), len(self._pedidos), len(self._historico),
        )

    # --- Catálogo ---

    @property
    def catalogo(self) -> Tuple[Produto, ...]:
        return tuple(self._catalogo)

    def produtos_ativos(self) -> List[Produto]:
        return [p for p in self._catalogo if p.ativo]

    def buscar_produto_ativo(self, codigo: str) -> Optional[Produto]:
        return next((p for p in self._catalogo if p.ativo and p.codigo == codigo), None)

    def categorias(self) -> List[str]:
        return sorted({p.categoria for p in self._catalogo})

    def salvar_produto(self, produto: Produto) -> Produto:
        """Atualiza o produto de mesmo código ou insere o novo no início do catálogo."""
        if any(p.codigo == produto.codigo for p in self._catalogo):
            novo_catalogo = [produto if p.codigo == produto.codigo else p for p in self._catalogo]
        else:
            novo_catalogo = [produto] + self._catalogo
        self.persistencia.salvar_catalogo(novo_catalogo)
        self._catalogo = novo_catalogo
        logger.info("Produto %s salvo no catálogo", produto.codigo)
        return produto

    def excluir_produto(self, codigo: str):
        novo_catalogo = [p for p in self._catalogo if p.codigo != codigo]
        if len(novo_catalogo) == len(self._catalogo):
            return
        self.persistencia.salvar_catalogo(novo_catalogo)
        self._catalogo = novo_catalogo
        logger.info("Produto %s excluído do catálogo", codigo)

    # --- Vendas e histórico ---

    @property
    def pedidos(self) -> Tuple[PedidoConcluido, ...]:
        return tuple(self._pedidos)

    @property
    def historico(self) -> Tuple[str, ...]:
        return tuple(self._historico)

    def registrar_venda(self, pedido: PedidoConcluido):
        """
        Acrescenta a venda às vendas concluídas e os seus códigos ao histórico.
        A falha ao gravar a venda é propagada; a falha ao gravar o histórico
        apenas é registrada em log, pois a venda já foi persistida.
        """
        pedidos = self._pedidos + [pedido]
        self.persistencia.salvar_pedidos_concluidos(pedidos)
        self._pedidos = pedidos

        historico = self._historico + list(pedido.codigos)
        try:
            self.persistencia.salvar_historico(historico)
        except Exception:
            logger.exception("Falha ao gravar o histórico de códigos da venda %s", pedido.id)
            return
        self._historico = historico
