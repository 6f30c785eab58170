# pema/core/sessao.py
"""
Sessão de terminal: criada quando o operador abre o PDV e encerrada ao sair.
Monta a loja, o carrinho, o checkout e o pipeline de sugestões com as
dependências injetadas.
"""
import asyncio
import logging
from typing import Optional

from pema.core.cart_manager import CartManager
from pema.core.checkout import CheckoutCoordinator
from pema.core.entities import Usuario
from pema.core.loja import Loja
from pema.core.ports import IPersistencia, IRecomendador, IRelogio
from pema.core import relatorios
from pema.core.sugestoes import INTERVALO_PADRAO, SuggestionPipeline

logger = logging.getLogger(__name__)


class SessaoPDV:

    def __init__(
        self,
        usuario: Usuario,
        persistencia: IPersistencia,
        recomendador: IRecomendador,
        relogio: IRelogio,
        intervalo_sugestao: float = INTERVALO_PADRAO,
        atraso_cartao: float = 0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.usuario = usuario
        self.relogio = relogio
        self.loja = Loja(persistencia)
        self.carrinho = CartManager()
        self.checkout = CheckoutCoordinator(
            carrinho=self.carrinho,
            loja=self.loja,
            relogio=relogio,
            usuario=usuario,
            atraso_cartao=atraso_cartao,
        )
        self.sugestoes = SuggestionPipeline(
            carrinho=self.carrinho,
            loja=self.loja,
            recomendador=recomendador,
            intervalo=intervalo_sugestao,
            loop=loop,
        )
        self._ativa = True
        logger.info("Sessão aberta para %s (%s)", usuario.nome, usuario.papel.value)

    @property
    def ativa(self) -> bool:
        return self._ativa

    def adicionar_sugestao(self) -> bool:
        """Adiciona ao carrinho o produto sugerido, se houver."""
        produto = self.sugestoes.produto_sugerido
        if produto is None:
            return False
        self.carrinho.add_item(produto)
        return True

    def relatorio(self, periodo=None, fuso=None) -> relatorios.RelatorioVendas:
        return relatorios.gerar_relatorio(self.loja.pedidos, periodo, fuso)

    def encerrar(self, motivo: Optional[str] = None):
        if not self._ativa:
            return
        self.sugestoes.encerrar()
        self.checkout.cancelar()
        self._ativa = False
        logger.info("Sessão de %s encerrada%s", self.usuario.nome, f": {motivo}" if motivo else "")
