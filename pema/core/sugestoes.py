# pema/core/sugestoes.py
"""
Pipeline de sugestão do próximo produto.

A cada mudança no carrinho a sugestão atual é invalidada e uma nova busca é
agendada após o intervalo de debounce. Mudanças dentro do intervalo cancelam a
busca pendente. Cada requisição recebe um número de sequência crescente e só o
resultado da requisição mais recente é aplicado.
"""
import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from pema.core.cart_manager import CartManager
from pema.core.entities import ItemPedido, Produto, Sugestao
from pema.core.loja import Loja
from pema.core.ports import IRecomendador

logger = logging.getLogger(__name__)

OuvinteSugestao = Callable[[Optional[Sugestao], Optional[Produto]], None]

INTERVALO_PADRAO = 0.5


class SuggestionPipeline:
    """Liga o carrinho ao recomendador externo, com debounce e descarte de respostas antigas."""

    def __init__(
        self,
        carrinho: CartManager,
        loja: Loja,
        recomendador: IRecomendador,
        intervalo: float = INTERVALO_PADRAO,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.carrinho = carrinho
        self.loja = loja
        self.recomendador = recomendador
        self.intervalo = intervalo
        self._loop = loop

        self.sugestao: Optional[Sugestao] = None
        self.produto_sugerido: Optional[Produto] = None
        self.buscando = False
        self._sequencia = 0
        self._tarefa: Optional[asyncio.Task] = None
        self._ouvintes: List[OuvinteSugestao] = []
        self._cancelar_inscricao = carrinho.inscrever(self._ao_alterar_carrinho)

    def inscrever(self, ouvinte: OuvinteSugestao) -> Callable[[], None]:
        self._ouvintes.append(ouvinte)

        def cancelar():
            if ouvinte in self._ouvintes:
                self._ouvintes.remove(ouvinte)

        return cancelar

    @property
    def sequencia(self) -> int:
        return self._sequencia

    # --- Ciclo de vida ---

    def _ao_alterar_carrinho(self, itens: Tuple[ItemPedido, ...]):
        self._sequencia += 1
        self._cancelar_tarefa()
        self._aplicar(None, None)
        self.buscando = False

        if not itens:
            return

        loop = self._loop_disponivel()
        if loop is None:
            logger.debug("Sem loop de eventos: sugestão não agendada para a requisição %d", self._sequencia)
            return

        codigos = [item.produto.codigo for item in itens]
        self._tarefa = loop.create_task(self._buscar_apos_intervalo(self._sequencia, codigos))

    def _loop_disponivel(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    async def _buscar_apos_intervalo(self, sequencia: int, codigos: List[str]):
        await asyncio.sleep(self.intervalo)

        self.buscando = True
        try:
            resultado = await self.recomendador.sugerir_proximo(codigos, list(self.loja.historico))
        except Exception as e:
            logger.warning("Falha ao obter sugestão para %s: %s", codigos, e)
            resultado = None
        finally:
            if sequencia == self._sequencia:
                self.buscando = False

        if sequencia != self._sequencia:
            logger.debug("Sugestão da requisição %d descartada (atual: %d)", sequencia, self._sequencia)
            return

        produto = self._resolver(resultado)
        self._aplicar(resultado if produto else None, produto)

    def _resolver(self, resultado) -> Optional[Produto]:
        if not isinstance(resultado, Sugestao):
            return None
        produto = self.loja.buscar_produto_ativo(resultado.codigo_produto)
        if produto is None:
            logger.info("Sugestão ignorada: código %s fora do catálogo ativo", resultado.codigo_produto)
        return produto

    def _aplicar(self, sugestao: Optional[Sugestao], produto: Optional[Produto]):
        if sugestao == self.sugestao and produto == self.produto_sugerido:
            return
        self.sugestao = sugestao
        self.produto_sugerido = produto
        for ouvinte in list(self._ouvintes):
            ouvinte(sugestao, produto)

    def _cancelar_tarefa(self):
        if self._tarefa is not None and not self._tarefa.done():
            self._tarefa.cancel()
        self._tarefa = None

    async def aguardar(self):
        """Aguarda a busca pendente, se houver. Útil para testes e para o encerramento."""
        while self._tarefa is not None and not self._tarefa.done():
            await asyncio.wait({self._tarefa})

    def encerrar(self):
        """Cancela qualquer busca e desliga o pipeline do carrinho."""
        self._sequencia += 1
        self._cancelar_tarefa()
        self.buscando = False
        self._cancelar_inscricao()
