# pema/core/checkout.py
"""
Máquina de estados do checkout do terminal.

    OCIOSO -> LOCAL_PENDENTE -> PAGAMENTO_PENDENTE -> PROCESSANDO -> CONCLUIDO -> OCIOSO

Cada diálogo da interface apresenta um estado e chama apenas as transições
legais dele. Os erros de uso são levantados de forma síncrona para quem chamou.
"""
import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Optional

from pema.core.capacidades import (
    exige_local,
    local_automatico,
    pode_alterar_data_venda,
    requer_escolha_local,
)
from pema.core.cart_manager import CartManager
from pema.core.entities import (
    EstadoCheckout,
    FormaPagamento,
    PedidoConcluido,
    Usuario,
    para_decimal,
)
from pema.core.exceptions import (
    CarrinhoVazioError,
    ChavePixNaoConfigurada,
    DadosInvalidosError,
    DataVendaNaoPermitidaError,
    LocalNaoSelecionadoError,
    PagamentoInsuficienteError,
    TransicaoInvalidaError,
)
from pema.core.loja import Loja
from pema.core.ports import IRelogio

logger = logging.getLogger(__name__)

OuvinteEstado = Callable[[EstadoCheckout, EstadoCheckout], None]


class CheckoutCoordinator:
    """Coordena a escolha do local, a confirmação do pagamento e o registro da venda."""

    def __init__(
        self,
        carrinho: CartManager,
        loja: Loja,
        relogio: IRelogio,
        usuario: Usuario,
        atraso_cartao: float = 0,
    ):
        self.carrinho = carrinho
        self.loja = loja
        self.relogio = relogio
        self.usuario = usuario
        self.atraso_cartao = atraso_cartao

        self.local: Optional[str] = local_automatico(usuario)
        self.ultimo_pedido: Optional[PedidoConcluido] = None
        self._estado = EstadoCheckout.OCIOSO
        self._cartao_aprovado = False
        self._tarefa_cartao: Optional[asyncio.Future] = None
        self._ouvintes: List[OuvinteEstado] = []
        carrinho.inscrever(self._ao_alterar_carrinho)

    # --- Estado ---

    @property
    def estado(self) -> EstadoCheckout:
        return self._estado

    @property
    def cartao_em_processamento(self) -> bool:
        return self._tarefa_cartao is not None

    def inscrever(self, ouvinte: OuvinteEstado) -> Callable[[], None]:
        self._ouvintes.append(ouvinte)

        def cancelar():
            if ouvinte in self._ouvintes:
                self._ouvintes.remove(ouvinte)

        return cancelar

    def _transitar(self, novo: EstadoCheckout):
        anterior = self._estado
        self._estado = novo
        logger.info("Checkout: %s -> %s", anterior.value, novo.value)
        for ouvinte in list(self._ouvintes):
            ouvinte(anterior, novo)

    def _ao_alterar_carrinho(self, itens):
        # A aprovação da maquininha vale apenas para o total aprovado.
        if self._cartao_aprovado and self._estado is not EstadoCheckout.PROCESSANDO:
            self._cartao_aprovado = False
            logger.info("Carrinho alterado após a aprovação do cartão; nova aprovação necessária")

    # --- Transições ---

    def iniciar_checkout(self):
        """Abre o fluxo de finalização a partir do estado ocioso."""
        if self._estado is not EstadoCheckout.OCIOSO:
            raise TransicaoInvalidaError(self._estado, 'iniciar_checkout')
        if self.carrinho.is_empty():
            raise CarrinhoVazioError()

        self._cartao_aprovado = False
        if self.local is None and requer_escolha_local(self.usuario):
            self._transitar(EstadoCheckout.LOCAL_PENDENTE)
        else:
            self._transitar(EstadoCheckout.PAGAMENTO_PENDENTE)

    def selecionar_local(self, nome: str):
        """
        Define o local da venda. O local vale para a sessão inteira e pode ser
        trocado antes do pagamento.
        """
        if self._estado is EstadoCheckout.PROCESSANDO:
            raise TransicaoInvalidaError(self._estado, 'selecionar_local')
        if not nome or not nome.strip():
            raise DadosInvalidosError("O nome do local não pode ser vazio.")

        nome = nome.strip()
        if self.usuario.locais and nome not in self.usuario.locais:
            logger.warning("Local '%s' fora dos locais configurados para %s", nome, self.usuario.nome)
        self.local = nome

        if self._estado is EstadoCheckout.LOCAL_PENDENTE:
            self._transitar(EstadoCheckout.PAGAMENTO_PENDENTE)

    async def aguardar_cartao(self) -> bool:
        """
        Simula a janela da maquininha de cartão. Retorna True quando o cartão foi
        aprovado e False quando a janela foi cancelada pelo operador.
        """
        if self._estado is not EstadoCheckout.PAGAMENTO_PENDENTE:
            raise TransicaoInvalidaError(self._estado, 'aguardar_cartao')
        if self.atraso_cartao <= 0:
            self._cartao_aprovado = True
            return True

        self._transitar(EstadoCheckout.PROCESSANDO)
        tarefa = asyncio.ensure_future(asyncio.sleep(self.atraso_cartao))
        self._tarefa_cartao = tarefa
        try:
            await tarefa
        except asyncio.CancelledError:
            if self._tarefa_cartao is tarefa:
                # Cancelamento externo: não deixa o checkout preso em PROCESSANDO.
                self._tarefa_cartao = None
                self._transitar(EstadoCheckout.OCIOSO)
                raise
            return False

        self._tarefa_cartao = None
        self._cartao_aprovado = True
        self._transitar(EstadoCheckout.PAGAMENTO_PENDENTE)
        return True

    def confirmar_pagamento(
        self,
        forma: FormaPagamento,
        valor_recebido=None,
        data_venda: Optional[datetime] = None,
    ) -> Optional[PedidoConcluido]:
        """
        Confirma o pagamento e registra a venda. Retorna o PedidoConcluido, ou
        None quando a confirmação do cartão ainda não está liberada.
        """
        try:
            forma = FormaPagamento(forma)
        except ValueError:
            raise DadosInvalidosError(f"Forma de pagamento inválida: {forma!r}")

        if self._estado is EstadoCheckout.LOCAL_PENDENTE:
            raise LocalNaoSelecionadoError()
        if self._estado is EstadoCheckout.PROCESSANDO and self.cartao_em_processamento:
            logger.debug("Confirmação ignorada: cartão em processamento")
            return None
        if self._estado is not EstadoCheckout.PAGAMENTO_PENDENTE:
            raise TransicaoInvalidaError(self._estado, 'confirmar_pagamento')
        if self.local is None and exige_local(self.usuario):
            raise LocalNaoSelecionadoError()
        if data_venda is not None and not pode_alterar_data_venda(self.usuario.papel):
            raise DataVendaNaoPermitidaError()
        if self.carrinho.is_empty():
            raise CarrinhoVazioError()

        total = self.carrinho.total()
        recebido = troco = None

        if forma is FormaPagamento.DINHEIRO:
            if valor_recebido is None:
                raise DadosInvalidosError("Informe o valor pago pelo cliente.")
            recebido = para_decimal(valor_recebido)
            if recebido < total:
                raise PagamentoInsuficienteError(total, recebido)
            troco = recebido - total
        elif forma is FormaPagamento.CARTAO:
            if self.atraso_cartao > 0 and not self._cartao_aprovado:
                logger.debug("Confirmação ignorada: cartão ainda não aprovado na maquininha")
                return None
        elif self.aviso_pix() is not None:
            logger.warning("Venda PIX confirmada sem chave PIX configurada para %s", self.usuario.nome)

        self._transitar(EstadoCheckout.PROCESSANDO)
        pedido = PedidoConcluido(
            id=self.relogio.novo_id(),
            data=self._data_da_venda(data_venda),
            itens=self.carrinho.itens,
            total=total,
            forma_pagamento=forma,
            local=self.local,
            valor_recebido=recebido,
            troco=troco,
        )
        try:
            self.loja.registrar_venda(pedido)
        except Exception:
            logger.error("Falha ao registrar a venda %s; carrinho mantido", pedido.id)
            self._transitar(EstadoCheckout.PAGAMENTO_PENDENTE)
            raise

        self.carrinho.clear()
        self.ultimo_pedido = pedido
        self._cartao_aprovado = False
        logger.info(
            "Venda %s registrada: total %s via %s em %s",
            pedido.id, pedido.total, forma.value, pedido.local or 'N/A',
        )
        self._transitar(EstadoCheckout.CONCLUIDO)
        self._transitar(EstadoCheckout.OCIOSO)
        return pedido

    def cancelar(self):
        """Abandona o fluxo (diálogo fechado). O carrinho é mantido."""
        if self._estado is EstadoCheckout.PROCESSANDO:
            if self._tarefa_cartao is None:
                raise TransicaoInvalidaError(self._estado, 'cancelar')
            tarefa = self._tarefa_cartao
            self._tarefa_cartao = None
            tarefa.cancel()
        if self._estado is EstadoCheckout.OCIOSO:
            return
        self._cartao_aprovado = False
        self._transitar(EstadoCheckout.OCIOSO)

    # --- Consultas para os diálogos ---

    @property
    def total(self) -> Decimal:
        return self.carrinho.total()

    def troco_previsto(self, valor_recebido) -> Optional[Decimal]:
        """Troco exibido enquanto o operador digita; None se o valor não cobre o total."""
        try:
            recebido = para_decimal(valor_recebido)
        except DadosInvalidosError:
            return None
        total = self.carrinho.total()
        return recebido - total if recebido >= total else None

    def aviso_pix(self) -> Optional[ChavePixNaoConfigurada]:
        """Aviso não bloqueante para PIX sem chave configurada no perfil."""
        if self.usuario.chave_pix:
            return None
        return ChavePixNaoConfigurada()

    def _data_da_venda(self, data_venda) -> datetime:
        agora = self.relogio.agora()
        if data_venda is None:
            return agora
        if isinstance(data_venda, datetime):
            if data_venda.tzinfo is None and agora.tzinfo is not None:
                return data_venda.replace(tzinfo=agora.tzinfo)
            return data_venda
        if isinstance(data_venda, date):
            return datetime.combine(data_venda, agora.timetz())
        raise DadosInvalidosError(f"Data de venda inválida: {data_venda!r}")
