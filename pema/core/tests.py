# pema/core/tests.py

import asyncio
import unittest
from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

# Importamos as classes que queremos testar
from pema.core import relatorios
from pema.core.capacidades import (
    exige_local,
    local_automatico,
    pode_alterar_data_venda,
    requer_escolha_local,
)
from pema.core.cart_manager import CartManager
from pema.core.checkout import CheckoutCoordinator
from pema.core.entities import (
    EstadoCheckout,
    FormaPagamento,
    IntervaloDatas,
    ItemPedido,
    ItemVendido,
    Papel,
    PedidoConcluido,
    Produto,
    Sugestao,
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
    SugestaoIndisponivelError,
    TransicaoInvalidaError,
)
from pema.core.loja import Loja
from pema.core.sessao import SessaoPDV
from pema.core.sugestoes import SuggestionPipeline


AGORA = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


class PersistenciaEmMemoria:
    """Implementação simples de IPersistencia usada nos testes."""

    def __init__(self, catalogo=None, pedidos=None, historico=None):
        self.catalogo = list(catalogo or [])
        self.pedidos = list(pedidos or [])
        self.historico = list(historico or [])

    def carregar_pedidos_concluidos(self):
        return list(self.pedidos)

    def salvar_pedidos_concluidos(self, pedidos):
        self.pedidos = list(pedidos)

    def carregar_historico(self):
        return list(self.historico)

    def salvar_historico(self, codigos):
        self.historico = list(codigos)

    def carregar_catalogo(self):
        return list(self.catalogo)

    def salvar_catalogo(self, produtos):
        self.catalogo = list(produtos)


def criar_relogio():
    relogio = Mock()
    relogio.agora.return_value = AGORA
    relogio.novo_id.side_effect = (f'pedido-{n}' for n in range(1, 1000))
    return relogio


def produto(codigo, preco, ativo=True, categoria='Bebidas'):
    return Produto(codigo=codigo, categoria=categoria, descricao=f'Produto {codigo}', preco=Decimal(preco), ativo=ativo)


def pedido(id, data, itens, local=None, forma=FormaPagamento.DINHEIRO):
    itens = [ItemPedido(produto=p, quantidade=q) for p, q in itens]
    total = sum((i.subtotal for i in itens), Decimal('0'))
    return PedidoConcluido(id=id, data=data, itens=itens, total=total, forma_pagamento=forma, local=local)


# ====================================================================
# ENTIDADES E CAPACIDADES
# ====================================================================

class TestEntidades(unittest.TestCase):

    def test_para_decimal_usa_representacao_textual_do_float(self):
        self.assertEqual(para_decimal(19.9), Decimal('19.9'))
        self.assertEqual(para_decimal('20.00'), Decimal('20.00'))

    def test_para_decimal_rejeita_valores_invalidos(self):
        for valor in ('abc', None, 'NaN', Decimal('Infinity')):
            with self.subTest(valor=valor):
                with self.assertRaises(DadosInvalidosError):
                    para_decimal(valor)

    def test_produto_com_preco_negativo_falha(self):
        with self.assertRaises(DadosInvalidosError):
            produto('X', '-1.00')

    def test_produto_sem_codigo_falha(self):
        with self.assertRaises(DadosInvalidosError):
            produto('', '1.00')

    def test_sugestao_com_confianca_fora_do_intervalo_falha(self):
        with self.assertRaises(DadosInvalidosError):
            Sugestao(codigo_produto='A', confianca=1.5)

    def test_intervalo_com_fim_anterior_ao_inicio_falha(self):
        with self.assertRaises(DadosInvalidosError):
            IntervaloDatas(inicio=date(2024, 1, 2), fim=date(2024, 1, 1))

    def test_pedido_concluido_congela_os_itens(self):
        item = ItemPedido(produto=produto('A', '1.00'), quantidade=2)
        venda = PedidoConcluido(id='p1', data=AGORA, itens=[item], total='2.00', forma_pagamento='pix')

        item.quantidade = 5

        self.assertIsInstance(venda.itens[0], ItemVendido)
        self.assertEqual(venda.itens[0].quantidade, 2)
        with self.assertRaises(FrozenInstanceError):
            venda.itens[0].quantidade = 99

    def test_item_vendido_sem_quantidade_falha(self):
        with self.assertRaises(DadosInvalidosError):
            ItemVendido(produto=produto('A', '1.00'), quantidade=0)


class TestCapacidades(unittest.TestCase):

    def test_somente_vendedor_nao_altera_data_da_venda(self):
        self.assertFalse(pode_alterar_data_venda(Papel.VENDEDOR))
        self.assertTrue(pode_alterar_data_venda(Papel.GERENTE))
        self.assertTrue(pode_alterar_data_venda('admin'))

    def test_regras_de_local(self):
        sem_local = Usuario(nome='Ana')
        um_local = Usuario(nome='Bia', locais=['Loja Centro'])
        dois_locais = Usuario(nome='Caio', locais=['Loja Centro', 'Feira'])

        self.assertFalse(requer_escolha_local(sem_local))
        self.assertFalse(requer_escolha_local(um_local))
        self.assertTrue(requer_escolha_local(dois_locais))

        self.assertFalse(exige_local(sem_local))
        self.assertTrue(exige_local(um_local))

        self.assertIsNone(local_automatico(sem_local))
        self.assertEqual(local_automatico(um_local), 'Loja Centro')
        self.assertIsNone(local_automatico(dois_locais))


# ====================================================================
# CARRINHO
# ====================================================================

class TestCartManager(unittest.TestCase):

    def setUp(self):
        self.carrinho = CartManager()
        self.agua = produto('A', '2.50')
        self.suco = produto('B', '7.90')
        self.ouvinte = Mock()
        self.carrinho.inscrever(self.ouvinte)

    def test_codigos_unicos_e_total_exato(self):
        """
        Cenário: Sequência de adições e alterações mantém códigos únicos,
        quantidades >= 1 e o total igual à soma manual.
        """
        self.carrinho.add_item(self.agua)
        self.carrinho.add_item(self.suco)
        self.carrinho.add_item(self.agua)
        self.carrinho.set_quantity('B', 3)
        self.carrinho.add_item(self.suco)

        codigos = self.carrinho.codigos()
        self.assertEqual(codigos, ['A', 'B'])
        self.assertTrue(all(item.quantidade >= 1 for item in self.carrinho.itens))
        self.assertEqual(self.carrinho.total(), Decimal('2.50') * 2 + Decimal('7.90') * 4)
        self.assertEqual(self.carrinho.total_unidades(), 6)

    def test_quantidade_zero_ou_negativa_remove_o_item(self):
        for quantidade in (0, -3):
            with self.subTest(quantidade=quantidade):
                self.carrinho.add_item(self.agua)
                self.carrinho.set_quantity('A', quantidade)
                self.assertTrue(self.carrinho.is_empty())
                self.assertEqual(self.carrinho.total(), Decimal('0'))

    def test_codigo_ausente_e_ignorado_sem_notificar(self):
        self.carrinho.add_item(self.agua)
        self.ouvinte.reset_mock()

        self.carrinho.set_quantity('Z', 5)

        self.ouvinte.assert_not_called()

    def test_mesma_quantidade_nao_notifica(self):
        self.carrinho.add_item(self.agua)
        self.ouvinte.reset_mock()

        self.carrinho.set_quantity('A', 1)

        self.ouvinte.assert_not_called()

    def test_itens_sao_copias(self):
        self.carrinho.add_item(self.agua)

        self.carrinho.itens[0].quantidade = 99

        self.assertEqual(self.carrinho.itens[0].quantidade, 1)

    def test_limpar_notifica_somente_se_havia_itens(self):
        self.carrinho.clear()
        self.ouvinte.assert_not_called()

        self.carrinho.add_item(self.agua)
        self.carrinho.clear()

        self.assertEqual(self.ouvinte.call_count, 2)
        self.ouvinte.assert_called_with(())

    def test_cancelar_inscricao(self):
        outro = Mock()
        cancelar = self.carrinho.inscrever(outro)
        cancelar()

        self.carrinho.add_item(self.agua)

        outro.assert_not_called()


# ====================================================================
# LOJA (ESTADO DA SESSÃO)
# ====================================================================

class TestLoja(unittest.TestCase):

    def setUp(self):
        self.persistencia = PersistenciaEmMemoria(catalogo=[produto('A', '1.00'), produto('B', '2.00', ativo=False)])
        self.loja = Loja(self.persistencia)

    def test_busca_somente_produtos_ativos(self):
        self.assertIsNotNone(self.loja.buscar_produto_ativo('A'))
        self.assertIsNone(self.loja.buscar_produto_ativo('B'))
        self.assertEqual([p.codigo for p in self.loja.produtos_ativos()], ['A'])

    def test_salvar_produto_novo_entra_no_inicio(self):
        self.loja.salvar_produto(produto('C', '3.00'))

        self.assertEqual([p.codigo for p in self.loja.catalogo], ['C', 'A', 'B'])
        self.assertEqual([p.codigo for p in self.persistencia.catalogo], ['C', 'A', 'B'])

    def test_salvar_produto_existente_atualiza_no_lugar(self):
        self.loja.salvar_produto(produto('B', '2.50', ativo=True))

        self.assertEqual([p.codigo for p in self.loja.catalogo], ['A', 'B'])
        self.assertEqual(self.loja.buscar_produto_ativo('B').preco, Decimal('2.50'))

    def test_excluir_produto(self):
        self.loja.excluir_produto('A')

        self.assertEqual([p.codigo for p in self.persistencia.catalogo], ['B'])

    def test_registrar_venda_acrescenta_pedido_e_historico(self):
        venda = pedido('p1', AGORA, [(self.loja.catalogo[0], 2)])

        self.loja.registrar_venda(venda)

        self.assertEqual(self.persistencia.pedidos, [venda])
        self.assertEqual(self.persistencia.historico, ['A'])
        self.assertEqual(self.loja.historico, ('A',))

    def test_falha_no_historico_nao_desfaz_a_venda(self):
        self.persistencia.salvar_historico = Mock(side_effect=OSError('disco cheio'))
        venda = pedido('p1', AGORA, [(self.loja.catalogo[0], 1)])

        with self.assertLogs('pema.core.loja', level='ERROR'):
            self.loja.registrar_venda(venda)

        self.assertEqual(self.loja.pedidos, (venda,))
        self.assertEqual(self.loja.historico, ())


# ====================================================================
# CHECKOUT
# ====================================================================

class TestCheckoutCoordinator(unittest.TestCase):

    def setUp(self):
        """
        Prepara um terminal com persistência em memória e relógio simulado.
        """
        self.persistencia = PersistenciaEmMemoria()
        self.loja = Loja(self.persistencia)
        self.carrinho = CartManager()
        self.relogio = criar_relogio()
        self.bolo = produto('BOLO', '19.90', categoria='Doces')

    def criar_checkout(self, usuario=None, atraso_cartao=0):
        usuario = usuario or Usuario(nome='Ana', locais=['Loja Centro'], chave_pix='ana@pix')
        return CheckoutCoordinator(self.carrinho, self.loja, self.relogio, usuario, atraso_cartao=atraso_cartao)

    def test_checkout_com_carrinho_vazio_falha_sem_transicao(self):
        """
        Cenário: Iniciar o checkout com o carrinho vazio.
        """
        checkout = self.criar_checkout()
        ouvinte = Mock()
        checkout.inscrever(ouvinte)

        with self.assertRaises(CarrinhoVazioError):
            checkout.iniciar_checkout()

        self.assertEqual(checkout.estado, EstadoCheckout.OCIOSO)
        ouvinte.assert_not_called()

    def test_troco_exato_em_dinheiro(self):
        """
        Cenário: Total de 19,90 pago com 20,00 gera troco de exatamente 0,10.
        """
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        venda = checkout.confirmar_pagamento(FormaPagamento.DINHEIRO, valor_recebido='20.00')

        self.assertEqual(venda.total, Decimal('19.90'))
        self.assertEqual(venda.troco, Decimal('0.10'))
        self.assertEqual(venda.valor_recebido, Decimal('20.00'))

    def test_valor_igual_ao_total_gera_troco_zero(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        venda = checkout.confirmar_pagamento('dinheiro', valor_recebido=Decimal('39.80'))

        self.assertEqual(venda.troco, Decimal('0'))

    def test_venda_concluida_registra_snapshot_e_volta_a_ociosa(self):
        checkout = self.criar_checkout()
        estados = []
        checkout.inscrever(lambda anterior, novo: estados.append(novo))
        self.carrinho.add_item(self.bolo)

        checkout.iniciar_checkout()
        venda = checkout.confirmar_pagamento(FormaPagamento.PIX)

        self.assertEqual(estados, [
            EstadoCheckout.PAGAMENTO_PENDENTE,
            EstadoCheckout.PROCESSANDO,
            EstadoCheckout.CONCLUIDO,
            EstadoCheckout.OCIOSO,
        ])
        self.assertEqual(venda.id, 'pedido-1')
        self.assertEqual(venda.data, AGORA)
        self.assertEqual(venda.local, 'Loja Centro')
        self.assertIsNone(venda.troco)
        self.assertTrue(self.carrinho.is_empty())
        self.assertEqual(self.persistencia.pedidos, [venda])
        self.assertEqual(self.persistencia.historico, ['BOLO'])
        self.assertIs(checkout.ultimo_pedido, venda)

    def test_varios_locais_exigem_escolha(self):
        """
        Cenário: Usuário com dois locais precisa escolher antes de pagar.
        """
        checkout = self.criar_checkout(Usuario(nome='Caio', locais=['Loja Centro', 'Feira']))
        self.carrinho.add_item(self.bolo)

        checkout.iniciar_checkout()
        self.assertEqual(checkout.estado, EstadoCheckout.LOCAL_PENDENTE)

        with self.assertRaises(LocalNaoSelecionadoError):
            checkout.confirmar_pagamento(FormaPagamento.PIX)

        checkout.selecionar_local('Feira')
        self.assertEqual(checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)

        venda = checkout.confirmar_pagamento(FormaPagamento.PIX)
        self.assertEqual(venda.local, 'Feira')

    def test_local_unico_e_selecionado_automaticamente(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)

        checkout.iniciar_checkout()

        self.assertEqual(checkout.local, 'Loja Centro')
        self.assertEqual(checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)

    def test_local_escolhido_vale_para_a_proxima_venda(self):
        checkout = self.criar_checkout(Usuario(nome='Caio', locais=['Loja Centro', 'Feira']))
        checkout.selecionar_local('Feira')
        self.carrinho.add_item(self.bolo)

        checkout.iniciar_checkout()

        self.assertEqual(checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)

    def test_local_vazio_e_rejeitado(self):
        checkout = self.criar_checkout()
        with self.assertRaises(DadosInvalidosError):
            checkout.selecionar_local('   ')

    def test_pagamento_insuficiente_mantem_dialogo_aberto(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        with self.assertRaises(PagamentoInsuficienteError) as contexto:
            checkout.confirmar_pagamento(FormaPagamento.DINHEIRO, valor_recebido='19.89')

        self.assertEqual(contexto.exception.total, Decimal('19.90'))
        self.assertEqual(checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)
        self.assertFalse(self.carrinho.is_empty())
        self.assertEqual(self.persistencia.pedidos, [])

    def test_dinheiro_sem_valor_recebido_falha(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        with self.assertRaises(DadosInvalidosError):
            checkout.confirmar_pagamento(FormaPagamento.DINHEIRO)

    def test_forma_de_pagamento_invalida(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        with self.assertRaises(DadosInvalidosError):
            checkout.confirmar_pagamento('cheque')

    def test_troco_previsto(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)

        self.assertEqual(checkout.troco_previsto('50'), Decimal('30.10'))
        self.assertIsNone(checkout.troco_previsto('10'))
        self.assertIsNone(checkout.troco_previsto('abc'))

    def test_pix_sem_chave_gera_aviso_mas_conclui(self):
        """
        Cenário: PIX sem chave configurada. O aviso não bloqueia a venda.
        """
        checkout = self.criar_checkout(Usuario(nome='Ana', locais=['Loja Centro']))
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        self.assertIsInstance(checkout.aviso_pix(), ChavePixNaoConfigurada)
        with self.assertLogs('pema.core.checkout', level='WARNING'):
            venda = checkout.confirmar_pagamento(FormaPagamento.PIX)

        self.assertEqual(venda.forma_pagamento, FormaPagamento.PIX)

    def test_pix_com_chave_sem_aviso(self):
        checkout = self.criar_checkout()
        self.assertIsNone(checkout.aviso_pix())

    def test_vendedor_nao_pode_alterar_data(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        with self.assertRaises(DataVendaNaoPermitidaError):
            checkout.confirmar_pagamento(FormaPagamento.PIX, data_venda=date(2024, 1, 10))

        self.assertEqual(checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)

    def test_gerente_registra_venda_com_outra_data(self):
        gerente = Usuario(nome='Gil', papel=Papel.GERENTE, locais=['Loja Centro'], chave_pix='gil@pix')
        checkout = self.criar_checkout(gerente)
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        venda = checkout.confirmar_pagamento(FormaPagamento.PIX, data_venda=date(2024, 1, 10))

        self.assertEqual(venda.data.date(), date(2024, 1, 10))
        self.assertEqual(venda.data.timetz(), AGORA.timetz())

    def test_data_sem_fuso_recebe_o_fuso_do_relogio(self):
        """
        Cenário: Data informada sem fuso horário fica no mesmo fuso do relógio,
        para não misturar datas com e sem fuso no histórico.
        """
        gerente = Usuario(nome='Gil', papel=Papel.GERENTE, locais=['Loja Centro'], chave_pix='gil@pix')
        checkout = self.criar_checkout(gerente)
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        venda = checkout.confirmar_pagamento(FormaPagamento.PIX, data_venda=datetime(2024, 1, 10, 9, 0))

        self.assertEqual(venda.data, datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc))
        self.assertEqual(self.loja.pedidos[0].data.tzinfo, AGORA.tzinfo)

    def test_venda_registrada_nao_muda_pelo_pedido_devolvido(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()
        venda = checkout.confirmar_pagamento(FormaPagamento.PIX)

        with self.assertRaises(FrozenInstanceError):
            venda.itens[0].quantidade = 99

        armazenada = self.loja.pedidos[0]
        self.assertEqual(armazenada.itens[0].quantidade, 1)
        self.assertEqual(armazenada.total, sum((i.subtotal for i in armazenada.itens), Decimal('0')))

    def test_falha_na_persistencia_mantem_carrinho(self):
        """
        Cenário: A gravação da venda falha. O erro chega a quem chamou e o
        carrinho continua intacto para nova tentativa.
        """
        self.persistencia.salvar_pedidos_concluidos = Mock(side_effect=OSError('disco cheio'))
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        with self.assertRaises(OSError):
            checkout.confirmar_pagamento(FormaPagamento.PIX)

        self.assertEqual(checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)
        self.assertEqual(self.carrinho.codigos(), ['BOLO'])
        self.assertEqual(self.loja.pedidos, ())
        self.assertIsNone(checkout.ultimo_pedido)

    def test_cancelar_mantem_carrinho(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        checkout.cancelar()

        self.assertEqual(checkout.estado, EstadoCheckout.OCIOSO)
        self.assertEqual(self.carrinho.codigos(), ['BOLO'])

    def test_iniciar_duas_vezes_e_transicao_invalida(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        with self.assertRaises(TransicaoInvalidaError):
            checkout.iniciar_checkout()

    def test_confirmar_sem_iniciar_e_transicao_invalida(self):
        checkout = self.criar_checkout()
        self.carrinho.add_item(self.bolo)

        with self.assertRaises(TransicaoInvalidaError):
            checkout.confirmar_pagamento(FormaPagamento.PIX)

    def test_usuario_sem_locais_vende_sem_local(self):
        checkout = self.criar_checkout(Usuario(nome='Ana', chave_pix='ana@pix'))
        self.carrinho.add_item(self.bolo)
        checkout.iniciar_checkout()

        venda = checkout.confirmar_pagamento(FormaPagamento.PIX)

        self.assertIsNone(venda.local)


class TestCheckoutCartao(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.persistencia = PersistenciaEmMemoria()
        self.carrinho = CartManager()
        self.carrinho.add_item(produto('BOLO', '19.90'))
        self.checkout = CheckoutCoordinator(
            self.carrinho,
            Loja(self.persistencia),
            criar_relogio(),
            Usuario(nome='Ana', locais=['Loja Centro']),
            atraso_cartao=0.05,
        )

    async def test_confirmacao_ignorada_ate_a_maquininha_aprovar(self):
        self.checkout.iniciar_checkout()

        # Antes da janela da maquininha a confirmação é ignorada.
        self.assertIsNone(self.checkout.confirmar_pagamento(FormaPagamento.CARTAO))

        tarefa = asyncio.ensure_future(self.checkout.aguardar_cartao())
        await asyncio.sleep(0)
        self.assertEqual(self.checkout.estado, EstadoCheckout.PROCESSANDO)
        self.assertIsNone(self.checkout.confirmar_pagamento(FormaPagamento.CARTAO))

        self.assertTrue(await tarefa)
        self.assertEqual(self.checkout.estado, EstadoCheckout.PAGAMENTO_PENDENTE)

        venda = self.checkout.confirmar_pagamento(FormaPagamento.CARTAO)
        self.assertEqual(venda.forma_pagamento, FormaPagamento.CARTAO)
        self.assertEqual(self.checkout.estado, EstadoCheckout.OCIOSO)

    async def test_cancelar_durante_a_janela_do_cartao(self):
        self.checkout.iniciar_checkout()
        tarefa = asyncio.ensure_future(self.checkout.aguardar_cartao())
        await asyncio.sleep(0)

        self.checkout.cancelar()

        self.assertFalse(await tarefa)
        self.assertEqual(self.checkout.estado, EstadoCheckout.OCIOSO)
        self.assertFalse(self.checkout.cartao_em_processamento)
        self.assertEqual(self.carrinho.codigos(), ['BOLO'])
        self.assertEqual(self.persistencia.pedidos, [])

    async def test_sem_atraso_aprova_imediatamente(self):
        self.checkout.atraso_cartao = 0
        self.checkout.iniciar_checkout()

        self.assertTrue(await self.checkout.aguardar_cartao())
        self.assertIsNotNone(self.checkout.confirmar_pagamento(FormaPagamento.CARTAO))

    async def test_alterar_carrinho_apos_aprovacao_exige_nova_aprovacao(self):
        """
        Cenário: O cartão foi aprovado para um total e o operador muda o
        carrinho antes de confirmar. A venda só sai com nova aprovação.
        """
        self.checkout.iniciar_checkout()
        self.assertTrue(await self.checkout.aguardar_cartao())

        self.carrinho.add_item(produto('BOLO', '19.90'))

        self.assertIsNone(self.checkout.confirmar_pagamento(FormaPagamento.CARTAO))
        self.assertEqual(self.persistencia.pedidos, [])

        self.assertTrue(await self.checkout.aguardar_cartao())
        venda = self.checkout.confirmar_pagamento(FormaPagamento.CARTAO)
        self.assertEqual(venda.total, Decimal('39.80'))


# ====================================================================
# RELATÓRIOS
# ====================================================================

class TestRelatorios(unittest.TestCase):

    def setUp(self):
        self.a = produto('A', '1.00')
        self.b = produto('B', '2.00')

    def test_vendas_por_dia_em_ordem_crescente(self):
        pedidos = [
            pedido('p1', datetime(2024, 1, 1, 9), [(produto('X', '10'), 1)]),
            pedido('p2', datetime(2024, 1, 2, 9), [(produto('X', '7'), 1)]),
            pedido('p3', datetime(2024, 1, 1, 18), [(produto('X', '5'), 1)]),
        ]

        resultado = relatorios.vendas_por_dia(pedidos)

        self.assertEqual(resultado, [
            relatorios.VendaDia(dia=date(2024, 1, 1), total=Decimal('15')),
            relatorios.VendaDia(dia=date(2024, 1, 2), total=Decimal('7')),
        ])

    def test_mais_vendidos_empate_fica_com_o_primeiro_encontrado(self):
        """
        Cenário: {A:2, B:5} e {A:3} empatam em 5 unidades; A aparece primeiro.
        """
        pedidos = [
            pedido('p1', AGORA, [(self.a, 2), (self.b, 5)]),
            pedido('p2', AGORA, [(self.a, 3)]),
        ]

        ranking = relatorios.produtos_mais_vendidos(pedidos)

        self.assertEqual([(p.produto.codigo, p.quantidade) for p in ranking], [('A', 5), ('B', 5)])

    def test_mais_vendidos_respeita_o_limite(self):
        pedidos = [pedido('p1', AGORA, [(produto(f'P{n}', '1'), n) for n in range(1, 13)])]

        ranking = relatorios.produtos_mais_vendidos(pedidos)

        self.assertEqual(len(ranking), 10)
        self.assertEqual(ranking[0].produto.codigo, 'P12')
        with self.assertRaises(DadosInvalidosError):
            relatorios.produtos_mais_vendidos(pedidos, limite=-1)

    def test_filtro_sem_periodo_devolve_tudo_na_mesma_ordem(self):
        pedidos = [
            pedido('p2', datetime(2024, 1, 2), [(self.a, 1)]),
            pedido('p1', datetime(2024, 1, 1), [(self.a, 1)]),
        ]

        self.assertEqual(relatorios.filtrar_por_periodo(pedidos), pedidos)

    def test_filtro_de_um_dia(self):
        pedidos = [
            pedido('p1', datetime(2024, 1, 1, 23, 59), [(self.a, 1)]),
            pedido('p2', datetime(2024, 1, 2, 0, 0), [(self.a, 1)]),
            pedido('p3', datetime(2024, 1, 2, 23, 59, 59), [(self.a, 1)]),
            pedido('p4', datetime(2024, 1, 3, 0, 0), [(self.a, 1)]),
        ]

        filtrados = relatorios.filtrar_por_periodo(pedidos, IntervaloDatas(inicio=date(2024, 1, 2)))

        self.assertEqual([p.id for p in filtrados], ['p2', 'p3'])

    def test_dia_local_considera_o_fuso(self):
        sao_paulo = timezone(timedelta(hours=-3))
        # 01:00 UTC do dia 2 ainda é dia 1 em São Paulo
        venda = pedido('p1', datetime(2024, 1, 2, 1, 0, tzinfo=timezone.utc), [(self.a, 1)])

        self.assertEqual(relatorios.dias_com_vendas([venda], sao_paulo), [date(2024, 1, 1)])
        self.assertEqual(relatorios.dias_com_vendas([venda]), [date(2024, 1, 2)])

    def test_atalhos_de_periodo(self):
        referencia = date(2024, 2, 10)

        self.assertEqual(relatorios.periodo_hoje(referencia), IntervaloDatas(referencia, referencia))
        self.assertEqual(relatorios.periodo_mes(referencia), IntervaloDatas(date(2024, 2, 1), date(2024, 2, 29)))
        self.assertEqual(relatorios.periodo_ano(referencia), IntervaloDatas(date(2024, 1, 1), date(2024, 12, 31)))

    def test_vendas_por_local_usa_rotulo_para_pedidos_sem_local(self):
        pedidos = [
            pedido('p1', AGORA, [(self.a, 3)], local='Feira'),
            pedido('p2', AGORA, [(self.b, 5)]),
        ]

        por_local = relatorios.vendas_por_local(pedidos)

        self.assertEqual([(v.local, v.total) for v in por_local], [('N/A', Decimal('10.00')), ('Feira', Decimal('3.00'))])

    def test_resumo_e_formas_de_pagamento(self):
        pedidos = [
            pedido('p1', AGORA, [(self.a, 1)], forma=FormaPagamento.PIX),
            pedido('p2', AGORA, [(self.b, 1)], forma=FormaPagamento.DINHEIRO),
            pedido('p3', AGORA, [(self.a, 1)], forma=FormaPagamento.PIX),
        ]

        resumo = relatorios.resumo_vendas(pedidos)
        formas = relatorios.vendas_por_forma_pagamento(pedidos)

        self.assertEqual(resumo.faturamento, Decimal('4.00'))
        self.assertEqual(resumo.quantidade_pedidos, 3)
        self.assertEqual(resumo.itens_vendidos, 3)
        self.assertEqual(resumo.ticket_medio, Decimal('1.33'))
        self.assertEqual(
            [(f.forma_pagamento, f.total, f.quantidade_pedidos) for f in formas],
            [(FormaPagamento.PIX, Decimal('2.00'), 2), (FormaPagamento.DINHEIRO, Decimal('2.00'), 1)],
        )

    def test_resumo_sem_pedidos(self):
        resumo = relatorios.resumo_vendas([])

        self.assertEqual(resumo.ticket_medio, Decimal('0.00'))
        self.assertEqual(resumo.faturamento, Decimal('0'))

    def test_gerar_relatorio_nao_altera_a_entrada(self):
        pedidos = [
            pedido('p1', datetime(2024, 1, 1), [(self.a, 1)]),
            pedido('p2', datetime(2024, 1, 2), [(self.b, 1)]),
        ]
        copia = list(pedidos)

        relatorio = relatorios.gerar_relatorio(pedidos, IntervaloDatas(date(2024, 1, 1), date(2024, 1, 2)))

        self.assertEqual(pedidos, copia)
        self.assertEqual([p.id for p in relatorio.pedidos], ['p2', 'p1'])
        self.assertEqual(relatorio.resumo.quantidade_pedidos, 2)


# ====================================================================
# SUGESTÕES
# ====================================================================

class TestSuggestionPipeline(unittest.IsolatedAsyncioTestCase):

    INTERVALO = 0.02

    async def asyncSetUp(self):
        self.agua = produto('A', '2.50')
        self.suco = produto('B', '7.90')
        self.pao = produto('C', '1.00')
        self.inativo = produto('I', '3.00', ativo=False)
        self.persistencia = PersistenciaEmMemoria(
            catalogo=[self.agua, self.suco, self.pao, self.inativo],
            historico=['A', 'C'],
        )
        self.loja = Loja(self.persistencia)
        self.carrinho = CartManager()
        self.recomendador = Mock()
        self.recomendador.sugerir_proximo = AsyncMock(return_value=Sugestao('C', 0.8))
        self.pipeline = SuggestionPipeline(self.carrinho, self.loja, self.recomendador, intervalo=self.INTERVALO)

    async def asyncTearDown(self):
        self.pipeline.encerrar()

    async def test_edicoes_rapidas_geram_uma_unica_chamada(self):
        """
        Cenário: Várias alterações dentro do intervalo resultam em uma
        única chamada com o estado final do carrinho.
        """
        self.carrinho.add_item(self.agua)
        self.carrinho.add_item(self.suco)
        self.carrinho.set_quantity('A', 3)

        await self.pipeline.aguardar()

        self.recomendador.sugerir_proximo.assert_awaited_once_with(['A', 'B'], ['A', 'C'])
        self.assertEqual(self.pipeline.sugestao, Sugestao('C', 0.8))
        self.assertEqual(self.pipeline.produto_sugerido, self.pao)
        self.assertFalse(self.pipeline.buscando)

    async def test_esvaziar_carrinho_cancela_busca_e_limpa_sugestao(self):
        self.carrinho.add_item(self.agua)
        await self.pipeline.aguardar()
        self.assertIsNotNone(self.pipeline.sugestao)

        self.carrinho.add_item(self.suco)
        self.assertIsNone(self.pipeline.sugestao)
        self.carrinho.set_quantity('A', 0)
        self.carrinho.set_quantity('B', 0)
        await asyncio.sleep(self.INTERVALO * 3)

        self.assertEqual(self.recomendador.sugerir_proximo.await_count, 1)
        self.assertIsNone(self.pipeline.sugestao)
        self.assertIsNone(self.pipeline.produto_sugerido)

    async def test_resposta_antiga_e_descartada(self):
        """
        Cenário: O carrinho muda enquanto a requisição está em andamento.
        Somente a resposta da requisição mais recente é aplicada.
        """
        chamadas = []

        def responder(pedido_atual, historico):
            chamadas.append(list(pedido_atual))
            if len(chamadas) == 1:
                self.carrinho.add_item(self.suco)
                return Sugestao('C', 0.9)
            return Sugestao('A', 0.4)

        self.recomendador.sugerir_proximo.side_effect = responder
        self.carrinho.add_item(self.agua)

        await self.pipeline.aguardar()

        self.assertEqual(chamadas, [['A'], ['A', 'B']])
        self.assertEqual(self.pipeline.sugestao, Sugestao('A', 0.4))

    async def test_falha_do_recomendador_resulta_em_sem_sugestao(self):
        self.recomendador.sugerir_proximo.side_effect = SugestaoIndisponivelError("fora do ar")

        with self.assertLogs('pema.core.sugestoes', level='WARNING'):
            self.carrinho.add_item(self.agua)
            await self.pipeline.aguardar()

        self.assertIsNone(self.pipeline.sugestao)
        self.assertFalse(self.pipeline.buscando)

    async def test_sugestao_de_produto_inativo_e_ignorada(self):
        self.recomendador.sugerir_proximo.return_value = Sugestao('I', 0.99)

        self.carrinho.add_item(self.agua)
        await self.pipeline.aguardar()

        self.assertIsNone(self.pipeline.sugestao)
        self.assertIsNone(self.pipeline.produto_sugerido)

    async def test_ouvinte_recebe_a_sugestao(self):
        ouvinte = Mock()
        self.pipeline.inscrever(ouvinte)

        self.carrinho.add_item(self.agua)
        await self.pipeline.aguardar()

        ouvinte.assert_called_once_with(Sugestao('C', 0.8), self.pao)

    async def test_encerrar_desliga_o_pipeline(self):
        self.pipeline.encerrar()

        self.carrinho.add_item(self.agua)
        await asyncio.sleep(self.INTERVALO * 3)

        self.recomendador.sugerir_proximo.assert_not_awaited()


# ====================================================================
# SESSÃO
# ====================================================================

class TestSessaoPDV(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.pao = produto('C', '1.00')
        self.persistencia = PersistenciaEmMemoria(catalogo=[produto('A', '2.50'), self.pao])
        self.recomendador = Mock()
        self.recomendador.sugerir_proximo = AsyncMock(return_value=Sugestao('C', 0.7))
        self.sessao = SessaoPDV(
            usuario=Usuario(nome='Ana', locais=['Loja Centro'], chave_pix='ana@pix'),
            persistencia=self.persistencia,
            recomendador=self.recomendador,
            relogio=criar_relogio(),
            intervalo_sugestao=0.01,
        )

    async def asyncTearDown(self):
        self.sessao.encerrar()

    async def test_adicionar_sugestao_ao_carrinho(self):
        self.assertFalse(self.sessao.adicionar_sugestao())

        self.sessao.carrinho.add_item(self.sessao.loja.buscar_produto_ativo('A'))
        await self.sessao.sugestoes.aguardar()

        self.assertTrue(self.sessao.adicionar_sugestao())
        self.assertEqual(self.sessao.carrinho.codigos(), ['A', 'C'])

    async def test_fluxo_completo_e_relatorio(self):
        self.sessao.carrinho.add_item(self.pao)
        self.sessao.checkout.iniciar_checkout()
        self.sessao.checkout.confirmar_pagamento(FormaPagamento.DINHEIRO, valor_recebido='5')

        relatorio = self.sessao.relatorio()

        self.assertEqual(relatorio.resumo.faturamento, Decimal('1.00'))
        self.assertEqual(relatorio.por_local[0].local, 'Loja Centro')

    async def test_encerrar_sessao(self):
        self.sessao.carrinho.add_item(self.pao)
        self.sessao.checkout.iniciar_checkout()

        self.sessao.encerrar('logout')

        self.assertFalse(self.sessao.ativa)
        self.assertEqual(self.sessao.checkout.estado, EstadoCheckout.OCIOSO)
        self.assertIsNone(self.sessao.sugestoes.sugestao)


class TestSessaoSemLoopEmExecucao(unittest.TestCase):
    """Sessões montadas fora de um loop de eventos (código síncrono)."""

    def setUp(self):
        self.agua = produto('A', '2.50')
        self.pao = produto('C', '1.00')
        self.recomendador = Mock()
        self.recomendador.sugerir_proximo = AsyncMock(return_value=Sugestao('C', 0.7))

    def criar_sessao(self, loop=None):
        sessao = SessaoPDV(
            usuario=Usuario(nome='Ana', locais=['Loja Centro'], chave_pix='ana@pix'),
            persistencia=PersistenciaEmMemoria(catalogo=[self.agua, self.pao]),
            recomendador=self.recomendador,
            relogio=criar_relogio(),
            intervalo_sugestao=0.01,
            loop=loop,
        )
        self.addCleanup(sessao.encerrar)
        return sessao

    def test_adicionar_item_sem_loop_segue_sem_sugestao(self):
        sessao = self.criar_sessao()
        ouvinte = Mock()
        sessao.carrinho.inscrever(ouvinte)

        with self.assertLogs('pema.core.sugestoes', level='DEBUG'):
            sessao.carrinho.add_item(self.agua)

        self.assertEqual(sessao.carrinho.codigos(), ['A'])
        ouvinte.assert_called_once()
        self.assertIsNone(sessao.sugestoes.sugestao)
        self.recomendador.sugerir_proximo.assert_not_called()

    def test_loop_informado_recebe_a_busca(self):
        loop = asyncio.new_event_loop()
        self.addCleanup(loop.close)
        sessao = self.criar_sessao(loop)

        sessao.carrinho.add_item(self.agua)
        loop.run_until_complete(sessao.sugestoes.aguardar())

        self.recomendador.sugerir_proximo.assert_awaited_once_with(['A'], [])
        self.assertEqual(sessao.sugestoes.produto_sugerido, self.pao)
