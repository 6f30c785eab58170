# pema/infrastructure/tests.py

import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from unittest.mock import Mock, patch

import requests
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from pema.core.entities import FormaPagamento, ItemPedido, PedidoConcluido, Produto, Sugestao, Usuario
from pema.core.exceptions import PersistenciaError, SugestaoIndisponivelError
from pema.infrastructure.gateways import RecomendacaoHttpGateway
from pema.infrastructure.instances import criar_sessao
from pema.infrastructure.mappers import PedidoConcluidoMapper, ProdutoMapper
from pema.infrastructure.models import RegistroArmazenado
from pema.infrastructure.repositories import PersistenciaDjango, RelogioSistema


def criar_pedido():
    bolo = Produto(codigo='BOLO', categoria='Doces', descricao='Bolo de cenoura', preco=Decimal('19.90'))
    return PedidoConcluido(
        id='pedido-1',
        data=datetime(2024, 1, 15, 13, 30, tzinfo=timezone.utc),
        itens=[ItemPedido(produto=bolo, quantidade=1)],
        total=Decimal('19.90'),
        forma_pagamento=FormaPagamento.DINHEIRO,
        local='Loja Centro',
        valor_recebido=Decimal('20.00'),
        troco=Decimal('0.10'),
    )


# ====================================================================
# PERSISTÊNCIA
# ====================================================================

class TestPersistenciaDjango(TestCase):

    def setUp(self):
        self.persistencia = PersistenciaDjango()

    def test_armazenamento_vazio(self):
        self.assertEqual(self.persistencia.carregar_catalogo(), [])
        self.assertEqual(self.persistencia.carregar_pedidos_concluidos(), [])
        self.assertEqual(self.persistencia.carregar_historico(), [])

    def test_pedidos_preservam_decimais_exatos(self):
        """
        Cenário: Gravar e reler uma venda em dinheiro sem perder centavos.
        """
        pedido = criar_pedido()

        self.persistencia.salvar_pedidos_concluidos([pedido])
        relidos = self.persistencia.carregar_pedidos_concluidos()

        self.assertEqual(relidos, [pedido])
        self.assertEqual(relidos[0].troco, Decimal('0.10'))
        registro = RegistroArmazenado.objects.get(chave=RegistroArmazenado.CHAVE_PEDIDOS)
        self.assertEqual(registro.valor[0]['total'], '19.90')

    def test_salvar_substitui_o_documento(self):
        self.persistencia.salvar_historico(['A'])
        self.persistencia.salvar_historico(['A', 'B'])

        self.assertEqual(self.persistencia.carregar_historico(), ['A', 'B'])
        self.assertEqual(RegistroArmazenado.objects.count(), 1)

    def test_catalogo(self):
        produtos = [
            Produto(codigo='A', categoria='Bebidas', descricao='Água', preco=Decimal('2.50')),
            Produto(codigo='B', categoria='Bebidas', descricao='Suco', preco=Decimal('7.90'), ativo=False),
        ]

        self.persistencia.salvar_catalogo(produtos)

        self.assertEqual(self.persistencia.carregar_catalogo(), produtos)

    def test_documento_corrompido(self):
        RegistroArmazenado.objects.create(chave=RegistroArmazenado.CHAVE_PEDIDOS, valor=[{'id': 'sem-data'}])

        with self.assertRaises(PersistenciaError):
            self.persistencia.carregar_pedidos_concluidos()

    def test_documento_que_nao_e_lista(self):
        RegistroArmazenado.objects.create(chave=RegistroArmazenado.CHAVE_CATALOGO, valor={'codigo': 'A'})

        with self.assertRaises(PersistenciaError):
            self.persistencia.carregar_catalogo()

    def test_str_do_registro(self):
        registro = RegistroArmazenado.objects.create(chave=RegistroArmazenado.CHAVE_HISTORICO, valor=['A', 'B'])
        self.assertEqual(str(registro), 'historico_pedidos (2 itens)')


class TestMappers(unittest.TestCase):

    def test_data_com_sufixo_z(self):
        dados = PedidoConcluidoMapper.to_dict(criar_pedido())
        dados['data'] = '2024-01-15T13:30:00.000Z'

        pedido = PedidoConcluidoMapper.to_entity(dados)

        self.assertEqual(pedido.data, datetime(2024, 1, 15, 13, 30, tzinfo=timezone.utc))

    def test_pedido_sem_troco(self):
        dados = PedidoConcluidoMapper.to_dict(criar_pedido())
        dados.update(forma_pagamento='pix', valor_recebido=None, troco=None, local=None)

        pedido = PedidoConcluidoMapper.to_entity(dados)

        self.assertEqual(pedido.forma_pagamento, FormaPagamento.PIX)
        self.assertIsNone(pedido.troco)
        self.assertIsNone(pedido.local)

    def test_produto_usa_padroes(self):
        produto = ProdutoMapper.to_entity({'codigo': 'A', 'preco': '1.5'})

        self.assertTrue(produto.ativo)
        self.assertEqual(produto.preco, Decimal('1.5'))


class TestRelogioSistema(unittest.TestCase):

    def test_ids_unicos(self):
        relogio = RelogioSistema()
        ids = {relogio.novo_id() for _ in range(100)}
        self.assertEqual(len(ids), 100)


# ====================================================================
# GATEWAY DE RECOMENDAÇÃO
# ====================================================================

class TestRecomendacaoHttpGateway(unittest.TestCase):

    def setUp(self):
        self.gateway = RecomendacaoHttpGateway(api_url='http://recomendacao.test/sugestoes', api_key='segredo', timeout=2)

    @patch('pema.infrastructure.gateways.requests.post')
    def test_sugestao_com_sucesso(self, mock_post):
        mock_post.return_value.json.return_value = {'codigo_produto': 'C', 'confianca': 0.8}

        sugestao = self.gateway.sugerir(['A', 'B'], ['A', 'C'])

        self.assertEqual(sugestao, Sugestao('C', 0.8))
        mock_post.assert_called_once_with(
            'http://recomendacao.test/sugestoes',
            json={'pedido_atual': ['A', 'B'], 'historico': ['A', 'C']},
            headers={'Content-Type': 'application/json', 'Authorization': 'Bearer segredo'},
            timeout=2,
        )

    @patch('pema.infrastructure.gateways.requests.post')
    def test_aceita_resposta_no_formato_em_ingles(self, mock_post):
        mock_post.return_value.json.return_value = {'suggestedProductCode': 'C', 'confidence': 0.5}

        self.assertEqual(self.gateway.sugerir(['A'], []), Sugestao('C', 0.5))

    @patch('pema.infrastructure.gateways.requests.post')
    def test_erro_http_vira_sugestao_indisponivel(self, mock_post):
        mock_post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError('503')

        with self.assertRaises(SugestaoIndisponivelError):
            self.gateway.sugerir(['A'], [])

    @patch('pema.infrastructure.gateways.requests.post')
    def test_erro_de_conexao(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('recusada')

        with self.assertRaises(SugestaoIndisponivelError):
            self.gateway.sugerir(['A'], [])

    @patch('pema.infrastructure.gateways.requests.post')
    def test_resposta_malformada(self, mock_post):
        for corpo in ({'codigo_produto': 'C'}, {'codigo_produto': 'C', 'confianca': 7}, ['C']):
            with self.subTest(corpo=corpo):
                mock_post.return_value.json.return_value = corpo
                with self.assertRaises(SugestaoIndisponivelError):
                    self.gateway.sugerir(['A'], [])

    @patch('pema.infrastructure.gateways.requests.post')
    def test_pedido_vazio_nao_chama_o_servico(self, mock_post):
        with self.assertRaises(SugestaoIndisponivelError):
            self.gateway.sugerir([], ['A'])
        mock_post.assert_not_called()

    def test_sem_chave_registra_aviso(self):
        with self.assertLogs('pema.infrastructure.gateways', level='WARNING'):
            gateway = RecomendacaoHttpGateway(api_url='http://recomendacao.test', api_key='', timeout=1)
        self.assertNotIn('Authorization', gateway.headers)


class TestRecomendacaoHttpGatewayAssincrono(unittest.IsolatedAsyncioTestCase):

    @patch('pema.infrastructure.gateways.requests.post')
    async def test_sugerir_proximo_roda_em_thread(self, mock_post):
        mock_post.return_value = Mock(**{'json.return_value': {'codigo_produto': 'B', 'confianca': 1}})
        gateway = RecomendacaoHttpGateway(api_url='http://recomendacao.test', api_key='segredo', timeout=1)

        sugestao = await gateway.sugerir_proximo(['A'], [])

        self.assertEqual(sugestao, Sugestao('B', 1.0))


# ====================================================================
# COMANDO DE CARGA DO CATÁLOGO
# ====================================================================

class TestCarregarCatalogo(TestCase):

    def escrever_json(self, conteudo):
        arquivo = tempfile.NamedTemporaryFile('w', suffix='.json', delete=False, encoding='utf-8')
        with arquivo:
            json.dump(conteudo, arquivo)
        self.addCleanup(os.remove, arquivo.name)
        return arquivo.name

    def test_carrega_e_mescla_por_codigo(self):
        PersistenciaDjango().salvar_catalogo([
            Produto(codigo='A', categoria='Bebidas', descricao='Água', preco=Decimal('2.00')),
            Produto(codigo='Z', categoria='Outros', descricao='Antigo', preco=Decimal('1.00')),
        ])
        caminho = self.escrever_json([
            {'codigo': 'A', 'categoria': 'Bebidas', 'descricao': 'Água', 'preco': '2.50'},
            {'code': 'B', 'category': 'Bebidas', 'description': 'Suco', 'price': 7.9, 'active': False},
        ])
        saida = StringIO()

        call_command('carregar_catalogo', caminho, stdout=saida)

        catalogo = {p.codigo: p for p in PersistenciaDjango().carregar_catalogo()}
        self.assertEqual(set(catalogo), {'A', 'B', 'Z'})
        self.assertEqual(catalogo['A'].preco, Decimal('2.50'))
        self.assertEqual(catalogo['B'].preco, Decimal('7.9'))
        self.assertFalse(catalogo['B'].ativo)
        self.assertIn('2 produtos carregados', saida.getvalue())

    def test_substituir_catalogo(self):
        PersistenciaDjango().salvar_catalogo([
            Produto(codigo='Z', categoria='Outros', descricao='Antigo', preco=Decimal('1.00')),
        ])
        caminho = self.escrever_json([{'codigo': 'A', 'categoria': 'Bebidas', 'descricao': 'Água', 'preco': '2.50'}])

        call_command('carregar_catalogo', caminho, '--substituir', stdout=StringIO())

        self.assertEqual([p.codigo for p in PersistenciaDjango().carregar_catalogo()], ['A'])

    def test_produto_invalido(self):
        caminho = self.escrever_json([{'codigo': 'A', 'preco': '-1'}])

        with self.assertRaises(CommandError):
            call_command('carregar_catalogo', caminho, stdout=StringIO())

    def test_arquivo_inexistente(self):
        with self.assertRaises(CommandError):
            call_command('carregar_catalogo', '/caminho/que/nao/existe.json', stdout=StringIO())


# ====================================================================
# MONTAGEM DA SESSÃO
# ====================================================================

class TestCriarSessao(TestCase):

    @override_settings(SUGESTAO_DEBOUNCE_MS=250, CARTAO_ATRASO_SEGUNDOS=3, RECOMENDACAO_API_KEY='segredo')
    def test_sessao_usa_as_configuracoes(self):
        PersistenciaDjango().salvar_catalogo([
            Produto(codigo='A', categoria='Bebidas', descricao='Água', preco=Decimal('2.50')),
        ])

        sessao = criar_sessao(Usuario(nome='Ana', locais=['Loja Centro']))

        self.assertEqual(sessao.sugestoes.intervalo, 0.25)
        self.assertEqual(sessao.checkout.atraso_cartao, 3)
        self.assertEqual([p.codigo for p in sessao.loja.catalogo], ['A'])
        sessao.encerrar()

    @patch('pema.infrastructure.gateways.requests.post')
    def test_sessao_sincrona_aceita_itens_sem_loop(self, mock_post):
        """
        Cenário: Sessão montada em código síncrono (sem loop de eventos).
        O carrinho funciona e o terminal apenas fica sem sugestão.
        """
        PersistenciaDjango().salvar_catalogo([
            Produto(codigo='A', categoria='Bebidas', descricao='Água', preco=Decimal('2.50')),
        ])
        sessao = criar_sessao(Usuario(nome='Ana', locais=['Loja Centro']))
        self.addCleanup(sessao.encerrar)

        sessao.carrinho.add_item(sessao.loja.buscar_produto_ativo('A'))

        self.assertEqual(sessao.carrinho.codigos(), ['A'])
        self.assertIsNone(sessao.sugestoes.sugestao)
        mock_post.assert_not_called()
