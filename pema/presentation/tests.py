# pema/presentation/tests.py

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from pema.core.entities import FormaPagamento, ItemPedido, PedidoConcluido, Produto
from pema.infrastructure.models import RegistroArmazenado
from pema.infrastructure.repositories import PersistenciaDjango


class TestApiDeConsulta(APITestCase):

    def setUp(self):
        """
        Grava um catálogo e três vendas em dias diferentes.
        Horários em UTC que caem no mesmo dia no fuso de São Paulo.
        """
        self.persistencia = PersistenciaDjango()
        self.agua = Produto(codigo='A', categoria='Bebidas', descricao='Água', preco=Decimal('2.50'))
        self.suco = Produto(codigo='B', categoria='Bebidas', descricao='Suco', preco=Decimal('7.90'))
        inativo = Produto(codigo='I', categoria='Bebidas', descricao='Refrigerante', preco=Decimal('5.00'), ativo=False)
        self.persistencia.salvar_catalogo([self.agua, self.suco, inativo])
        self.persistencia.salvar_pedidos_concluidos([
            self.criar_pedido('p1', datetime(2024, 1, 1, 12, tzinfo=dt_timezone.utc), [(self.agua, 2), (self.suco, 5)], 'Feira'),
            self.criar_pedido('p2', datetime(2024, 1, 1, 15, tzinfo=dt_timezone.utc), [(self.agua, 3)], None, FormaPagamento.PIX),
            self.criar_pedido('p3', datetime(2024, 1, 2, 12, tzinfo=dt_timezone.utc), [(self.suco, 1)], 'Feira'),
        ])

    @staticmethod
    def criar_pedido(id, data, itens, local, forma=FormaPagamento.DINHEIRO):
        itens = [ItemPedido(produto=p, quantidade=q) for p, q in itens]
        total = sum((i.subtotal for i in itens), Decimal('0'))
        return PedidoConcluido(id=id, data=data, itens=itens, total=total, forma_pagamento=forma, local=local)

    def test_lista_somente_produtos_ativos(self):
        response = self.client.get(reverse('api_produtos'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['codigo'] for p in response.data], ['A', 'B'])
        self.assertEqual(response.data[0]['preco'], '2.50')

    def test_pedidos_do_mais_recente_para_o_mais_antigo(self):
        response = self.client.get(reverse('api_pedidos'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in response.data], ['p3', 'p2', 'p1'])
        self.assertEqual(response.data[0]['forma_pagamento'], 'dinheiro')

    def test_pedidos_filtrados_por_dia(self):
        response = self.client.get(reverse('api_pedidos'), {'de': '2024-01-01'})

        self.assertEqual([p['id'] for p in response.data], ['p2', 'p1'])

    def test_relatorio_de_vendas(self):
        """
        Cenário: Relatório de um intervalo com resumo, dias, locais e ranking.
        """
        response = self.client.get(reverse('api_relatorio_vendas'), {'de': '2024-01-01', 'ate': '2024-01-02'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dados = response.data
        self.assertEqual(dados['periodo'], {'inicio': '2024-01-01', 'fim': '2024-01-02'})
        self.assertEqual(dados['resumo']['faturamento'], '59.90')
        self.assertEqual(dados['resumo']['quantidade_pedidos'], 3)
        self.assertEqual(dados['resumo']['itens_vendidos'], 11)
        self.assertEqual(dados['resumo']['ticket_medio'], '19.97')
        self.assertEqual(
            [(d['dia'], d['total']) for d in dados['por_dia']],
            [('2024-01-01', '52.00'), ('2024-01-02', '7.90')],
        )
        self.assertEqual(
            [(f['forma_pagamento'], f['quantidade_pedidos']) for f in dados['por_forma_pagamento']],
            [('dinheiro', 2), ('pix', 1)],
        )
        self.assertEqual([(v['local'], v['total']) for v in dados['por_local']], [('Feira', '52.40'), ('N/A', '7.50')])
        self.assertEqual(
            [(p['produto']['codigo'], p['quantidade']) for p in dados['mais_vendidos']],
            [('B', 6), ('A', 5)],
        )
        self.assertEqual([p['id'] for p in dados['pedidos']], ['p3', 'p2', 'p1'])

    def test_relatorio_sem_filtro_usa_todo_o_historico(self):
        response = self.client.get(reverse('api_relatorio_vendas'))

        self.assertIsNone(response.data['periodo'])
        self.assertEqual(response.data['resumo']['quantidade_pedidos'], 3)

    def test_relatorio_do_dia_atual(self):
        with patch('pema.presentation.views.timezone.localdate', return_value=datetime(2024, 1, 2).date()):
            response = self.client.get(reverse('api_relatorio_vendas'), {'periodo': 'hoje'})

        self.assertEqual(response.data['resumo']['quantidade_pedidos'], 1)
        self.assertEqual(response.data['resumo']['faturamento'], '7.90')

    def test_parametros_invalidos(self):
        for parametros in ({'ate': '2024-01-01'}, {'de': '2024-01-02', 'ate': '2024-01-01'},
                           {'periodo': 'semana'}, {'periodo': 'hoje', 'de': '2024-01-01'}):
            with self.subTest(parametros=parametros):
                response = self.client.get(reverse('api_relatorio_vendas'), parametros)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_armazenamento_corrompido(self):
        RegistroArmazenado.objects.filter(chave=RegistroArmazenado.CHAVE_PEDIDOS).update(valor=[{'id': 'x'}])

        with self.assertLogs('pema.presentation.views', level='ERROR'):
            response = self.client.get(reverse('api_pedidos'))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_schema_da_api(self):
        response = self.client.get(reverse('schema'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
