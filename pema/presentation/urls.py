"""
Define as rotas da API REST de consulta do PDV (catálogo, vendas e relatórios).
"""
from django.urls import path
from . import views


urlpatterns = [
    path('produtos/', views.ProdutosAPIView.as_view(), name='api_produtos'),
    path('pedidos/', views.PedidosAPIView.as_view(), name='api_pedidos'),
    path('relatorios/vendas/', views.RelatorioVendasAPIView.as_view(), name='api_relatorio_vendas'),
]
