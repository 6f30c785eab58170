# Define os modelos do banco de dados para a camada de infraestrutura.

from django.db import models


# ====================================================================
# ARMAZENAMENTO CHAVE-VALOR
# ====================================================================

class RegistroArmazenado(models.Model):
    """
    Documento JSON identificado por uma chave. Guarda o catálogo, as vendas
    concluídas e o histórico de códigos, cada um em um único registro.
    """
    CHAVE_CATALOGO = 'catalogo'
    CHAVE_PEDIDOS = 'pedidos_concluidos'
    CHAVE_HISTORICO = 'historico_pedidos'

    CHAVES = [
        (CHAVE_CATALOGO, 'Catálogo de produtos'),
        (CHAVE_PEDIDOS, 'Vendas concluídas'),
        (CHAVE_HISTORICO, 'Histórico de códigos vendidos'),
    ]

    chave = models.CharField(max_length=50, unique=True, choices=CHAVES, verbose_name="Chave")
    valor = models.JSONField(default=list, verbose_name="Valor")
    atualizado_em = models.DateTimeField(auto_now=True, verbose_name="Atualizado em")

    class Meta:
        verbose_name = 'Registro Armazenado'
        verbose_name_plural = 'Registros Armazenados'
        db_table = 'pdv_registro_armazenado'
        ordering = ['chave']

    def __str__(self):
        tamanho = len(self.valor) if isinstance(self.valor, list) else 0
        return f"{self.chave} ({tamanho} itens)"
