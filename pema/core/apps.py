# pema/core/apps.py

from django.apps import AppConfig

class CoreConfig(AppConfig):
    # O nome completo do path da aplicação
    name = 'pema.core'
    label = 'core'
    verbose_name = 'Núcleo do PDV (Carrinho, Checkout, Sugestões e Relatórios)'

    # A camada core não tem modelos; a persistência fica na infraestrutura.
    default_auto_field = 'django.db.models.BigAutoField'
