# Configuração da interface administrativa do Django para os registros do PDV.

from django.contrib import admin

from pema.infrastructure.models import RegistroArmazenado


@admin.register(RegistroArmazenado)
class RegistroArmazenadoAdmin(admin.ModelAdmin):
    """Permite inspecionar os documentos gravados. A edição é feita pelo PDV."""
    list_display = ('chave', 'quantidade_itens', 'atualizado_em')
    readonly_fields = ('chave', 'valor', 'atualizado_em')

    @admin.display(description='Itens')
    def quantidade_itens(self, obj):
        return len(obj.valor) if isinstance(obj.valor, list) else 0

    def has_add_permission(self, request):
        return False
