from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RegistroArmazenado',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('chave', models.CharField(choices=[('catalogo', 'Catálogo de produtos'), ('pedidos_concluidos', 'Vendas concluídas'), ('historico_pedidos', 'Histórico de códigos vendidos')], max_length=50, unique=True, verbose_name='Chave')),
                ('valor', models.JSONField(default=list, verbose_name='Valor')),
                ('atualizado_em', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
            ],
            options={
                'verbose_name': 'Registro Armazenado',
                'verbose_name_plural': 'Registros Armazenados',
                'db_table': 'pdv_registro_armazenado',
                'ordering': ['chave'],
            },
        ),
    ]
