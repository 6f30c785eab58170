import json

from django.core.management.base import BaseCommand, CommandError

from pema.core.entities import Produto
from pema.core.exceptions import BaseErroCore
from pema.infrastructure.repositories import PersistenciaDjango

# Chaves aceitas no arquivo: em português ou em inglês.
_CAMPOS = {
    'codigo': ('codigo', 'code'),
    'categoria': ('categoria', 'category'),
    'descricao': ('descricao', 'description'),
    'preco': ('preco', 'price'),
    'ativo': ('ativo', 'active'),
    'url_imagem': ('url_imagem', 'imageUrl'),
}


def _valor(dados, campo, padrao=None):
    for chave in _CAMPOS[campo]:
        if chave in dados:
            return dados[chave]
    return padrao


class Command(BaseCommand):
    help = 'Carrega o catálogo de produtos a partir de um arquivo JSON'

    def add_arguments(self, parser):
        parser.add_argument('arquivo', help='Arquivo JSON com a lista de produtos')
        parser.add_argument(
            '--substituir',
            action='store_true',
            help='Substitui o catálogo inteiro em vez de mesclar por código',
        )

    def handle(self, *args, **options):
        try:
            with open(options['arquivo'], encoding='utf-8') as arquivo:
                dados = json.load(arquivo)
        except (OSError, ValueError) as e:
            raise CommandError(f"Não foi possível ler {options['arquivo']}: {e}")

        if not isinstance(dados, list):
            raise CommandError('O arquivo deve conter uma lista de produtos.')

        novos = []
        for posicao, item in enumerate(dados, start=1):
            try:
                novos.append(Produto(
                    codigo=str(_valor(item, 'codigo', '')),
                    categoria=_valor(item, 'categoria', ''),
                    descricao=_valor(item, 'descricao', ''),
                    preco=_valor(item, 'preco', 0),
                    ativo=bool(_valor(item, 'ativo', True)),
                    url_imagem=_valor(item, 'url_imagem'),
                ))
            except (BaseErroCore, AttributeError, TypeError) as e:
                raise CommandError(f'Produto {posicao} inválido: {e}')

        persistencia = PersistenciaDjango()
        if options['substituir']:
            catalogo = novos
        else:
            por_codigo = {p.codigo: p for p in persistencia.carregar_catalogo()}
            for produto in novos:
                por_codigo[produto.codigo] = produto
            catalogo = list(por_codigo.values())

        persistencia.salvar_catalogo(catalogo)
        self.stdout.write(self.style.SUCCESS(
            f'{len(novos)} produtos carregados; catálogo com {len(catalogo)} produtos.'
        ))
