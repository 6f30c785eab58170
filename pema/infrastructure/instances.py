"""
Módulo de montagem da sessão do terminal com as implementações concretas.
Deve ser importado somente depois que o Django estiver configurado.
"""
from django.conf import settings

from pema.core.entities import Usuario
from pema.core.sessao import SessaoPDV

from .gateways import RecomendacaoHttpGateway
from .repositories import PersistenciaDjango, RelogioSistema


def criar_sessao(usuario: Usuario, loop=None) -> SessaoPDV:
    """
    Abre uma sessão de PDV com a persistência Django e o recomendador HTTP.
    Sem `loop` as sugestões usam o loop em execução no momento da alteração
    do carrinho; fora de um loop o terminal segue sem sugestões.
    """
    return SessaoPDV(
        usuario=usuario,
        persistencia=PersistenciaDjango(),
        recomendador=RecomendacaoHttpGateway(),
        relogio=RelogioSistema(),
        intervalo_sugestao=settings.SUGESTAO_DEBOUNCE_MS / 1000,
        atraso_cartao=settings.CARTAO_ATRASO_SEGUNDOS,
        loop=loop,
    )
