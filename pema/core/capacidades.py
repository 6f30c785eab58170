"""
Regras de capacidade por papel/usuário.

Centraliza as decisões que dependem do perfil de quem opera o terminal, para
que o checkout não compare strings de papel espalhadas pelo código.
"""
from typing import Optional

from pema.core.entities import Papel, Usuario


def pode_alterar_data_venda(papel: Papel) -> bool:
    """Todos os papéis, exceto o vendedor, podem registrar venda com outra data."""
    return Papel(papel) is not Papel.VENDEDOR


def requer_escolha_local(usuario: Usuario) -> bool:
    """O operador precisa escolher o local quando tem mais de um configurado."""
    return len(usuario.locais) > 1


def exige_local(usuario: Usuario) -> bool:
    """Com ao menos um local configurado, toda venda precisa de um local."""
    return len(usuario.locais) >= 1


def local_automatico(usuario: Usuario) -> Optional[str]:
    """Com um único local configurado, ele é selecionado sem perguntar."""
    if len(usuario.locais) == 1:
        return usuario.locais[0]
    return None
