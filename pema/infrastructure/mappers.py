"""
Mapeadores (Mappers) para converter entre:
1. Documentos JSON guardados no RegistroArmazenado
2. Entidades de Domínio (pema.core.entities)

Valores monetários são gravados como texto para não perder precisão e datas
em ISO-8601.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pema.core.entities import (
    FormaPagamento,
    ItemVendido,
    PedidoConcluido,
    Produto,
    para_decimal,
)
from pema.core.exceptions import BaseErroCore, PersistenciaError


def _decimal_ou_none(valor) -> Optional[str]:
    return None if valor is None else str(valor)


def _ler_data(valor: str) -> datetime:
    # Aceita também o sufixo 'Z' gerado por clientes JavaScript.
    if isinstance(valor, str) and valor.endswith('Z'):
        valor = valor[:-1] + '+00:00'
    return datetime.fromisoformat(valor)


class ProdutoMapper:

    @staticmethod
    def to_dict(produto: Produto) -> Dict[str, Any]:
        return {
            'codigo': produto.codigo,
            'categoria': produto.categoria,
            'descricao': produto.descricao,
            'preco': str(produto.preco),
            'ativo': produto.ativo,
            'url_imagem': produto.url_imagem,
        }

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> Produto:
        return Produto(
            codigo=dados['codigo'],
            categoria=dados.get('categoria', ''),
            descricao=dados.get('descricao', ''),
            preco=para_decimal(dados['preco']),
            ativo=bool(dados.get('ativo', True)),
            url_imagem=dados.get('url_imagem'),
        )


class ItemVendidoMapper:

    @staticmethod
    def to_dict(item: ItemVendido) -> Dict[str, Any]:
        return {
            'produto': ProdutoMapper.to_dict(item.produto),
            'quantidade': item.quantidade,
        }

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> ItemVendido:
        return ItemVendido(
            produto=ProdutoMapper.to_entity(dados['produto']),
            quantidade=int(dados['quantidade']),
        )


class PedidoConcluidoMapper:

    @staticmethod
    def to_dict(pedido: PedidoConcluido) -> Dict[str, Any]:
        return {
            'id': pedido.id,
            'data': pedido.data.isoformat(),
            'itens': [ItemVendidoMapper.to_dict(item) for item in pedido.itens],
            'total': str(pedido.total),
            'forma_pagamento': pedido.forma_pagamento.value,
            'local': pedido.local,
            'valor_recebido': _decimal_ou_none(pedido.valor_recebido),
            'troco': _decimal_ou_none(pedido.troco),
        }

    @staticmethod
    def to_entity(dados: Dict[str, Any]) -> PedidoConcluido:
        valor_recebido = dados.get('valor_recebido')
        troco = dados.get('troco')
        return PedidoConcluido(
            id=dados['id'],
            data=_ler_data(dados['data']),
            itens=[ItemVendidoMapper.to_entity(item) for item in dados.get('itens', [])],
            total=para_decimal(dados['total']),
            forma_pagamento=FormaPagamento(dados['forma_pagamento']),
            local=dados.get('local') or None,
            valor_recebido=None if valor_recebido is None else para_decimal(valor_recebido),
            troco=None if troco is None else para_decimal(troco),
        )


def converter_lista(documento, conversor, chave: str) -> List:
    """Aplica o conversor a cada elemento, traduzindo falhas para PersistenciaError."""
    if not isinstance(documento, list):
        raise PersistenciaError(f"Documento '{chave}' deveria ser uma lista.")
    try:
        return [conversor(elemento) for elemento in documento]
    except (KeyError, TypeError, ValueError, BaseErroCore) as e:
        raise PersistenciaError(f"Documento '{chave}' corrompido: {e}")
