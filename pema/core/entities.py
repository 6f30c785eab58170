from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from pema.core.exceptions import DadosInvalidosError

# ====================================================================
# ENTIDADES CORE
# Representam os objetos de negócio puros do PDV.
# ====================================================================


def para_decimal(valor) -> Decimal:
    """
    Converte um valor monetário para Decimal sem passar por ponto flutuante binário.
    Floats são convertidos pela representação textual (19.9 -> Decimal('19.9')).
    """
    try:
        convertido = valor if isinstance(valor, Decimal) else Decimal(str(valor))
    except (InvalidOperation, ValueError, TypeError):
        raise DadosInvalidosError(f"Valor monetário inválido: {valor!r}")
    if not convertido.is_finite():
        raise DadosInvalidosError(f"Valor monetário inválido: {valor!r}")
    return convertido


class FormaPagamento(str, Enum):
    DINHEIRO = 'dinheiro'
    PIX = 'pix'
    CARTAO = 'cartao'

    @property
    def rotulo(self) -> str:
        return {'dinheiro': 'Dinheiro', 'pix': 'PIX', 'cartao': 'Cartão'}[self.value]


class Papel(str, Enum):
    """Papéis de usuário. VENDEDOR é o papel base de vendas."""
    VENDEDOR = 'vendedor'
    GERENTE = 'gerente'
    ADMIN = 'admin'


class EstadoCheckout(str, Enum):
    OCIOSO = 'ocioso'
    LOCAL_PENDENTE = 'local_pendente'
    PAGAMENTO_PENDENTE = 'pagamento_pendente'
    PROCESSANDO = 'processando'
    CONCLUIDO = 'concluido'


@dataclass(frozen=True)
class Usuario:
    """Usuário que opera o terminal: papel, locais de venda e chave PIX."""
    nome: str
    papel: Papel = Papel.VENDEDOR
    locais: Tuple[str, ...] = ()
    chave_pix: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'papel', Papel(self.papel))
        object.__setattr__(self, 'locais', tuple(self.locais))


@dataclass(frozen=True)
class Produto:
    """Entidade do Produto do catálogo. Imutável durante um pedido."""
    codigo: str
    categoria: str
    descricao: str
    preco: Decimal
    ativo: bool = True
    url_imagem: Optional[str] = None

    def __post_init__(self):
        if not self.codigo:
            raise DadosInvalidosError("O código do produto é obrigatório.")
        preco = para_decimal(self.preco)
        if preco < 0:
            raise DadosInvalidosError(f"Preço negativo para o produto {self.codigo}.")
        object.__setattr__(self, 'preco', preco)


@dataclass
class ItemPedido:
    """Item do pedido: referência ao produto e quantidade (>= 1)."""
    produto: Produto
    quantidade: int = 1

    @property
    def subtotal(self) -> Decimal:
        """Calcula o subtotal do item."""
        return self.produto.preco * self.quantidade

    def copiar(self) -> 'ItemPedido':
        return ItemPedido(produto=self.produto, quantidade=self.quantidade)


@dataclass(frozen=True)
class ItemVendido:
    """Linha de uma venda concluída. Não muda depois do registro."""
    produto: Produto
    quantidade: int

    def __post_init__(self):
        if self.quantidade < 1:
            raise DadosInvalidosError(f"Quantidade inválida para o produto {self.produto.codigo}.")

    @property
    def subtotal(self) -> Decimal:
        return self.produto.preco * self.quantidade


@dataclass(frozen=True)
class PedidoConcluido:
    """Snapshot de uma venda finalizada (imutável, inclusive os itens)."""
    id: str
    data: datetime
    itens: Tuple[ItemVendido, ...]
    total: Decimal
    forma_pagamento: FormaPagamento
    local: Optional[str] = None
    valor_recebido: Optional[Decimal] = None
    troco: Optional[Decimal] = None

    def __post_init__(self):
        object.__setattr__(self, 'itens', tuple(
            ItemVendido(produto=item.produto, quantidade=item.quantidade) for item in self.itens
        ))
        object.__setattr__(self, 'forma_pagamento', FormaPagamento(self.forma_pagamento))
        object.__setattr__(self, 'total', para_decimal(self.total))

    @property
    def codigos(self) -> Tuple[str, ...]:
        return tuple(item.produto.codigo for item in self.itens)


@dataclass(frozen=True)
class Sugestao:
    """Sugestão do próximo produto, com confiança entre 0 e 1."""
    codigo_produto: str
    confianca: float

    def __post_init__(self):
        if not self.codigo_produto:
            raise DadosInvalidosError("Sugestão sem código de produto.")
        if not 0 <= self.confianca <= 1:
            raise DadosInvalidosError(f"Confiança fora do intervalo [0, 1]: {self.confianca}")


@dataclass(frozen=True)
class IntervaloDatas:
    """Período inclusivo de datas. Sem `fim`, vale apenas o dia `inicio`."""
    inicio: date
    fim: Optional[date] = None

    def __post_init__(self):
        if self.fim is not None and self.fim < self.inicio:
            raise DadosInvalidosError("A data final não pode ser anterior à data inicial.")

    @property
    def ultimo_dia(self) -> date:
        return self.fim if self.fim is not None else self.inicio

    def contem(self, dia: date) -> bool:
        return self.inicio <= dia <= self.ultimo_dia
