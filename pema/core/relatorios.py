# pema/core/relatorios.py
"""
Agregações do relatório de vendas.

Funções puras sobre uma lista de PedidoConcluido: não alteram a entrada, não
consultam relógio nem persistência, e devolvem sempre o mesmo resultado para
a mesma entrada. O "dia" de um pedido é a data local da venda; quando `fuso`
é informado, datas com fuso horário são convertidas antes do truncamento.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple

from pema.core.entities import (
    FormaPagamento,
    IntervaloDatas,
    PedidoConcluido,
    Produto,
)
from pema.core.exceptions import DadosInvalidosError

ROTULO_SEM_LOCAL = 'N/A'
LIMITE_MAIS_VENDIDOS = 10
CENTAVOS = Decimal('0.01')


@dataclass(frozen=True)
class VendaDia:
    dia: date
    total: Decimal


@dataclass(frozen=True)
class VendaLocal:
    local: str
    total: Decimal


@dataclass(frozen=True)
class ProdutoVendido:
    produto: Produto
    quantidade: int


@dataclass(frozen=True)
class VendaFormaPagamento:
    forma_pagamento: FormaPagamento
    total: Decimal
    quantidade_pedidos: int


@dataclass(frozen=True)
class ResumoVendas:
    faturamento: Decimal
    quantidade_pedidos: int
    itens_vendidos: int
    ticket_medio: Decimal


@dataclass(frozen=True)
class RelatorioVendas:
    """Tudo o que a tela de relatórios mostra para um período."""
    periodo: Optional[IntervaloDatas]
    resumo: ResumoVendas
    por_dia: Tuple[VendaDia, ...]
    por_local: Tuple[VendaLocal, ...]
    mais_vendidos: Tuple[ProdutoVendido, ...]
    por_forma_pagamento: Tuple[VendaFormaPagamento, ...]
    pedidos: Tuple[PedidoConcluido, ...]


def dia_local(data: datetime, fuso: Optional[tzinfo] = None) -> date:
    if fuso is not None and data.tzinfo is not None:
        data = data.astimezone(fuso)
    return data.date()


# ====================================================================
# FILTRO POR PERÍODO
# ====================================================================

def filtrar_por_periodo(
    pedidos: Sequence[PedidoConcluido],
    periodo: Optional[IntervaloDatas] = None,
    fuso: Optional[tzinfo] = None,
) -> List[PedidoConcluido]:
    """Sem período devolve todos os pedidos; com período, os do primeiro ao último dia, inclusive."""
    if periodo is None:
        return list(pedidos)
    return [p for p in pedidos if periodo.contem(dia_local(p.data, fuso))]


def periodo_hoje(hoje: date) -> IntervaloDatas:
    return IntervaloDatas(inicio=hoje, fim=hoje)


def periodo_mes(referencia: date) -> IntervaloDatas:
    ultimo = calendar.monthrange(referencia.year, referencia.month)[1]
    return IntervaloDatas(inicio=referencia.replace(day=1), fim=referencia.replace(day=ultimo))


def periodo_ano(referencia: date) -> IntervaloDatas:
    return IntervaloDatas(inicio=date(referencia.year, 1, 1), fim=date(referencia.year, 12, 31))


# ====================================================================
# AGREGAÇÕES
# ====================================================================

def vendas_por_dia(pedidos: Sequence[PedidoConcluido], fuso: Optional[tzinfo] = None) -> List[VendaDia]:
    """Soma o total por dia do calendário, em ordem crescente de dia."""
    por_dia: Dict[date, Decimal] = {}
    for pedido in pedidos:
        dia = dia_local(pedido.data, fuso)
        por_dia[dia] = por_dia.get(dia, Decimal('0')) + pedido.total
    return [VendaDia(dia=dia, total=total) for dia, total in sorted(por_dia.items())]


def vendas_por_local(
    pedidos: Sequence[PedidoConcluido],
    rotulo_sem_local: str = ROTULO_SEM_LOCAL,
) -> List[VendaLocal]:
    """Soma o total por local, do maior para o menor. Pedidos sem local usam 'N/A'."""
    por_local: Dict[str, Decimal] = {}
    for pedido in pedidos:
        local = pedido.local or rotulo_sem_local
        por_local[local] = por_local.get(local, Decimal('0')) + pedido.total
    vendas = [VendaLocal(local=local, total=total) for local, total in por_local.items()]
    return sorted(vendas, key=lambda v: v.total, reverse=True)


def produtos_mais_vendidos(
    pedidos: Sequence[PedidoConcluido],
    limite: int = LIMITE_MAIS_VENDIDOS,
) -> List[ProdutoVendido]:
    """
    Ranking por QUANTIDADE vendida (não por receita). Empates mantêm a ordem
    em que o produto apareceu pela primeira vez.
    """
    if limite < 0:
        raise DadosInvalidosError("O limite do ranking não pode ser negativo.")

    produtos: Dict[str, Produto] = {}
    quantidades: Dict[str, int] = {}
    for pedido in pedidos:
        for item in pedido.itens:
            codigo = item.produto.codigo
            if codigo not in produtos:
                produtos[codigo] = item.produto
                quantidades[codigo] = 0
            quantidades[codigo] += item.quantidade

    ranking = [ProdutoVendido(produto=produtos[c], quantidade=q) for c, q in quantidades.items()]
    # sorted é estável: empates preservam a ordem de inserção do dicionário
    ranking = sorted(ranking, key=lambda p: p.quantidade, reverse=True)
    return ranking[:limite]


def vendas_por_forma_pagamento(pedidos: Sequence[PedidoConcluido]) -> List[VendaFormaPagamento]:
    totais: Dict[FormaPagamento, Decimal] = {}
    contagem: Dict[FormaPagamento, int] = {}
    for pedido in pedidos:
        forma = pedido.forma_pagamento
        totais[forma] = totais.get(forma, Decimal('0')) + pedido.total
        contagem[forma] = contagem.get(forma, 0) + 1
    vendas = [
        VendaFormaPagamento(forma_pagamento=forma, total=total, quantidade_pedidos=contagem[forma])
        for forma, total in totais.items()
    ]
    return sorted(vendas, key=lambda v: v.total, reverse=True)


def resumo_vendas(pedidos: Sequence[PedidoConcluido]) -> ResumoVendas:
    faturamento = sum((p.total for p in pedidos), Decimal('0'))
    quantidade = len(pedidos)
    itens = sum(item.quantidade for p in pedidos for item in p.itens)
    if quantidade:
        ticket = (faturamento / quantidade).quantize(CENTAVOS, rounding=ROUND_HALF_UP)
    else:
        ticket = Decimal('0.00')
    return ResumoVendas(
        faturamento=faturamento,
        quantidade_pedidos=quantidade,
        itens_vendidos=itens,
        ticket_medio=ticket,
    )


def historico_recente(pedidos: Sequence[PedidoConcluido]) -> List[PedidoConcluido]:
    """Pedidos do mais recente para o mais antigo (ordem de registro invertida)."""
    return list(reversed(pedidos))


def dias_com_vendas(pedidos: Sequence[PedidoConcluido], fuso: Optional[tzinfo] = None) -> List[date]:
    return sorted({dia_local(p.data, fuso) for p in pedidos})


def gerar_relatorio(
    pedidos: Sequence[PedidoConcluido],
    periodo: Optional[IntervaloDatas] = None,
    fuso: Optional[tzinfo] = None,
    limite_produtos: int = LIMITE_MAIS_VENDIDOS,
    rotulo_sem_local: str = ROTULO_SEM_LOCAL,
) -> RelatorioVendas:
    filtrados = filtrar_por_periodo(pedidos, periodo, fuso)
    return RelatorioVendas(
        periodo=periodo,
        resumo=resumo_vendas(filtrados),
        por_dia=tuple(vendas_por_dia(filtrados, fuso)),
        por_local=tuple(vendas_por_local(filtrados, rotulo_sem_local)),
        mais_vendidos=tuple(produtos_mais_vendidos(filtrados, limite_produtos)),
        por_forma_pagamento=tuple(vendas_por_forma_pagamento(filtrados)),
        pedidos=tuple(historico_recente(filtrados)),
    )
