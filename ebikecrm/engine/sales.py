"""
Sales Aggregator
Date-range filtering and ledger totals over a snapshot of Sale records.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, localcontext
from typing import List, Optional, Sequence

from ebikecrm.engine.formatters import parse_amount, parse_date, to_cents
from ebikecrm.engine.stages import percent
from ebikecrm.models import Sale


@dataclass
class SalesSummary:
    total: int = 0
    revenue: Decimal = Decimal('0.00')
    average_ticket: Decimal = Decimal('0.00')
    financed_pct: int = 0


def filter_sales(
    sales: Optional[Sequence[Sale]],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Sale]:
    """
    Sales whose sale_date falls in [start, end]. Both bounds are calendar
    days and inclusive, so a sale on `end` counts. Without bounds every sale
    is kept; with a bound, sales with an unreadable date are dropped.
    """
    sales = list(sales or ())
    if start is None and end is None:
        return sales

    kept = []
    for sale in sales:
        sold_on = parse_date(sale.sale_date)
        if sold_on is None:
            continue
        if start is not None and sold_on < start:
            continue
        if end is not None and sold_on > end:
            continue
        kept.append(sale)
    return kept


def summarize_sales(
    sales: Optional[Sequence[Sale]],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> SalesSummary:
    """Count, revenue, average ticket and financed share for the range."""
    selected = filter_sales(sales, start, end)
    total = len(selected)
    if not total:
        return SalesSummary()

    amounts = [parse_amount(s.final_amount) for s in selected]
    with localcontext() as ctx:
        # wide enough that neither the sum nor the average loses cents
        ctx.prec = max([ctx.prec] + [a.adjusted() + len(str(total)) + 3 for a in amounts])
        revenue = sum(amounts, Decimal('0'))
        average = revenue / total
    financed = sum(1 for s in selected if s.financed)

    return SalesSummary(
        total=total,
        revenue=to_cents(revenue),
        average_ticket=to_cents(average),
        financed_pct=percent(financed, total),
    )


def sales_conversion_rate(sale_count: int, qualified_count: int) -> int:
    """Sales closed per qualified lead in the same period, as a percentage."""
    return percent(sale_count, qualified_count)
