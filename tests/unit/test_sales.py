"""
Unit tests for the sales aggregator (ebikecrm/engine/sales.py).
Pure functions over Sale snapshots — no DB, no mocking.
"""

from datetime import date
from decimal import Decimal

from ebikecrm.engine.sales import (
    SalesSummary,
    filter_sales,
    sales_conversion_rate,
    summarize_sales,
)
from ebikecrm.models import Sale


def _sale(n, amount, sale_date='19-10-2026', financed=False):
    return Sale(
        id=n, customer_name=f'Customer {n}', customer_phone='11987654321',
        bike_id=1, bike_model='Urban 350', financed=financed,
        down_payment='1000,00' if financed else None,
        final_amount=amount, sale_date=sale_date,
    )


# ---------------------------------------------------------------------------
# filter_sales
# ---------------------------------------------------------------------------

def test_filter_without_bounds_keeps_everything():
    sales = [_sale(1, '100'), _sale(2, '200', sale_date='not a date')]
    assert filter_sales(sales) == sales


def test_filter_none_snapshot_is_empty():
    assert filter_sales(None) == []


def test_filter_bounds_are_inclusive():
    sales = [
        _sale(1, '100', sale_date='01-10-2026'),
        _sale(2, '100', sale_date='31-10-2026'),
        _sale(3, '100', sale_date='30-09-2026'),
        _sale(4, '100', sale_date='01-11-2026'),
    ]
    kept = filter_sales(sales, date(2026, 10, 1), date(2026, 10, 31))
    assert [s.id for s in kept] == [1, 2]


def test_filter_open_ended_start_only():
    sales = [_sale(1, '100', sale_date='01-10-2026'), _sale(2, '100', sale_date='20-10-2026')]
    assert [s.id for s in filter_sales(sales, start=date(2026, 10, 19))] == [2]


def test_filter_open_ended_end_only():
    sales = [_sale(1, '100', sale_date='01-10-2026'), _sale(2, '100', sale_date='20-10-2026')]
    assert [s.id for s in filter_sales(sales, end=date(2026, 10, 19))] == [1]


def test_filter_with_bound_drops_unreadable_dates():
    sales = [_sale(1, '100', sale_date=None), _sale(2, '100', sale_date='19-10-2026')]
    assert [s.id for s in filter_sales(sales, start=date(2026, 1, 1))] == [2]


# ---------------------------------------------------------------------------
# summarize_sales
# ---------------------------------------------------------------------------

def test_summary_of_two_sales():
    sales = [_sale(1, '8.500,00', financed=True), _sale(2, '2.000,00')]
    summary = summarize_sales(sales)
    assert summary.total == 2
    assert summary.revenue == Decimal('10500.00')
    assert summary.average_ticket == Decimal('5250.00')
    assert summary.financed_pct == 50


def test_summary_empty_is_all_zero():
    assert summarize_sales([]) == SalesSummary()
    summary = summarize_sales(None)
    assert summary.total == 0
    assert summary.revenue == Decimal('0.00')
    assert summary.average_ticket == Decimal('0.00')
    assert summary.financed_pct == 0


def test_summary_counts_unparseable_amount_as_zero():
    sales = [_sale(1, '3.000,00'), _sale(2, 'a combinar')]
    summary = summarize_sales(sales)
    assert summary.total == 2
    assert summary.revenue == Decimal('3000.00')
    assert summary.average_ticket == Decimal('1500.00')


def test_summary_average_is_rounded_to_cents():
    sales = [_sale(1, '100,00'), _sale(2, '100,00'), _sale(3, '100,01')]
    assert summarize_sales(sales).average_ticket == Decimal('100.00')


def test_summary_applies_range():
    sales = [
        _sale(1, '1.000,00', sale_date='05-10-2026', financed=True),
        _sale(2, '5.000,00', sale_date='05-09-2026'),
    ]
    summary = summarize_sales(sales, date(2026, 10, 1), date(2026, 10, 31))
    assert summary.total == 1
    assert summary.revenue == Decimal('1000.00')
    assert summary.financed_pct == 100


def test_summary_is_idempotent():
    sales = [_sale(1, '8.500,00', financed=True), _sale(2, '2.000,00')]
    assert summarize_sales(sales) == summarize_sales(sales)


# ---------------------------------------------------------------------------
# sales_conversion_rate
# ---------------------------------------------------------------------------

def test_sales_conversion_rate():
    assert sales_conversion_rate(1, 4) == 25
    assert sales_conversion_rate(2, 3) == 67


def test_sales_conversion_rate_without_qualified_leads_is_zero():
    assert sales_conversion_rate(3, 0) == 0


def test_summary_survives_very_large_amounts():
    huge = '9' * 30 + ',00'
    summary = summarize_sales([_sale(1, huge), _sale(2, '1,00')])
    assert summary.total == 2
    assert summary.revenue == Decimal('1' + '0' * 30 + '.00')
    assert summary.average_ticket == Decimal('5' + '0' * 29 + '.00')


def test_summary_subtracts_refund_written_after_symbol():
    summary = summarize_sales([_sale(1, 'R$ 500,00'), _sale(2, 'R$ -100,00')])
    assert summary.revenue == Decimal('400.00')
