"""
Unit tests for the pure reporting reductions.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from punto_venta.exceptions import ValidationError
from punto_venta.models import Sale, SaleGroup, CashAdvanceTransaction
from punto_venta.services.report_service import (
    summarize_cash_advances, summarize_advance_commissions, canceled_group_ids,
    is_legacy_sale_group, summarize_sales_by_payment_method, sales_by_date,
    get_preset_date_range, cash_advance_csv_rows
)


def tx(kind, amount, fee='0'):
    return CashAdvanceTransaction(
        transaction_type=kind, amount=Decimal(amount), fee_amount=Decimal(fee),
        fee_percentage=Decimal('0'), final_amount=Decimal(amount) + Decimal(fee),
        created_at=datetime(2026, 3, 1, 9, 15),
    )


def group(group_id, total, created_at=None, **payment):
    return SaleGroup(
        sale_group_id=group_id, total=Decimal(total), subtotal=Decimal('0'), tax=Decimal('0'),
        sale_number=1234, created_at=created_at or datetime(2026, 3, 1, 10, 0), **payment
    )


class TestCashAdvanceSummary:
    """Tests for fund movement summaries."""

    def test_splits_by_type(self):
        summary = summarize_cash_advances([
            tx('advance', '100'), tx('advance', '50.50'), tx('replenishment', '500'),
        ])
        assert summary['total_advances'] == Decimal('150.50')
        assert summary['total_replenishments'] == Decimal('500')
        assert summary['net_flow'] == Decimal('349.50')
        assert summary['transaction_count'] == 3

    def test_empty(self):
        summary = summarize_cash_advances([])
        assert summary == {
            'total_advances': Decimal('0'),
            'total_replenishments': Decimal('0'),
            'net_flow': Decimal('0'),
            'transaction_count': 0,
        }

    def test_commissions_only_count_advances(self):
        summary = summarize_advance_commissions([
            tx('advance', '100', '10'), tx('advance', '200', '5'), tx('replenishment', '300'),
        ])
        assert summary['total_advances'] == Decimal('300')
        assert summary['total_commissions'] == Decimal('15')
        assert summary['transaction_count'] == 2

    def test_csv_rows(self):
        rows = cash_advance_csv_rows([tx('advance', '100', '10')])
        assert rows[0]['Fecha'] == '01/03/2026 09:15'
        assert rows[0]['Monto Final (Bs.)'] == '110.00'
        assert rows[0]['Cajero'] == '-'
        assert rows[0]['Fondo'] == '-'


class TestCancellationGrouping:
    """A group is canceled only when every row is canceled."""

    def test_all_or_nothing(self):
        rows = [
            Sale(sale_group_id='a', is_canceled=True),
            Sale(sale_group_id='a', is_canceled=True),
            Sale(sale_group_id='b', is_canceled=True),
            Sale(sale_group_id='b', is_canceled=False),
            Sale(sale_group_id='c', is_canceled=False),
        ]
        assert canceled_group_ids(rows) == {'a'}

    def test_no_rows(self):
        assert canceled_group_ids([]) == set()


class TestPaymentSummary:
    """Tests for per-method totals."""

    def test_legacy_group_uses_payment_method(self):
        legacy = group('g1', '730', payment_method='Divisa')
        assert is_legacy_sale_group(legacy)
        summary = summarize_sales_by_payment_method([legacy])
        assert summary == {'Divisa': {'total': Decimal('730'), 'transactions': 1}}

    def test_legacy_group_without_method(self):
        summary = summarize_sales_by_payment_method([group('g1', '100')])
        assert summary == {'Desconocido': {'total': Decimal('100'), 'transactions': 1}}

    def test_split_payment_creates_two_buckets(self):
        split = group(
            'g1', '730',
            payment_method='Efectivo Bs', primary_payment_method='Efectivo Bs',
            paid_amount=Decimal('530'), secondary_payment_method='Pago Móvil',
            second_paid_amount=Decimal('200'),
        )
        assert not is_legacy_sale_group(split)
        summary = summarize_sales_by_payment_method([split])
        assert summary['Efectivo Bs'] == {'total': Decimal('530'), 'transactions': 1}
        assert summary['Pago Móvil'] == {'total': Decimal('200'), 'transactions': 1}

    def test_accumulates_per_method(self):
        groups = [
            group('g1', '100', primary_payment_method='Débito', paid_amount=Decimal('100')),
            group('g2', '50', primary_payment_method='Débito', paid_amount=Decimal('50')),
            group('g3', '20', payment_method='Biopago'),
        ]
        summary = summarize_sales_by_payment_method(groups)
        assert summary['Débito'] == {'total': Decimal('150'), 'transactions': 2}
        assert summary['Biopago'] == {'total': Decimal('20'), 'transactions': 1}


class TestSalesByDate:
    """Tests for daily totals."""

    def test_groups_by_calendar_date(self):
        groups = [
            group('g1', '100', datetime(2026, 3, 2, 8, 0)),
            group('g2', '50', datetime(2026, 3, 1, 23, 59)),
            group('g3', '25', datetime(2026, 3, 2, 18, 30)),
        ]
        assert sales_by_date(groups) == [
            {'date': date(2026, 3, 1), 'total': Decimal('50')},
            {'date': date(2026, 3, 2), 'total': Decimal('125')},
        ]


class TestPresetRanges:
    """Tests for report date shortcuts."""

    def test_last_7_days(self):
        assert get_preset_date_range('last7Days', date(2026, 3, 10)) == (date(2026, 3, 3), date(2026, 3, 10))

    def test_last_30_days(self):
        assert get_preset_date_range('last30Days', date(2026, 3, 10)) == (date(2026, 2, 8), date(2026, 3, 10))

    def test_this_month(self):
        assert get_preset_date_range('thisMonth', date(2026, 3, 10)) == (date(2026, 3, 1), date(2026, 3, 10))

    def test_last_month_crosses_year(self):
        assert get_preset_date_range('lastMonth', date(2026, 1, 15)) == (date(2025, 12, 1), date(2025, 12, 31))

    def test_last_month_february(self):
        assert get_preset_date_range('lastMonth', date(2024, 3, 5)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_unknown_option(self):
        with pytest.raises(ValidationError):
            get_preset_date_range('nextYear', date(2026, 3, 10))
