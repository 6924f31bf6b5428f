"""
Unit tests for cash advance previews (no database).
"""

import pytest
from decimal import Decimal

from punto_venta.exceptions import ValidationError, FundBalanceError
from punto_venta.models import CashAdvanceFund
from punto_venta.services.cash_advance_service import preview_advance, preview_replenishment


def make_fund(balance='1000', initial='1000', active=True):
    return CashAdvanceFund(
        id=1, initial_amount=Decimal(initial), current_balance=Decimal(balance),
        description='Fondo', is_active=active,
    )


class TestPreviewAdvance:
    """Tests for advance previews."""

    def test_fee_and_remaining_balance(self):
        preview = preview_advance(make_fund(), '1000', '10')
        assert preview.fee_amount == Decimal('100')
        assert preview.total_to_charge == Decimal('1100')
        assert preview.amount_from_fund == Decimal('1000')
        assert preview.remaining_balance == Decimal('0')

    def test_commission_does_not_touch_fund(self):
        preview = preview_advance(make_fund(balance='800'), '250', '3.5')
        assert preview.fee_amount == Decimal('8.75')
        assert preview.remaining_balance == Decimal('550')

    def test_inputs_rounded_to_cents(self):
        preview = preview_advance(make_fund(), '100.125', '12.345')
        assert preview.amount == Decimal('100.13')
        assert preview.fee_percentage == Decimal('12.35')
        assert preview.fee_amount == Decimal('12.366055')
        assert preview.remaining_balance == Decimal('899.87')

    def test_default_fee_is_zero(self):
        preview = preview_advance(make_fund(), '100')
        assert preview.fee_amount == Decimal('0')
        assert preview.total_to_charge == Decimal('100')

    @pytest.mark.parametrize('amount', ['0', '-5', 'abc', None])
    def test_rejects_non_positive_amount(self, amount):
        with pytest.raises(ValidationError):
            preview_advance(make_fund(), amount, '0')

    @pytest.mark.parametrize('pct', ['-1', '100.01', '150'])
    def test_rejects_fee_out_of_range(self, pct):
        with pytest.raises(ValidationError):
            preview_advance(make_fund(), '100', pct)

    def test_fee_bounds_are_inclusive(self):
        assert preview_advance(make_fund(), '100', '0').fee_amount == Decimal('0')
        assert preview_advance(make_fund(), '100', '100').fee_amount == Decimal('100')

    def test_rejects_amount_above_balance(self):
        with pytest.raises(FundBalanceError):
            preview_advance(make_fund(balance='99.99'), '100', '0')

    def test_rejects_inactive_fund(self):
        with pytest.raises(ValidationError):
            preview_advance(make_fund(active=False), '10', '0')

    def test_low_balance_warning(self):
        assert preview_advance(make_fund(), '850', '0').low_balance_warning
        assert not preview_advance(make_fund(), '100', '0').low_balance_warning


class TestPreviewReplenishment:
    """Tests for replenishment previews."""

    def test_adds_to_balance(self):
        preview = preview_replenishment(make_fund(balance='0', active=False), '500')
        assert preview.remaining_balance == Decimal('500')
        assert preview.fee_amount == Decimal('0')

    def test_rejects_non_positive(self):
        with pytest.raises(ValidationError):
            preview_replenishment(make_fund(), '0')
