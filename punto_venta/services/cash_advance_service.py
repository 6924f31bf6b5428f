"""
Cash advance fund service.

A fund is a pool of cash. Advances take ``amount`` out of the fund and
charge the customer ``amount + fee``; replenishments put cash back.
A fund drained to zero is deactivated and any replenishment reactivates it.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from punto_venta.models import (
    CashAdvanceFund, CashAdvanceTransaction, TransactionType, DEFAULT_FUND_DESCRIPTION
)
from punto_venta.exceptions import (
    ValidationError, NotFoundError, FundBalanceError, PersistenceError
)
from punto_venta.utils.money import quantize_cents

logger = logging.getLogger(__name__)

DEFAULT_CASHIER_NAME = 'Sistema'
LOW_BALANCE_RATIO = Decimal('0.2')


@dataclass
class TransactionPreview:
    """Computed, not yet persisted, fund movement."""
    fund_id: int
    fund_description: str
    transaction_type: str
    amount: Decimal
    current_balance: Decimal
    remaining_balance: Decimal
    fee_percentage: Decimal = Decimal('0')
    fee_amount: Decimal = Decimal('0')
    total_to_charge: Decimal = Decimal('0')
    amount_from_fund: Decimal = Decimal('0')
    low_balance_warning: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            'fund_id': self.fund_id,
            'fund_description': self.fund_description,
            'transaction_type': self.transaction_type,
            'amount': self.amount,
            'fee_percentage': self.fee_percentage,
            'fee_amount': self.fee_amount,
            'total_to_charge': self.total_to_charge,
            'amount_from_fund': self.amount_from_fund,
            'current_balance': self.current_balance,
            'remaining_balance': self.remaining_balance,
            'low_balance_warning': self.low_balance_warning,
        }


@dataclass
class CommitResult:
    transaction: CashAdvanceTransaction
    fund: CashAdvanceFund
    fund_closed: bool = False
    fund_reopened: bool = False


def _positive_amount(value, message: str) -> Decimal:
    amount = quantize_cents(value, 'monto')
    if amount <= 0:
        raise ValidationError(message)
    return amount


def get_fund(session, fund_id: int, for_update: bool = False) -> CashAdvanceFund:
    query = session.query(CashAdvanceFund).filter(CashAdvanceFund.id == fund_id)
    if for_update:
        query = query.with_for_update()
    fund = query.first()
    if not fund:
        raise NotFoundError(f'Fondo {fund_id} no encontrado')
    return fund


def create_fund(session, initial_amount, description: Optional[str] = None) -> CashAdvanceFund:
    """Open an active fund whose balance starts at ``initial_amount``."""
    amount = _positive_amount(initial_amount, 'El monto inicial debe ser mayor a 0')
    fund = CashAdvanceFund(
        initial_amount=amount,
        current_balance=amount,
        description=(description or '').strip() or DEFAULT_FUND_DESCRIPTION,
        is_active=True,
        created_at=datetime.now(),
    )
    try:
        session.add(fund)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error creating cash advance fund: {e}")
        raise PersistenceError(f'Error al crear el fondo: {str(e)}')

    logger.info(f"Fund created: id={fund.id} amount={amount}")
    return fund


def preview_advance(fund: CashAdvanceFund, amount, fee_percentage=0) -> TransactionPreview:
    """
    Compute an advance without touching storage.

    Raises:
        ValidationError: amount <= 0, fee outside [0, 100] or inactive fund
        FundBalanceError: amount exceeds the fund balance
    """
    amount = _positive_amount(amount, 'El monto debe ser mayor a 0')
    pct = quantize_cents(fee_percentage if fee_percentage not in (None, '') else 0, 'porcentaje de comisión')
    if pct < 0 or pct > 100:
        raise ValidationError('El porcentaje de comisión debe estar entre 0 y 100')
    if not fund.is_active:
        raise ValidationError('El fondo seleccionado no está activo')

    balance = Decimal(fund.current_balance)
    if amount > balance:
        raise FundBalanceError()

    fee_amount = amount * pct / Decimal('100')
    remaining = balance - amount
    return TransactionPreview(
        fund_id=fund.id,
        fund_description=fund.description,
        transaction_type=TransactionType.ADVANCE.value,
        amount=amount,
        fee_percentage=pct,
        fee_amount=fee_amount,
        total_to_charge=amount + fee_amount,
        amount_from_fund=amount,
        current_balance=balance,
        remaining_balance=remaining,
        low_balance_warning=remaining < Decimal(fund.initial_amount) * LOW_BALANCE_RATIO,
    )


def preview_replenishment(fund: CashAdvanceFund, amount) -> TransactionPreview:
    """Compute a replenishment. Works on inactive funds too."""
    amount = _positive_amount(amount, 'El monto debe ser mayor a 0')
    balance = Decimal(fund.current_balance)
    return TransactionPreview(
        fund_id=fund.id,
        fund_description=fund.description,
        transaction_type=TransactionType.REPLENISHMENT.value,
        amount=amount,
        total_to_charge=amount,
        current_balance=balance,
        remaining_balance=balance + amount,
    )


def commit_transaction(session, preview: TransactionPreview, cashier_name: Optional[str] = None,
                       description: Optional[str] = None) -> CommitResult:
    """
    Persist a previewed movement and update the fund.

    The fund row is re-read under lock and the balance checked again, so a
    stale preview cannot overdraw it.

    Raises:
        NotFoundError: fund gone
        ValidationError: advance on an inactive fund
        FundBalanceError: balance no longer covers the advance
    """
    try:
        fund = get_fund(session, preview.fund_id, for_update=True)
        balance = Decimal(fund.current_balance)
        fund_closed = fund_reopened = False

        if preview.transaction_type == TransactionType.ADVANCE.value:
            if not fund.is_active:
                raise ValidationError('El fondo seleccionado no está activo')
            if preview.amount > balance:
                raise FundBalanceError()
            new_balance = balance - preview.amount
            final_amount = preview.amount + preview.fee_amount
            if new_balance <= 0:
                fund.is_active = False
                fund_closed = True
        elif preview.transaction_type == TransactionType.REPLENISHMENT.value:
            new_balance = balance + preview.amount
            final_amount = preview.amount
            if not fund.is_active:
                fund.is_active = True
                fund_reopened = True
        else:
            raise ValidationError(f'Tipo de transacción inválido: {preview.transaction_type}')

        fund.current_balance = quantize_cents(new_balance)
        transaction = CashAdvanceTransaction(
            fund_id=fund.id,
            amount=preview.amount,
            fee_percentage=preview.fee_percentage,
            fee_amount=preview.fee_amount,
            final_amount=final_amount,
            transaction_type=preview.transaction_type,
            description=(description or '').strip() or None,
            cashier_name=(cashier_name or '').strip() or DEFAULT_CASHIER_NAME,
            created_at=datetime.now(),
        )
        session.add(transaction)
        session.commit()

    except (ValidationError, NotFoundError, FundBalanceError) as e:
        session.rollback()
        raise e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error committing {preview.transaction_type} on fund {preview.fund_id}: {e}")
        raise PersistenceError(f'Error al registrar la transacción: {str(e)}')

    logger.info(
        f"Fund {fund.id} {transaction.transaction_type}: amount={transaction.amount} "
        f"fee={transaction.fee_amount} balance={fund.current_balance}"
    )
    if fund_closed:
        logger.info(f"Fund {fund.id} deactivated automatically (balance 0)")
    if fund_reopened:
        logger.info(f"Fund {fund.id} reactivated by replenishment")
    return CommitResult(transaction=transaction, fund=fund, fund_closed=fund_closed, fund_reopened=fund_reopened)


def deactivate_fund(session, fund_id: int) -> CashAdvanceFund:
    """Manually close a fund. Its balance is kept."""
    fund = get_fund(session, fund_id, for_update=True)
    if not fund.is_active:
        return fund
    try:
        fund.is_active = False
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f'Error al desactivar el fondo: {str(e)}')
    logger.info(f"Fund {fund_id} deactivated")
    return fund


def list_funds(session, active_only: bool = False) -> List[CashAdvanceFund]:
    query = session.query(CashAdvanceFund)
    if active_only:
        query = query.filter(CashAdvanceFund.is_active.is_(True))
    return query.order_by(CashAdvanceFund.created_at.desc(), CashAdvanceFund.id.desc()).all()


def list_recent_advances(session, limit: int = 50) -> List[CashAdvanceTransaction]:
    """Latest advances (replenishments excluded), newest first."""
    return session.query(CashAdvanceTransaction).filter(
        CashAdvanceTransaction.transaction_type == TransactionType.ADVANCE.value
    ).order_by(
        CashAdvanceTransaction.created_at.desc(), CashAdvanceTransaction.id.desc()
    ).limit(limit).all()


def fund_statistics(funds: List[CashAdvanceFund], advances: List[CashAdvanceTransaction]) -> dict:
    """Header figures: cash available in active funds, advanced amount, commissions earned."""
    return {
        'active_balance_total': sum(
            (Decimal(f.current_balance) for f in funds if f.is_active), Decimal('0')
        ),
        'total_advances': sum((Decimal(t.amount) for t in advances), Decimal('0')),
        'total_commissions': sum((Decimal(t.fee_amount or 0) for t in advances), Decimal('0')),
    }
