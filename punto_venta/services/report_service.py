"""
Reporting service.

The ``summarize_*`` / ``sales_by_date`` helpers are pure reductions over rows
already loaded; ``build_*_report`` load a date-bounded set and combine them.
"""
import calendar
import logging
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import or_

from punto_venta.models import Sale, SaleGroup, CashAdvanceTransaction, TransactionType
from punto_venta.exceptions import ValidationError
from punto_venta.services.settings_service import get_exchange_rate
from punto_venta.utils.formatters import datetime_ve, date_ve

logger = logging.getLogger(__name__)

UNKNOWN_METHOD = 'Desconocido'

PRESET_RANGES = ('last7Days', 'last30Days', 'thisMonth', 'lastMonth')


# =====================================================
# PURE AGGREGATIONS
# =====================================================

def _dec(value) -> Decimal:
    if value is None:
        return Decimal('0')
    return value if isinstance(value, Decimal) else Decimal(str(value))


def summarize_cash_advances(transactions: Iterable[CashAdvanceTransaction]) -> dict:
    """Totals split by type; ``net_flow`` is replenishments minus advances."""
    total_advances = Decimal('0')
    total_replenishments = Decimal('0')
    count = 0
    for t in transactions:
        count += 1
        if t.transaction_type == TransactionType.ADVANCE.value:
            total_advances += _dec(t.amount)
        elif t.transaction_type == TransactionType.REPLENISHMENT.value:
            total_replenishments += _dec(t.amount)
    return {
        'total_advances': total_advances,
        'total_replenishments': total_replenishments,
        'net_flow': total_replenishments - total_advances,
        'transaction_count': count,
    }


def summarize_advance_commissions(transactions: Iterable[CashAdvanceTransaction]) -> dict:
    """Advanced amount and commissions earned over advance rows."""
    advances = [t for t in transactions if t.transaction_type == TransactionType.ADVANCE.value]
    return {
        'total_advances': sum((_dec(t.amount) for t in advances), Decimal('0')),
        'total_commissions': sum((_dec(t.fee_amount) for t in advances), Decimal('0')),
        'transaction_count': len(advances),
    }


def canceled_group_ids(sales_rows: Iterable[Sale]) -> Set[str]:
    """Groups whose every row is canceled. Groups without rows never appear."""
    all_canceled: Dict[str, bool] = {}
    for row in sales_rows:
        all_canceled[row.sale_group_id] = all_canceled.get(row.sale_group_id, True) and bool(row.is_canceled)
    return {group_id for group_id, canceled in all_canceled.items() if canceled}


def is_legacy_sale_group(group: SaleGroup) -> bool:
    """Stored before split payments: no primary method and no paid amount."""
    return group.is_legacy


def summarize_sales_by_payment_method(sale_groups: Iterable[SaleGroup]) -> Dict[str, dict]:
    """
    Amount and transaction count per payment method.

    Legacy groups put their whole total on ``payment_method``; the rest put
    ``paid_amount`` on the primary method and ``second_paid_amount`` on the
    secondary one, each counting as a transaction.
    """
    summary: Dict[str, dict] = OrderedDict()

    def add(method: str, amount: Decimal) -> None:
        bucket = summary.setdefault(method, {'total': Decimal('0'), 'transactions': 0})
        bucket['total'] += amount
        bucket['transactions'] += 1

    for group in sale_groups:
        if is_legacy_sale_group(group):
            add(group.payment_method or UNKNOWN_METHOD, _dec(group.total))
            continue
        primary = group.primary_payment_method or group.payment_method or UNKNOWN_METHOD
        add(primary, _dec(group.paid_amount))
        if group.secondary_payment_method:
            add(group.secondary_payment_method, _dec(group.second_paid_amount))
    return dict(summary)


def sales_by_date(active_groups: Iterable[SaleGroup]) -> List[dict]:
    """Daily totals by the stored timestamp's calendar date, oldest first."""
    totals: Dict[date, Decimal] = {}
    for group in active_groups:
        if group.created_at is None:
            logger.warning(f"Sale group {group.sale_group_id} has no created_at, skipped")
            continue
        day = group.created_at.date()
        totals[day] = totals.get(day, Decimal('0')) + _dec(group.total)
    return [{'date': day, 'total': totals[day]} for day in sorted(totals)]


def get_preset_date_range(option: str, today: Optional[date] = None) -> Tuple[date, date]:
    """Date range for a report shortcut."""
    today = today or date.today()
    if option == 'last7Days':
        return today - timedelta(days=7), today
    if option == 'last30Days':
        return today - timedelta(days=30), today
    if option == 'thisMonth':
        return today.replace(day=1), today
    if option == 'lastMonth':
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)
    raise ValidationError(f'Rango de fechas inválido: {option}')


# =====================================================
# REPORTS
# =====================================================

def _day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    if start is None or end is None:
        raise ValidationError('Por favor, selecciona un rango de fechas.')
    if start > end:
        raise ValidationError('La fecha inicial no puede ser posterior a la final')
    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def _with_usd(summary: Dict[str, dict], rate: Decimal) -> Dict[str, dict]:
    return {
        method: dict(data, total_usd=data['total'] / rate)
        for method, data in summary.items()
    }


def build_sales_report(session, start: date, end: date, payment_method: Optional[str] = None) -> dict:
    """
    Sales between the start of ``start`` and the end of ``end``.

    ``payment_method`` matches the primary or the secondary method. USD
    figures use the global exchange rate (1 when unset).
    """
    start_dt, end_dt = _day_bounds(start, end)

    query = session.query(SaleGroup).filter(
        SaleGroup.created_at >= start_dt,
        SaleGroup.created_at <= end_dt,
    )
    if payment_method:
        query = query.filter(or_(
            SaleGroup.primary_payment_method == payment_method,
            SaleGroup.secondary_payment_method == payment_method,
        ))
    groups = query.order_by(SaleGroup.created_at.asc()).all()

    group_ids = [g.sale_group_id for g in groups]
    rows = session.query(Sale).filter(Sale.sale_group_id.in_(group_ids)).all() if group_ids else []
    canceled = canceled_group_ids(rows)
    active_groups = [g for g in groups if g.sale_group_id not in canceled]
    canceled_groups = [g for g in groups if g.sale_group_id in canceled]

    rate = get_exchange_rate(session) or Decimal('1')
    daily = sales_by_date(active_groups)
    total_sales = sum((d['total'] for d in daily), Decimal('0'))

    return {
        'start': start,
        'end': end,
        'payment_method': payment_method,
        'exchange_rate': rate,
        'sales_by_date': daily,
        'total_sales': total_sales,
        'total_sales_usd': total_sales / rate,
        'payment_summary': _with_usd(summarize_sales_by_payment_method(active_groups), rate),
        'canceled_summary': _with_usd(summarize_sales_by_payment_method(canceled_groups), rate),
        'group_count': len(active_groups),
        'canceled_count': len(canceled_groups),
    }


def build_cash_advance_report(session, start: date, end: date, fund_id: Optional[int] = None,
                              transaction_type: Optional[str] = None) -> dict:
    """Fund movements in a date range, newest first, optionally filtered."""
    start_dt, end_dt = _day_bounds(start, end)
    if transaction_type and transaction_type not in (t.value for t in TransactionType):
        raise ValidationError(f'Tipo de transacción inválido: {transaction_type}')

    query = session.query(CashAdvanceTransaction).filter(
        CashAdvanceTransaction.created_at >= start_dt,
        CashAdvanceTransaction.created_at <= end_dt,
    )
    if fund_id:
        query = query.filter(CashAdvanceTransaction.fund_id == fund_id)
    if transaction_type:
        query = query.filter(CashAdvanceTransaction.transaction_type == transaction_type)
    transactions = query.order_by(
        CashAdvanceTransaction.created_at.desc(), CashAdvanceTransaction.id.desc()
    ).all()

    return {
        'start': start,
        'end': end,
        'fund_id': fund_id,
        'transaction_type': transaction_type,
        'transactions': transactions,
        'summary': summarize_cash_advances(transactions),
        'commissions': summarize_advance_commissions(transactions),
    }


# =====================================================
# CSV ROWS
# =====================================================

def sales_csv_rows(daily: List[dict]) -> List[dict]:
    return [
        {'Fecha': date_ve(d['date']), 'Ventas (Bs.)': f"{d['total']:.2f}"}
        for d in daily
    ]


def payment_summary_csv_rows(summary: Dict[str, dict], canceled: bool = False) -> List[dict]:
    """Rows for the per-method summary. Expects the ``total_usd`` added by the report."""
    label = ' Anulado' if canceled else ''
    count_label = 'Transacciones Anuladas' if canceled else 'Transacciones'
    return [
        {
            'Método de Pago': method,
            f'Total{label} (Bs.)': f"{data['total']:.2f}",
            f'Total{label} ($)': f"{data['total_usd']:.3f}",
            count_label: data['transactions'],
        }
        for method, data in summary.items()
    ]


def cash_advance_csv_rows(transactions: Iterable[CashAdvanceTransaction]) -> List[dict]:
    rows = []
    for t in transactions:
        final_amount = t.final_amount if t.final_amount is not None else t.amount
        rows.append({
            'Fecha': datetime_ve(t.created_at),
            'Tipo': 'Avance' if t.transaction_type == TransactionType.ADVANCE.value else 'Reposición',
            'Monto Base (Bs.)': f"{_dec(t.amount):.2f}",
            'Porcentaje Comisión': f"{_dec(t.fee_percentage).normalize():f}%",
            'Comisión (Bs.)': f"{_dec(t.fee_amount):.2f}",
            'Monto Final (Bs.)': f"{_dec(final_amount):.2f}",
            'Descripción': t.description or '-',
            'Cajero': t.cashier_name or '-',
            'Fondo': t.fund.description if t.fund else '-',
        })
    return rows
