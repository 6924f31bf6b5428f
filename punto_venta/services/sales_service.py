"""
Sale settlement service.
Commits a priced cart as one sale group plus one sale row per line,
and reverses it on cancellation.
"""
import logging
import random
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from punto_venta.models import Product, Sale, SaleGroup, User
from punto_venta.exceptions import (
    ValidationError, NotFoundError, StockConflictError, PersistenceError
)
from punto_venta.services.cart_service import Cart, CartLineItem
from punto_venta.services.inventory_service import decrement_stock, increment_stock
from punto_venta.services.cache_service import invalidate_dashboard_cache
from punto_venta.utils.money import to_decimal, quantize_amount, round_display

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ['Efectivo Bs', 'Divisa', 'Débito', 'Biopago', 'Pago Móvil', 'Avance de Efectivo']

DELETED_PRODUCT_NAME = 'Producto eliminado'


def register_sale(
    session,
    cart_lines: Union[Cart, Iterable[CartLineItem]],
    user_id: Optional[int],
    payment_method: str,
    second_payment_method: Optional[str] = None,
    split_amount=None,
    exchange_rate=None,
) -> dict:
    """
    Settle a cart in a single transaction.

    All stock checks run before the first write; any failure rolls back
    every row written by the call.

    Args:
        session: SQLAlchemy session
        cart_lines: Cart or list of CartLineItem, in cart order
        user_id: cashier id
        payment_method: primary method, one of PAYMENT_METHODS
        second_payment_method: optional second method
        split_amount: local amount paid with the second method
        exchange_rate: rate used to price the cart (stored on the group)

    Returns:
        ticket dict (see ``build_ticket``)

    Raises:
        ValidationError: empty cart, lines priced at different rates or bad payment data
        StockConflictError: a product no longer has enough stock
        NotFoundError: a product was deleted after being added
        PersistenceError: storage failure
    """
    lines = list(cart_lines.items if isinstance(cart_lines, Cart) else cart_lines)
    if not lines:
        raise ValidationError('El carrito está vacío')

    _validate_payment_method(payment_method)

    # The group stores one rate, so every line must have been priced with it
    if len({line.exchange_rate for line in lines}) > 1:
        raise ValidationError(
            'La tasa de cambio cambió mientras se armaba el carrito. Vacía el carrito y agrega los productos de nuevo'
        )

    subtotal = sum((line.subtotal_local for line in lines), Decimal('0'))
    tax = sum((line.tax_total_local for line in lines), Decimal('0'))
    total = sum((line.total_local for line in lines), Decimal('0'))

    second_amount = None
    if second_payment_method:
        _validate_payment_method(second_payment_method)
        if split_amount is None or split_amount == '':
            raise ValidationError('Debes indicar el monto del segundo método de pago')
        second_amount = to_decimal(split_amount, 'monto del segundo pago')
        if second_amount <= 0 or second_amount > total:
            raise ValidationError('El monto del segundo pago debe ser mayor a 0 y no superar el total')
    paid_amount = total - second_amount if second_amount is not None else total

    try:
        # 1. Lock every product and check stock for the whole cart
        products = _lock_products(session, lines)
        remaining = {pid: p.quantity for pid, p in products.items()}
        for line in lines:
            available = remaining[line.product_id]
            if available - line.quantity < 0:
                raise StockConflictError(products[line.product_id].name, line.quantity, available)
            remaining[line.product_id] = available - line.quantity

        # 2. Write rows and decrement stock, in cart order
        created_at = datetime.now()
        sale_group_id = str(uuid.uuid4())
        group = SaleGroup(
            sale_group_id=sale_group_id,
            user_id=user_id,
            subtotal=quantize_amount(subtotal),
            tax=quantize_amount(tax),
            total=quantize_amount(total),
            sale_number=random.randint(1000, 9999),
            payment_method=payment_method,
            primary_payment_method=payment_method,
            paid_amount=quantize_amount(paid_amount),
            secondary_payment_method=second_payment_method or None,
            second_paid_amount=quantize_amount(second_amount) if second_amount is not None else None,
            exchange_rate=quantize_amount(exchange_rate if exchange_rate is not None else lines[0].exchange_rate),
            created_at=created_at,
        )
        session.add(group)
        session.flush()

        for line in lines:
            session.add(Sale(
                sale_group_id=sale_group_id,
                product_id=line.product_id,
                quantity=line.quantity,
                total=quantize_amount(line.total_local),
                user_id=user_id,
                is_canceled=False,
                created_at=created_at,
            ))
            decrement_stock(session, line.product_id, line.quantity)

        session.commit()

    except (ValidationError, NotFoundError, StockConflictError) as e:
        session.rollback()
        logger.info(f"Sale rejected: {e.message}")
        raise e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error registering sale: {e}")
        raise PersistenceError(f'Error al registrar la venta: {str(e)}')

    logger.info(
        f"Sale registered: group={sale_group_id} number={group.sale_number} "
        f"items={len(lines)} total={group.total} method={payment_method}"
        + (f"+{second_payment_method}" if second_payment_method else "")
    )
    invalidate_dashboard_cache()
    return build_ticket(group, group.sales, {pid: p.name for pid, p in products.items()})


def cancel_sale_group(session, sale_group_id: str) -> dict:
    """
    Cancel every row of a sale group and put the stock back.

    Rows whose product was deleted are canceled without restock.

    Returns:
        dict with ``sale_group_id``, ``restored`` and ``skipped`` product ids

    Raises:
        NotFoundError: unknown group
        ValidationError: the group is already canceled
    """
    try:
        group = session.query(SaleGroup).filter(SaleGroup.sale_group_id == sale_group_id).first()
        if not group:
            raise NotFoundError(f'Venta {sale_group_id} no encontrada')

        rows = session.query(Sale).filter(Sale.sale_group_id == sale_group_id).order_by(Sale.id).all()
        pending = [row for row in rows if not row.is_canceled]
        if not pending:
            raise ValidationError('Esta venta ya fue anulada')

        restored, skipped = [], []
        for row in pending:
            row.is_canceled = True
            try:
                increment_stock(session, row.product_id, row.quantity)
            except NotFoundError:
                logger.warning(
                    f"Cancel {sale_group_id}: product {row.product_id} no longer exists, stock not restored"
                )
                skipped.append(row.product_id)
                continue
            restored.append(row.product_id)

        session.commit()

    except (ValidationError, NotFoundError) as e:
        session.rollback()
        raise e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error canceling sale group {sale_group_id}: {e}")
        raise PersistenceError(f'Error al anular la venta: {str(e)}')

    logger.info(f"Sale group canceled: {sale_group_id} (restored={len(restored)}, skipped={len(skipped)})")
    invalidate_dashboard_cache()
    return {
        'sale_group_id': sale_group_id,
        'restored': restored,
        'skipped': skipped,
    }


def reprint_ticket(session, sale_group_id: str) -> dict:
    """Rebuild the ticket of a stored sale group. Read only."""
    group = session.query(SaleGroup).filter(SaleGroup.sale_group_id == sale_group_id).first()
    if not group:
        raise NotFoundError(f'Venta {sale_group_id} no encontrada')
    rows = list(group.sales)
    return build_ticket(group, rows, _product_names(session, [r.product_id for r in rows]))


def list_recent_sale_groups(session, limit: int = 50) -> List[dict]:
    """
    Active sale groups, newest first, with their items and cashier.
    Totals only count non-canceled rows.
    """
    groups = session.query(SaleGroup).filter(
        SaleGroup.sales.any(Sale.is_canceled.is_(False))
    ).order_by(SaleGroup.created_at.desc()).limit(limit).all()

    product_ids, user_ids = set(), set()
    for group in groups:
        user_ids.add(group.user_id)
        product_ids.update(row.product_id for row in group.sales)
    names = _product_names(session, product_ids)
    cashiers = _cashier_names(session, user_ids)

    result = []
    for group in groups:
        active = [row for row in group.sales if not row.is_canceled]
        result.append({
            'sale_group_id': group.sale_group_id,
            'sale_number': group.sale_number,
            'date': group.created_at,
            'cashier': cashiers.get(group.user_id, 'Desconocido'),
            'items': [
                {
                    'product_id': row.product_id,
                    'name': names.get(row.product_id, DELETED_PRODUCT_NAME),
                    'quantity': row.quantity,
                }
                for row in active
            ],
            'total': round_display(sum((Decimal(row.total) for row in active), Decimal('0'))),
            'payment_method': group.primary_payment_method or group.payment_method,
        })
    return result


def build_ticket(group: SaleGroup, rows: List[Sale], product_names: Dict[int, str]) -> dict:
    """Ticket detail consumed by the print/PDF layer."""
    items = []
    for row in rows:
        line_total = Decimal(row.total)
        items.append({
            'product_id': row.product_id,
            'name': product_names.get(row.product_id, DELETED_PRODUCT_NAME),
            'quantity': row.quantity,
            'unit_price': round_display(line_total / row.quantity) if row.quantity else Decimal('0.00'),
            'total': round_display(line_total),
            'is_canceled': bool(row.is_canceled),
        })

    primary = group.primary_payment_method or group.payment_method
    return {
        'sale_group_id': group.sale_group_id,
        'sale_number': group.sale_number,
        'date': group.created_at,
        'items': items,
        'subtotal': round_display(group.subtotal),
        'tax': round_display(group.tax),
        'total': round_display(group.total),
        'payment_method': primary,
        'paid_amount': round_display(group.paid_amount if group.paid_amount is not None else group.total),
        'secondary_payment_method': group.secondary_payment_method,
        'second_paid_amount': (
            round_display(group.second_paid_amount) if group.second_paid_amount is not None else None
        ),
        'exchange_rate': group.exchange_rate,
        'is_canceled': bool(rows) and all(row.is_canceled for row in rows),
    }


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _validate_payment_method(method: Optional[str]) -> None:
    if not method:
        raise ValidationError('Debes seleccionar un método de pago')
    if method not in PAYMENT_METHODS:
        raise ValidationError(f'Método de pago inválido: {method}')


def _lock_products(session, lines: List[CartLineItem]) -> Dict[int, Product]:
    """Lock product rows FOR UPDATE; a missing product aborts the sale."""
    product_ids = sorted({line.product_id for line in lines})
    products = session.query(Product).filter(
        Product.id.in_(product_ids)
    ).with_for_update().all()
    by_id = {p.id: p for p in products}
    for line in lines:
        if line.product_id not in by_id:
            raise NotFoundError(f'El producto {line.name} ya no existe')
    return by_id


def _product_names(session, product_ids) -> Dict[int, str]:
    ids = list(set(product_ids))
    if not ids:
        return {}
    rows = session.query(Product.id, Product.name).filter(Product.id.in_(ids)).all()
    return {row.id: row.name for row in rows}


def _cashier_names(session, user_ids) -> Dict[int, str]:
    ids = [uid for uid in set(user_ids) if uid is not None]
    if not ids:
        return {}
    users = session.query(User).filter(User.id.in_(ids)).all()
    return {user.id: user.display_name for user in users}
