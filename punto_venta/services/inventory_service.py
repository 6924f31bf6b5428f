"""
Inventory service.
Stock primitives used by settlement plus product CRUD for the inventory screen.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from punto_venta.models import Product
from punto_venta.exceptions import (
    ValidationError, NotFoundError, StockConflictError, PersistenceError
)
from punto_venta.utils.money import parse_price
from punto_venta.services.cache_service import invalidate_dashboard_cache

logger = logging.getLogger(__name__)


def parse_quantity(value, allow_zero: bool = False) -> int:
    """
    Parse a unit quantity. Fractional and boolean input is rejected.

    Raises:
        ValidationError: if the value is not a whole number in range
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError('La cantidad debe ser un número entero')
    if isinstance(value, int):
        qty = value
    else:
        try:
            as_decimal = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError('La cantidad debe ser un número entero')
        if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
            raise ValidationError('La cantidad debe ser un número entero')
        qty = int(as_decimal)

    if qty < 0 or (qty == 0 and not allow_zero):
        raise ValidationError('La cantidad debe ser mayor a 0')
    return qty


def get_product(session, product_id: int, for_update: bool = False) -> Product:
    """Fetch a product or raise NotFoundError. ``for_update`` locks the row."""
    query = session.query(Product).filter(Product.id == product_id)
    if for_update:
        query = query.with_for_update()
    product = query.first()
    if not product:
        raise NotFoundError(f'Producto ID {product_id} no encontrado')
    return product


def check_stock(session, product_id: int, requested_qty: int) -> bool:
    """True when the product has at least ``requested_qty`` units on hand."""
    product = session.query(Product).filter(Product.id == product_id).first()
    if not product:
        return False
    return product.quantity >= requested_qty


def decrement_stock(session, product_id: int, qty: int) -> Product:
    """
    Subtract ``qty`` units from a locked product row.

    Does not commit: the caller owns the transaction.

    Raises:
        NotFoundError: product does not exist
        StockConflictError: the result would be negative (row untouched)
    """
    product = get_product(session, product_id, for_update=True)
    new_quantity = product.quantity - qty
    if new_quantity < 0:
        raise StockConflictError(product.name, qty, product.quantity)
    product.quantity = new_quantity
    return product


def increment_stock(session, product_id: int, qty: int) -> Product:
    """Add ``qty`` units back to a product. Does not commit."""
    product = get_product(session, product_id, for_update=True)
    product.quantity = product.quantity + qty
    return product


def list_products(session) -> List[Product]:
    return session.query(Product).order_by(Product.name).all()


def search_products(session, query: Optional[str]) -> List[Product]:
    """Case-insensitive name search; empty query lists everything."""
    if not query or not query.strip():
        return list_products(session)
    pattern = f'%{query.strip().lower()}%'
    return session.query(Product).filter(
        func.lower(Product.name).like(pattern)
    ).order_by(Product.name).all()


def count_products(session) -> int:
    return session.query(func.count(Product.id)).scalar() or 0


def _validate_name(name) -> str:
    name = (name or '').strip()
    if not name:
        raise ValidationError('El nombre del producto es requerido')
    return name


def create_product(session, name: str, quantity, price, category: Optional[str] = None,
                   user_id: Optional[int] = None) -> Product:
    """Create a product. The price is normalized to 3 decimals."""
    product = Product(
        name=_validate_name(name),
        quantity=parse_quantity(quantity, allow_zero=True),
        price=parse_price(price),
        category=(category or '').strip() or None,
        user_id=user_id,
    )
    try:
        session.add(product)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error creating product '{product.name}': {e}")
        raise PersistenceError(f'Error al crear producto: {str(e)}')

    logger.info(f"Product created: id={product.id} name='{product.name}' qty={product.quantity}")
    invalidate_dashboard_cache()
    return product


def update_product(session, product_id: int, name=None, quantity=None, price=None,
                   category=None) -> Product:
    """Update the given fields of a product."""
    product = get_product(session, product_id)
    if name is not None:
        product.name = _validate_name(name)
    if quantity is not None:
        product.quantity = parse_quantity(quantity, allow_zero=True)
    if price is not None:
        product.price = parse_price(price)
    if category is not None:
        product.category = category.strip() or None

    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f'Error al actualizar producto: {str(e)}')

    logger.info(f"Product updated: id={product.id}")
    invalidate_dashboard_cache()
    return product


def delete_product(session, product_id: int) -> None:
    """
    Delete a product. Historical sale rows keep their product_id;
    cancelling them later skips the restock.
    """
    product = get_product(session, product_id)
    try:
        session.delete(product)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f'Error al eliminar producto: {str(e)}')

    logger.info(f"Product deleted: id={product_id}")
    invalidate_dashboard_cache()
