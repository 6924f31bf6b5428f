"""
Cart pricing engine.

The cart lives in the Flask session between requests (see ``to_dict`` /
``from_dict``); every money value is kept as a full-precision Decimal and
only rounded by the presentation helpers.
"""
from dataclasses import dataclass, asdict, fields
from decimal import Decimal
from typing import List, Optional, Tuple

from punto_venta.exceptions import ValidationError
from punto_venta.utils.money import decompose_price, validate_exchange_rate, round_display, TAX_RATE
from punto_venta.services.inventory_service import parse_quantity

MAX_CART_ITEMS = 10


@dataclass
class CartLineItem:
    """One priced cart line. ``stock_quantity`` is the stock seen at add time."""
    product_id: int
    name: str
    quantity: int
    stock_quantity: int
    exchange_rate: Decimal
    unit_price_with_tax_usd: Decimal
    unit_price_without_tax_usd: Decimal
    unit_tax_usd: Decimal
    price_without_tax_local: Decimal
    tax_local: Decimal
    price_with_tax_local: Decimal
    subtotal_local: Decimal = Decimal('0')
    tax_total_local: Decimal = Decimal('0')
    total_local: Decimal = Decimal('0')

    @classmethod
    def price(cls, product, quantity: int, exchange_rate: Decimal,
              tax_rate: Decimal = TAX_RATE) -> 'CartLineItem':
        parts = decompose_price(product.price, tax_rate)
        line = cls(
            product_id=product.id,
            name=product.name,
            quantity=quantity,
            stock_quantity=product.quantity,
            exchange_rate=exchange_rate,
            unit_price_with_tax_usd=parts['with_tax'],
            unit_price_without_tax_usd=parts['without_tax'],
            unit_tax_usd=parts['tax'],
            price_without_tax_local=parts['without_tax'] * exchange_rate,
            tax_local=parts['tax'] * exchange_rate,
            price_with_tax_local=parts['with_tax'] * exchange_rate,
        )
        line.recompute()
        return line

    def recompute(self) -> None:
        self.subtotal_local = self.price_without_tax_local * self.quantity
        self.tax_total_local = self.tax_local * self.quantity
        self.total_local = self.price_with_tax_local * self.quantity

    def to_dict(self) -> dict:
        """Session-safe dict: Decimals as strings."""
        return {
            key: str(value) if isinstance(value, Decimal) else value
            for key, value in asdict(self).items()
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CartLineItem':
        values = {}
        for f in fields(cls):
            raw = data[f.name]
            if f.name in ('product_id', 'quantity', 'stock_quantity'):
                values[f.name] = int(raw)
            elif f.name == 'name':
                values[f.name] = raw
            else:
                values[f.name] = Decimal(str(raw))
        return cls(**values)

    def display(self) -> dict:
        """Line rounded for presentation."""
        return {
            'product_id': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'stock_quantity': self.stock_quantity,
            'unit_price_usd': self.unit_price_with_tax_usd,
            'price_without_tax_local': round_display(self.price_without_tax_local),
            'tax_local': round_display(self.tax_local),
            'price_with_tax_local': round_display(self.price_with_tax_local),
            'subtotal_local': round_display(self.subtotal_local),
            'tax_total_local': round_display(self.tax_total_local),
            'total_local': round_display(self.total_local),
        }


class Cart:
    """Ordered list of priced lines. The same product may appear on several lines."""

    def __init__(self, items: Optional[List[CartLineItem]] = None, max_items: int = MAX_CART_ITEMS,
                 tax_rate: Decimal = TAX_RATE):
        self.items: List[CartLineItem] = list(items or [])
        self.max_items = max_items
        self.tax_rate = tax_rate

    def __len__(self):
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def near_limit(self) -> bool:
        """Two slots or fewer left before the cart is full."""
        return self.max_items - 2 <= len(self.items) < self.max_items

    @property
    def is_full(self) -> bool:
        return len(self.items) >= self.max_items

    def add_item(self, product, qty, exchange_rate) -> CartLineItem:
        """
        Price ``qty`` units of ``product`` and append the line.

        Raises:
            ValidationError: rate unset or <= 0, bad quantity, not enough
                stock, or cart full
        """
        rate = validate_exchange_rate(exchange_rate)
        quantity = parse_quantity(qty)
        if quantity > product.quantity:
            raise ValidationError(
                f'No hay suficiente stock de {product.name}. Disponible: {product.quantity}'
            )
        if self.is_full:
            raise ValidationError(f'El carrito no puede tener más de {self.max_items} productos')

        line = CartLineItem.price(product, quantity, rate, self.tax_rate)
        self.items.append(line)
        return line

    def _line(self, index: int) -> CartLineItem:
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self.items):
            raise ValidationError('Producto no encontrado en el carrito')
        return self.items[index]

    def change_quantity(self, index: int, delta: int) -> CartLineItem:
        """
        Move a line's quantity by ``delta``, clamped to [1, stock_quantity].

        A decrement past 1 leaves the line at 1. Going above the stock
        snapshot is rejected and leaves the line untouched.
        """
        line = self._line(index)
        new_quantity = line.quantity + delta
        if new_quantity > line.stock_quantity:
            raise ValidationError('No hay suficiente stock disponible')
        new_quantity = max(1, new_quantity)
        if new_quantity == line.quantity:
            return line
        line.quantity = new_quantity
        line.recompute()
        return line

    def remove_item(self, index: int) -> Tuple[CartLineItem, int]:
        """Remove a line; returns it with its position so it can be restored."""
        line = self._line(index)
        del self.items[index]
        return line, index

    def restore_item(self, item: CartLineItem, index: int) -> None:
        """Undo a removal, putting the line back where it was."""
        if self.is_full:
            raise ValidationError(f'El carrito no puede tener más de {self.max_items} productos')
        position = max(0, min(index, len(self.items)))
        self.items.insert(position, item)

    def clear(self) -> None:
        self.items = []

    def subtotal(self) -> Decimal:
        return sum((line.subtotal_local for line in self.items), Decimal('0'))

    def tax_total(self) -> Decimal:
        return sum((line.tax_total_local for line in self.items), Decimal('0'))

    def total(self) -> Decimal:
        return sum((line.total_local for line in self.items), Decimal('0'))

    def to_dict(self) -> dict:
        return {'items': [line.to_dict() for line in self.items]}

    @classmethod
    def from_dict(cls, data: Optional[dict], max_items: int = MAX_CART_ITEMS,
                  tax_rate: Decimal = TAX_RATE) -> 'Cart':
        data = data or {}
        return cls([CartLineItem.from_dict(item) for item in data.get('items', [])], max_items, tax_rate)

    def summary(self) -> dict:
        """Priced cart snapshot for the client, rounded for display."""
        return {
            'items': [line.display() for line in self.items],
            'item_count': len(self.items),
            'max_items': self.max_items,
            'near_limit': self.near_limit,
            'subtotal': round_display(self.subtotal()),
            'tax': round_display(self.tax_total()),
            'total': round_display(self.total()),
        }
