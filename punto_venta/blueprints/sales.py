"""Sales blueprint - cart, checkout, tickets and cancellations."""
from flask import Blueprint, request, session, jsonify, current_app, g

from punto_venta.database import get_session
from punto_venta.middleware import require_login, require_role
from punto_venta.exceptions import ValidationError
from punto_venta.services.cart_service import Cart, CartLineItem
from punto_venta.services.inventory_service import get_product
from punto_venta.services.settings_service import get_exchange_rate
from punto_venta.services.sales_service import (
    register_sale, cancel_sale_group, reprint_ticket, list_recent_sale_groups, PAYMENT_METHODS
)
from punto_venta.utils.http import get_payload, require_int
from punto_venta.utils.money import to_decimal, TAX_RATE

sales_bp = Blueprint('sales', __name__, url_prefix='/sales')

CART_KEY = 'cart'
UNDO_KEY = 'cart_removed'


def get_cart() -> Cart:
    """Get cart from the user session, priced with the configured tax rate."""
    return Cart.from_dict(
        session.get(CART_KEY),
        max_items=current_app.config.get('CART_MAX_ITEMS', 10),
        tax_rate=to_decimal(current_app.config.get('TAX_RATE', TAX_RATE), 'IVA'),
    )


def save_cart(cart: Cart) -> None:
    """Save cart to session (Decimals as strings)."""
    session[CART_KEY] = cart.to_dict()
    session.modified = True


def _cart_response(cart: Cart, status: int = 200, **extra):
    data = cart.summary()
    data['status'] = 'success'
    if cart.near_limit:
        data['warning'] = f'El carrito está cerca del límite de {cart.max_items} productos'
    data.update(extra)
    return jsonify(data), status


@sales_bp.route('/cart', methods=['GET'])
@require_login
def cart_view():
    """Priced cart plus the current exchange rate."""
    rate = get_exchange_rate(get_session(), g.user_id)
    return _cart_response(get_cart(), exchange_rate=rate, payment_methods=PAYMENT_METHODS)


@sales_bp.route('/cart/add', methods=['POST'])
@require_login
def cart_add():
    """Add a product to the cart at the current exchange rate."""
    db_session = get_session()
    payload = get_payload()
    product_id = require_int(payload, 'product_id', 'Producto inválido')
    product = get_product(db_session, product_id)

    cart = get_cart()
    line = cart.add_item(product, payload.get('quantity', 1), get_exchange_rate(db_session, g.user_id))
    save_cart(cart)
    current_app.logger.info(f"[cart_add] user={g.user_id} product={product_id} qty={line.quantity}")
    return _cart_response(cart)


@sales_bp.route('/cart/update', methods=['POST'])
@require_login
def cart_update():
    """Increment or decrement a line by ``delta``."""
    payload = get_payload()
    index = require_int(payload, 'index', 'Producto no encontrado en el carrito')
    delta = require_int(payload, 'delta', 'Cantidad inválida')

    cart = get_cart()
    cart.change_quantity(index, delta)
    save_cart(cart)
    return _cart_response(cart)


@sales_bp.route('/cart/remove', methods=['POST'])
@require_login
def cart_remove():
    """Remove a line, keeping it for undo."""
    index = require_int(get_payload(), 'index', 'Producto no encontrado en el carrito')

    cart = get_cart()
    item, position = cart.remove_item(index)
    save_cart(cart)
    session[UNDO_KEY] = {'item': item.to_dict(), 'index': position}
    return _cart_response(cart, removed=item.display())


@sales_bp.route('/cart/undo', methods=['POST'])
@require_login
def cart_undo():
    """Put back the last removed line."""
    removed = session.pop(UNDO_KEY, None)
    if not removed:
        raise ValidationError('No hay nada que deshacer')

    cart = get_cart()
    cart.restore_item(CartLineItem.from_dict(removed['item']), removed['index'])
    save_cart(cart)
    return _cart_response(cart)


@sales_bp.route('/cart/clear', methods=['POST'])
@require_login
def cart_clear():
    session.pop(CART_KEY, None)
    session.pop(UNDO_KEY, None)
    return _cart_response(Cart())


@sales_bp.route('/confirm', methods=['POST'])
@require_login
def confirm():
    """Settle the cart and return the ticket."""
    payload = get_payload()
    cart = get_cart()

    ticket = register_sale(
        get_session(),
        cart,
        g.user_id,
        payload.get('payment_method'),
        second_payment_method=payload.get('second_payment_method') or None,
        split_amount=payload.get('split_amount'),
    )
    session.pop(CART_KEY, None)
    session.pop(UNDO_KEY, None)
    return jsonify({'status': 'success', 'ticket': ticket}), 201


@sales_bp.route('/', methods=['GET'])
@require_login
def recent_sales():
    limit = request.args.get('limit', 50, type=int)
    return jsonify({'status': 'success', 'sales': list_recent_sale_groups(get_session(), limit)})


@sales_bp.route('/<sale_group_id>/ticket', methods=['GET'])
@require_login
def ticket(sale_group_id):
    return jsonify({'status': 'success', 'ticket': reprint_ticket(get_session(), sale_group_id)})


@sales_bp.route('/<sale_group_id>/cancel', methods=['POST'])
@require_role('admin')
def cancel(sale_group_id):
    """Cancel a whole sale group and restock its products."""
    result = cancel_sale_group(get_session(), sale_group_id)
    return jsonify({'status': 'success', 'message': 'Venta anulada', **result})
