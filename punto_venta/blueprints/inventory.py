"""Inventory blueprint - product list and admin maintenance."""
from flask import Blueprint, request, jsonify, g

from punto_venta.database import get_session
from punto_venta.middleware import require_login, require_role
from punto_venta.services import inventory_service
from punto_venta.utils.http import get_payload

inventory_bp = Blueprint('inventory', __name__, url_prefix='/inventory')


@inventory_bp.route('/', methods=['GET'])
@require_login
def list_products():
    """Products, optionally filtered by ``q`` (name contains)."""
    products = inventory_service.search_products(get_session(), request.args.get('q', ''))
    return jsonify({'status': 'success', 'products': [p.to_dict() for p in products]})


@inventory_bp.route('/', methods=['POST'])
@require_role('admin')
def create_product():
    payload = get_payload()
    product = inventory_service.create_product(
        get_session(),
        payload.get('name'),
        payload.get('quantity', 0),
        payload.get('price'),
        category=payload.get('category'),
        user_id=g.user_id,
    )
    return jsonify({'status': 'success', 'product': product.to_dict()}), 201


@inventory_bp.route('/<int:product_id>/edit', methods=['POST'])
@require_role('admin')
def edit_product(product_id):
    payload = get_payload()
    product = inventory_service.update_product(
        get_session(),
        product_id,
        name=payload.get('name'),
        quantity=payload.get('quantity'),
        price=payload.get('price'),
        category=payload.get('category'),
    )
    return jsonify({'status': 'success', 'product': product.to_dict()})


@inventory_bp.route('/<int:product_id>/delete', methods=['POST'])
@require_role('admin')
def delete_product(product_id):
    inventory_service.delete_product(get_session(), product_id)
    return jsonify({'status': 'success', 'message': 'Producto eliminado'})
