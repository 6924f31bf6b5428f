"""Settings blueprint - exchange rate."""
from flask import Blueprint, request, jsonify, g

from punto_venta.database import get_session
from punto_venta.middleware import require_login, require_role
from punto_venta.services import settings_service
from punto_venta.utils.http import get_payload

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')


@settings_bp.route('/exchange-rate', methods=['GET'])
@require_login
def get_exchange_rate():
    rate = settings_service.get_exchange_rate(get_session(), g.user_id)
    return jsonify({'status': 'success', 'exchange_rate': rate})


@settings_bp.route('/exchange-rate', methods=['POST'])
@require_role('admin')
def set_exchange_rate():
    rate = settings_service.set_exchange_rate(get_session(), get_payload().get('exchange_rate'), g.user_id)
    return jsonify({'status': 'success', 'message': 'Tasa de cambio actualizada', 'exchange_rate': rate})


@settings_bp.route('/exchange-rate/history', methods=['GET'])
@require_login
def exchange_rate_history():
    limit = request.args.get('limit', 30, type=int)
    history = settings_service.list_exchange_rate_history(get_session(), limit)
    return jsonify({
        'status': 'success',
        'history': [
            {'rate': h.rate, 'user_id': h.user_id, 'created_at': h.created_at}
            for h in history
        ],
    })
