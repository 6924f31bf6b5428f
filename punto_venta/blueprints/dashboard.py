"""Dashboard blueprint."""
from flask import Blueprint, jsonify

from punto_venta.database import get_session
from punto_venta.middleware import require_login
from punto_venta.services.dashboard_service import get_dashboard_data

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@dashboard_bp.route('/', methods=['GET'])
@require_login
def index():
    """Today's sales total and product count."""
    return jsonify({'status': 'success', **get_dashboard_data(get_session())})
