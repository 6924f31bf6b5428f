"""Cash advance blueprint - funds, advances and replenishments."""
from flask import Blueprint, request, jsonify

from punto_venta.database import get_session
from punto_venta.middleware import require_login, current_cashier_name
from punto_venta.services import cash_advance_service
from punto_venta.utils.http import get_payload, require_int

cash_advance_bp = Blueprint('cash_advance', __name__, url_prefix='/cash-advance')


def _commit_response(result, message):
    return jsonify({
        'status': 'success',
        'message': message,
        'transaction': result.transaction.to_dict(),
        'fund': result.fund.to_dict(),
        'fund_closed': result.fund_closed,
        'fund_reopened': result.fund_reopened,
    }), 201


@cash_advance_bp.route('/funds', methods=['GET'])
@require_login
def list_funds():
    """Funds plus the header statistics."""
    db_session = get_session()
    funds = cash_advance_service.list_funds(db_session, active_only=request.args.get('active') == '1')
    advances = cash_advance_service.list_recent_advances(db_session)
    return jsonify({
        'status': 'success',
        'funds': [f.to_dict() for f in funds],
        'statistics': cash_advance_service.fund_statistics(funds, advances),
    })


@cash_advance_bp.route('/funds', methods=['POST'])
@require_login
def create_fund():
    payload = get_payload()
    fund = cash_advance_service.create_fund(
        get_session(), payload.get('initial_amount'), payload.get('description')
    )
    return jsonify({'status': 'success', 'fund': fund.to_dict()}), 201


@cash_advance_bp.route('/funds/<int:fund_id>/deactivate', methods=['POST'])
@require_login
def deactivate_fund(fund_id):
    fund = cash_advance_service.deactivate_fund(get_session(), fund_id)
    return jsonify({'status': 'success', 'fund': fund.to_dict()})


@cash_advance_bp.route('/funds/<int:fund_id>/replenish', methods=['POST'])
@require_login
def replenish_fund(fund_id):
    db_session = get_session()
    payload = get_payload()
    fund = cash_advance_service.get_fund(db_session, fund_id)
    preview = cash_advance_service.preview_replenishment(fund, payload.get('amount'))
    result = cash_advance_service.commit_transaction(
        db_session, preview, cashier_name=payload.get('cashier_name') or current_cashier_name(), description=payload.get('description')
    )
    return _commit_response(result, 'Reposición registrada')


@cash_advance_bp.route('/advance/preview', methods=['POST'])
@require_login
def preview_advance():
    """Fee, total to charge and remaining balance, without saving."""
    payload = get_payload()
    fund_id = require_int(payload, 'fund_id', 'Debes seleccionar un fondo')
    fund = cash_advance_service.get_fund(get_session(), fund_id)
    preview = cash_advance_service.preview_advance(fund, payload.get('amount'), payload.get('fee_percentage', 0))
    return jsonify({'status': 'success', 'preview': preview.to_dict()})


@cash_advance_bp.route('/advance', methods=['POST'])
@require_login
def create_advance():
    db_session = get_session()
    payload = get_payload()
    fund_id = require_int(payload, 'fund_id', 'Debes seleccionar un fondo')
    fund = cash_advance_service.get_fund(db_session, fund_id)
    preview = cash_advance_service.preview_advance(fund, payload.get('amount'), payload.get('fee_percentage', 0))
    result = cash_advance_service.commit_transaction(
        db_session, preview, cashier_name=payload.get('cashier_name') or current_cashier_name(), description=payload.get('description')
    )
    return _commit_response(result, 'Avance registrado')


@cash_advance_bp.route('/transactions', methods=['GET'])
@require_login
def list_transactions():
    limit = request.args.get('limit', 50, type=int)
    advances = cash_advance_service.list_recent_advances(get_session(), limit)
    return jsonify({'status': 'success', 'transactions': [t.to_dict() for t in advances]})
