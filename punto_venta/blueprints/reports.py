"""Reports blueprint - sales and cash advance reports (JSON + CSV rows)."""
from datetime import date

from flask import Blueprint, request, jsonify

from punto_venta.database import get_session
from punto_venta.middleware import require_login
from punto_venta.models import TransactionType
from punto_venta.services import report_service
from punto_venta.utils.http import parse_date_arg

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')


def _date_range():
    """``range`` preset wins over explicit ``start``/``end``."""
    preset = request.args.get('range', '').strip()
    if preset:
        return report_service.get_preset_date_range(preset, date.today())
    return parse_date_arg('start'), parse_date_arg('end')


@reports_bp.route('/sales', methods=['GET'])
@require_login
def sales_report():
    start, end = _date_range()
    report = report_service.build_sales_report(
        get_session(), start, end, payment_method=request.args.get('payment_method') or None
    )
    report['csv'] = {
        'sales': report_service.sales_csv_rows(report['sales_by_date']),
        'payments': report_service.payment_summary_csv_rows(report['payment_summary']),
        'canceled': report_service.payment_summary_csv_rows(report['canceled_summary'], canceled=True),
    }
    return jsonify({'status': 'success', 'report': report})


def _cash_advance_report(transaction_type):
    start, end = _date_range()
    report = report_service.build_cash_advance_report(
        get_session(), start, end,
        fund_id=request.args.get('fund_id', type=int),
        transaction_type=transaction_type,
    )
    transactions = report.pop('transactions')
    report['transactions'] = [t.to_dict() for t in transactions]
    report['csv'] = report_service.cash_advance_csv_rows(transactions)
    return jsonify({'status': 'success', 'report': report})


@reports_bp.route('/cash-advance', methods=['GET'])
@require_login
def cash_advance_report():
    """All fund movements; ``type`` narrows to advance or replenishment."""
    return _cash_advance_report(request.args.get('type') or None)


@reports_bp.route('/advances', methods=['GET'])
@require_login
def advances_report():
    """Advances only, with commissions."""
    return _cash_advance_report(TransactionType.ADVANCE.value)
