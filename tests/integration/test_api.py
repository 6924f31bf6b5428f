"""
HTTP tests for the JSON blueprints.
"""

from datetime import date
from decimal import Decimal

from punto_venta.models import Product, CashAdvanceFund
from punto_venta.services.cart_service import Cart
from punto_venta.services.sales_service import register_sale


def sell(session, product, qty, user_id):
    cart = Cart()
    cart.add_item(product, qty, Decimal('36.5'))
    return register_sale(session, cart, user_id, 'Divisa')


class TestAuth:
    """Login and role gates."""

    def test_requires_login(self, client, session):
        response = client.get('/sales/cart')
        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'

    def test_inactive_user_is_anonymous(self, client, session, cashier_user):
        user_id = cashier_user.id
        cashier_user.active = False
        session.commit()
        with client.session_transaction() as sess:
            sess['user_id'] = user_id
        assert client.get('/dashboard/').status_code == 401

    def test_admin_only_routes(self, cashier_client, product):
        product_id = product.id
        assert cashier_client.post('/inventory/', json={'name': 'X', 'price': '1'}).status_code == 403
        assert cashier_client.post(f'/inventory/{product_id}/delete').status_code == 403
        assert cashier_client.post('/settings/exchange-rate', json={'exchange_rate': '40'}).status_code == 403
        assert cashier_client.post('/sales/abc/cancel').status_code == 403


class TestCheckout:
    """Cart and checkout over HTTP."""

    def test_add_and_confirm(self, cashier_client, session, product, exchange_rate):
        product_id = product.id

        response = cashier_client.post('/sales/cart/add', json={'product_id': product_id, 'quantity': 2})
        assert response.status_code == 200
        data = response.get_json()
        assert data['total'] == '730.00'
        assert data['subtotal'] == '629.31'
        assert data['tax'] == '100.69'

        response = cashier_client.post('/sales/confirm', json={'payment_method': 'Efectivo Bs'})
        assert response.status_code == 201
        ticket = response.get_json()['ticket']
        assert ticket['total'] == '730.00'
        assert ticket['items'][0]['name'] == 'Harina PAN'

        assert session.get(Product, product_id).quantity == 8
        assert cashier_client.get('/sales/cart').get_json()['item_count'] == 0

    def test_add_without_exchange_rate(self, cashier_client, product):
        response = cashier_client.post('/sales/cart/add', json={'product_id': product.id, 'quantity': 1})
        assert response.status_code == 400

    def test_add_unknown_product(self, cashier_client, exchange_rate):
        response = cashier_client.post('/sales/cart/add', json={'product_id': 999, 'quantity': 1})
        assert response.status_code == 404

    def test_update_remove_undo(self, cashier_client, product, second_product, exchange_rate):
        product_id, second_product_id = product.id, second_product.id
        cashier_client.post('/sales/cart/add', json={'product_id': product_id, 'quantity': 1})
        cashier_client.post('/sales/cart/add', json={'product_id': second_product_id, 'quantity': 1})

        data = cashier_client.post('/sales/cart/update', json={'index': 0, 'delta': 1}).get_json()
        assert data['items'][0]['quantity'] == 2

        response = cashier_client.post('/sales/cart/update', json={'index': 1, 'delta': 5})
        assert response.status_code == 400

        data = cashier_client.post('/sales/cart/remove', json={'index': 0}).get_json()
        assert [item['name'] for item in data['items']] == ['Café']
        assert data['removed']['name'] == 'Harina PAN'

        data = cashier_client.post('/sales/cart/undo').get_json()
        assert [item['name'] for item in data['items']] == ['Harina PAN', 'Café']
        assert cashier_client.post('/sales/cart/undo').status_code == 400

    def test_fractional_delta_is_rejected(self, cashier_client, product, exchange_rate):
        cashier_client.post('/sales/cart/add', json={'product_id': product.id, 'quantity': 1})
        response = cashier_client.post('/sales/cart/update', json={'index': 0, 'delta': 1.5})
        assert response.status_code == 400
        assert cashier_client.get('/sales/cart').get_json()['items'][0]['quantity'] == 1

    def test_tax_rate_comes_from_config(self, app, cashier_client, product, exchange_rate, monkeypatch):
        monkeypatch.setitem(app.config, 'TAX_RATE', '0')
        data = cashier_client.post('/sales/cart/add', json={'product_id': product.id, 'quantity': 1}).get_json()
        assert data['tax'] == '0.00'
        assert data['subtotal'] == '365.00'
        assert data['total'] == '365.00'

    def test_stock_conflict_is_409(self, cashier_client, session, second_product, exchange_rate):
        product_id = second_product.id
        cashier_client.post('/sales/cart/add', json={'product_id': product_id, 'quantity': 3})

        stale = session.get(Product, product_id)
        stale.quantity = 1
        session.commit()

        response = cashier_client.post('/sales/confirm', json={'payment_method': 'Divisa'})
        assert response.status_code == 409
        assert response.get_json()['product_name'] == 'Café'
        assert session.get(Product, product_id).quantity == 1

    def test_confirm_empty_cart(self, cashier_client):
        response = cashier_client.post('/sales/confirm', json={'payment_method': 'Divisa'})
        assert response.status_code == 400


class TestSalesAdmin:
    """Ticket reprint and cancellation."""

    def test_cancel_restores_stock(self, admin_client, session, product, admin_user):
        product_id = product.id
        ticket = sell(session, product, 4, admin_user.id)

        response = admin_client.get(f"/sales/{ticket['sale_group_id']}/ticket")
        assert response.get_json()['ticket']['sale_number'] == ticket['sale_number']

        response = admin_client.post(f"/sales/{ticket['sale_group_id']}/cancel")
        assert response.status_code == 200
        assert session.get(Product, product_id).quantity == 10

        response = admin_client.post(f"/sales/{ticket['sale_group_id']}/cancel")
        assert response.status_code == 400

    def test_recent_sales(self, admin_client, session, product, admin_user):
        ticket = sell(session, product, 1, admin_user.id)
        sales = admin_client.get('/sales/').get_json()['sales']
        assert sales[0]['sale_group_id'] == ticket['sale_group_id']
        assert sales[0]['cashier'] == 'Ana Admin'


class TestInventory:
    """Product maintenance."""

    def test_create_and_search(self, admin_client, session):
        response = admin_client.post('/inventory/', json={'name': 'Arroz', 'quantity': 5, 'price': '12.5'})
        assert response.status_code == 201
        assert response.get_json()['product']['price'] == '12.500'

        products = admin_client.get('/inventory/?q=arr').get_json()['products']
        assert [p['name'] for p in products] == ['Arroz']

    def test_edit_and_delete(self, admin_client, session, product):
        product_id = product.id
        response = admin_client.post(f'/inventory/{product_id}/edit', json={'quantity': 3, 'price': '9.99'})
        assert response.get_json()['product']['quantity'] == 3
        assert response.get_json()['product']['price'] == '9.990'

        assert admin_client.post(f'/inventory/{product_id}/delete').status_code == 200
        assert session.get(Product, product_id) is None

    def test_invalid_quantity(self, admin_client, session):
        response = admin_client.post('/inventory/', json={'name': 'Arroz', 'quantity': '2.5', 'price': '1'})
        assert response.status_code == 400


class TestCashAdvanceApi:
    """Funds and advances over HTTP."""

    def test_advance_closes_and_replenish_reopens(self, cashier_client, session):
        fund = cashier_client.post('/cash-advance/funds', json={'initial_amount': '1000'}).get_json()['fund']
        fund_id = fund['id']

        preview = cashier_client.post('/cash-advance/advance/preview', json={
            'fund_id': fund_id, 'amount': '1000', 'fee_percentage': '10',
        }).get_json()['preview']
        assert Decimal(preview['total_to_charge']) == Decimal('1100')

        data = cashier_client.post('/cash-advance/advance', json={
            'fund_id': fund_id, 'amount': '1000', 'fee_percentage': '10',
        }).get_json()
        assert data['fund_closed'] is True
        assert data['transaction']['cashier_name'] == 'Carlos Cajero'

        data = cashier_client.post(f'/cash-advance/funds/{fund_id}/replenish', json={'amount': '500'}).get_json()
        assert data['fund_reopened'] is True
        fund = session.get(CashAdvanceFund, fund_id)
        assert fund.current_balance == Decimal('500')
        assert fund.is_active is True

    def test_advance_over_balance_is_409(self, cashier_client, fund):
        response = cashier_client.post('/cash-advance/advance', json={
            'fund_id': fund.id, 'amount': '1000.01', 'fee_percentage': '0',
        })
        assert response.status_code == 409

    def test_list_funds_and_transactions(self, cashier_client, fund):
        fund_id = fund.id
        cashier_client.post('/cash-advance/advance', json={'fund_id': fund_id, 'amount': '100', 'fee_percentage': '5'})

        data = cashier_client.get('/cash-advance/funds').get_json()
        assert Decimal(data['statistics']['total_commissions']) == Decimal('5')
        assert Decimal(data['statistics']['active_balance_total']) == Decimal('900')

        transactions = cashier_client.get('/cash-advance/transactions').get_json()['transactions']
        assert transactions[0]['fund_description'] == 'Fondo caja 1'

    def test_deactivate(self, cashier_client, fund):
        data = cashier_client.post(f'/cash-advance/funds/{fund.id}/deactivate').get_json()
        assert data['fund']['is_active'] is False


class TestReportsAndSettings:
    """Reports, dashboard and exchange rate endpoints."""

    def test_sales_report_today(self, cashier_client, session, product, cashier_user):
        sell(session, product, 2, cashier_user.id)
        today = date.today().isoformat()

        report = cashier_client.get(f'/reports/sales?start={today}&end={today}').get_json()['report']
        assert Decimal(report['total_sales']) == Decimal('730')
        assert report['csv']['sales'][0]['Ventas (Bs.)'] == '730.00'
        assert report['payment_summary']['Divisa']['transactions'] == 1

    def test_sales_report_requires_dates(self, cashier_client):
        assert cashier_client.get('/reports/sales').status_code == 400
        assert cashier_client.get('/reports/sales?start=2026-13-01&end=2026-01-01').status_code == 400

    def test_preset_range(self, cashier_client, session):
        response = cashier_client.get('/reports/advances?range=last7Days')
        assert response.status_code == 200
        assert response.get_json()['report']['transaction_type'] == 'advance'

    def test_dashboard(self, cashier_client, session, product, cashier_user):
        sell(session, product, 2, cashier_user.id)
        data = cashier_client.get('/dashboard/').get_json()
        assert Decimal(data['daily_sales_total']) == Decimal('730')
        assert data['product_count'] == 1

    def test_exchange_rate_roundtrip(self, admin_client, session):
        assert admin_client.get('/settings/exchange-rate').get_json()['exchange_rate'] is None

        response = admin_client.post('/settings/exchange-rate', json={'exchange_rate': '40.25'})
        assert response.status_code == 200
        assert admin_client.get('/settings/exchange-rate').get_json()['exchange_rate'] == '40.25'

        history = admin_client.get('/settings/exchange-rate/history').get_json()['history']
        assert len(history) == 1

        assert admin_client.post('/settings/exchange-rate', json={'exchange_rate': '0'}).status_code == 400
