"""
POS ledger: catalog edits, checkout, stock, debt accounts and history.
"""

from datetime import timedelta

import pytest

from arbpos.models import Customer, DebtLogEntry, Product, SaleTransaction
from arbpos.time_utils import utcnow
from tests.conftest import expect_error, expect_success


def _add_product(pos, name='Kopi', price=5000, stock=10, category='Drinks'):
    data = expect_success(pos('manageProduct', type='ADD',
                              product={'name': name, 'price': price, 'stock': stock, 'category': category}))
    return data['id']


def _sell(pos, product_id, qty, payment='CASH', customer=None, price=None):
    line = {'id': product_id, 'qty': qty}
    if price is not None:
        line['price'] = price
    payload = {'cart': [line], 'paymentType': payment}
    if customer is not None:
        payload['customerName'] = customer
    return pos('processTransaction', **payload)


def _stock(pos, product_id):
    products = expect_success(pos('getStoreData'))['products']
    return next(p['stock'] for p in products if p['id'] == product_id)


class TestProducts:

    def test_add_update_delete(self, pos):
        product_id = _add_product(pos)
        products = expect_success(pos('getStoreData'))['products']
        assert products == [{'id': product_id, 'name': 'Kopi', 'price': 5000,
                             'stock': 10, 'category': 'Drinks'}]

        updated = expect_success(pos('manageProduct', type='UPDATE',
                                     product={'id': product_id, 'name': 'Kopi Susu', 'price': 7000, 'stock': 4}))
        assert updated == {'message': 'Product Updated'}
        product = expect_success(pos('getStoreData'))['products'][0]
        assert product['name'] == 'Kopi Susu'
        assert product['price'] == 7000
        assert product['stock'] == 4
        # Full replace: absent category falls back to empty
        assert product['category'] == ''

        deleted = expect_success(pos('manageProduct', type='DELETE', product={'id': product_id}))
        assert deleted == {'message': 'Product Deleted'}
        assert expect_success(pos('getStoreData'))['products'] == []

    def test_products_sorted_by_name(self, pos):
        _add_product(pos, name='Teh')
        _add_product(pos, name='Air')
        names = [p['name'] for p in expect_success(pos('getStoreData'))['products']]
        assert names == ['Air', 'Teh']

    @pytest.mark.parametrize("action", ["UPDATE", "DELETE"])
    def test_unknown_product(self, pos, action):
        expect_error(pos('manageProduct', type=action, product={'id': 9999, 'name': 'X'}), 'ProductNotFound')
        expect_error(pos('manageProduct', type=action, product={'name': 'X'}), 'ProductNotFound')

    def test_out_of_range_product_id(self, pos):
        expect_error(pos('manageProduct', type='DELETE', product={'id': 10**20}), 'ProductNotFound')

    def test_invalid_action(self, pos):
        expect_error(pos('manageProduct', type='RENAME', product={'name': 'X'}), 'InvalidProductAction')

    @pytest.mark.parametrize("product", [
        {'name': '', 'price': 100},
        {'name': 'Kopi', 'price': -1},
        {'name': 'Kopi', 'price': '12.5'},
        {'name': 'Kopi', 'stock': 'lots'},
        {'name': 'Kopi', 'stock': 10**20},
        {'name': 'Kopi', 'price': 10**20},
    ])
    def test_invalid_fields(self, pos, product):
        expect_error(pos('manageProduct', type='ADD', product=product), 'ValidationError')
        assert expect_success(pos('getStoreData'))['products'] == []


class TestCheckout:

    def test_stock_can_go_negative(self, pos):
        product_id = _add_product(pos, stock=5)

        expect_success(_sell(pos, product_id, 2))
        assert _stock(pos, product_id) == 3

        expect_success(_sell(pos, product_id, 4))
        assert _stock(pos, product_id) == -1

    def test_receipt_and_total(self, pos):
        kopi = _add_product(pos, name='Kopi', price=5000)
        roti = _add_product(pos, name='Roti', price=3000)

        receipt = expect_success(pos('processTransaction', paymentType='CASH', cart=[
            {'id': kopi, 'qty': 2},
            {'id': roti, 'qty': 1},
        ]))
        assert receipt['total'] == 13000
        assert receipt['transactionId']
        assert receipt['date']

        sale = expect_success(pos('getStoreHistory'))[0]
        assert sale['id'] == receipt['transactionId']
        assert sale['type'] == 'CASH'
        assert sale['customer'] == 'General'
        assert sale['items'] == [
            {'n': 'Kopi', 'q': 2, 'p': 5000},
            {'n': 'Roti', 'q': 1, 'p': 3000},
        ]

    def test_client_total_does_not_override(self, pos):
        product_id = _add_product(pos, price=5000)
        receipt = expect_success(pos('processTransaction', paymentType='CASH', total=1,
                                     cart=[{'id': product_id, 'qty': 1}]))
        assert receipt['total'] == 5000

    def test_snapshot_survives_catalog_edits(self, pos):
        product_id = _add_product(pos, name='Kopi', price=5000)
        expect_success(_sell(pos, product_id, 1))

        expect_success(pos('manageProduct', type='UPDATE',
                           product={'id': product_id, 'name': 'Kopi Baru', 'price': 9000}))
        expect_success(pos('manageProduct', type='DELETE', product={'id': product_id}))

        sale = expect_success(pos('getStoreHistory'))[0]
        assert sale['items'] == [{'n': 'Kopi', 'q': 1, 'p': 5000}]
        assert sale['total'] == 5000

    def test_unknown_product_line_uses_cart_values(self, pos):
        receipt = expect_success(pos('processTransaction', paymentType='CASH', cart=[
            {'id': 424242, 'name': 'Es Batu', 'qty': 3, 'price': 500},
        ]))
        assert receipt['total'] == 1500

    def test_unknown_product_without_price_rejected(self, pos, db_session):
        expect_error(pos('processTransaction', paymentType='CASH',
                         cart=[{'id': 424242, 'qty': 1}]), 'InvalidCart')
        assert db_session.query(SaleTransaction).count() == 0

    @pytest.mark.parametrize("cart", [
        [],
        None,
        ['not-a-line'],
        [{'id': 1, 'qty': 0}],
        [{'id': 1, 'qty': -2}],
        [{'id': 1, 'qty': 'two'}],
    ])
    def test_invalid_cart(self, pos, cart):
        expect_error(pos('processTransaction', paymentType='CASH', cart=cart), 'InvalidCart')

    def test_oversized_quantity_rejected(self, pos, db_session):
        product_id = _add_product(pos, stock=5)

        expect_error(_sell(pos, product_id, 10**20), 'InvalidCart')
        expect_error(_sell(pos, product_id, 1_000_001), 'InvalidCart')

        assert _stock(pos, product_id) == 5
        assert db_session.query(SaleTransaction).count() == 0

    def test_oversized_total_rejected(self, pos, db_session):
        product_id = _add_product(pos, price=999_999_999_999, stock=5)

        expect_error(_sell(pos, product_id, 2), 'InvalidCart')
        assert _stock(pos, product_id) == 5

    def test_out_of_range_id_is_unknown_product(self, pos):
        receipt = expect_success(pos('processTransaction', paymentType='CASH', cart=[
            {'id': 10**20, 'name': 'Es Batu', 'qty': 1, 'price': 500},
        ]))
        assert receipt['total'] == 500

    def test_invalid_payment_type(self, pos):
        product_id = _add_product(pos)
        expect_error(_sell(pos, product_id, 1, payment='CARD'), 'InvalidPaymentType')
        assert _stock(pos, product_id) == 10

    @pytest.mark.parametrize("customer", [None, '', '   '])
    def test_debt_requires_customer_and_writes_nothing(self, pos, db_session, customer):
        product_id = _add_product(pos, stock=5)

        expect_error(_sell(pos, product_id, 2, payment='DEBT', customer=customer), 'CustomerNameRequired')

        assert _stock(pos, product_id) == 5
        assert db_session.query(SaleTransaction).count() == 0
        assert db_session.query(Customer).count() == 0
        assert db_session.query(DebtLogEntry).count() == 0


class TestDebt:

    def test_debt_sales_accumulate_on_one_customer(self, pos, db_session):
        product_id = _add_product(pos, price=50)

        first = expect_success(_sell(pos, product_id, 2, payment='DEBT', customer='Ana'))
        second = expect_success(_sell(pos, product_id, 1, payment='DEBT', customer='ana '))

        customers = db_session.query(Customer).all()
        assert len(customers) == 1
        assert customers[0].name == 'Ana'
        assert customers[0].debt_balance == 150

        entries = (db_session.query(DebtLogEntry)
                   .order_by(DebtLogEntry.id.asc()).all())
        assert [(e.kind, e.amount, e.reference) for e in entries] == [
            ('DEBT_INCREASE', 100, first['transactionId']),
            ('DEBT_INCREASE', 50, second['transactionId']),
        ]

        history = expect_success(pos('getStoreHistory'))
        assert history[0]['customer'] == 'ana'
        assert history[0]['type'] == 'DEBT'

    def test_payment_reduces_and_clamps(self, pos):
        product_id = _add_product(pos, price=100)
        sale = expect_success(_sell(pos, product_id, 1, payment='DEBT', customer='Budi'))
        customer = expect_success(pos('searchCustomer', query='budi'))[0]

        assert expect_success(pos('processDebtPayment', customerId=customer['id'], amount=30)) == {'newBalance': 70}
        assert expect_success(pos('processDebtPayment', customerId=customer['id'], amount=500)) == {'newBalance': 0}

        log = expect_success(pos('getDebtLog', customerId=customer['id']))
        assert [(e['type'], e['amount'], e['ref']) for e in log] == [
            ('DEBT_PAYMENT', 500, 'MANUAL_PAYMENT'),
            ('DEBT_PAYMENT', 30, 'MANUAL_PAYMENT'),
            ('DEBT_INCREASE', 100, sale['transactionId']),
        ]
        assert all(e['name'] == 'Budi' for e in log)

    def test_payment_unknown_customer(self, pos, db_session):
        expect_error(pos('processDebtPayment', customerId=777, amount=10), 'CustomerNotFound')
        expect_error(pos('processDebtPayment', customerId='abc', amount=10), 'CustomerNotFound')
        expect_error(pos('processDebtPayment', amount=10), 'CustomerNotFound')
        expect_error(pos('processDebtPayment', customerId=10**20, amount=10), 'CustomerNotFound')
        assert db_session.query(DebtLogEntry).count() == 0

    @pytest.mark.parametrize("amount", [0, -5, '1.5', None, 'ten'])
    def test_payment_invalid_amount(self, pos, db_session, amount):
        product_id = _add_product(pos, price=100)
        expect_success(_sell(pos, product_id, 1, payment='DEBT', customer='Citra'))
        customer = expect_success(pos('searchCustomer', query='Citra'))[0]

        expect_error(pos('processDebtPayment', customerId=customer['id'], amount=amount), 'InvalidAmount')

        assert db_session.query(DebtLogEntry).filter_by(kind='DEBT_PAYMENT').count() == 0
        assert expect_success(pos('searchCustomer', query='Citra'))[0]['debt'] == 100

    def test_search_customers(self, pos):
        product_id = _add_product(pos, price=10)
        for name in ('Ana', 'Diana', 'Budi'):
            expect_success(_sell(pos, product_id, 1, payment='DEBT', customer=name))

        names = [c['name'] for c in expect_success(pos('searchCustomer', query='ANA'))]
        assert names == ['Ana', 'Diana']

        everyone = expect_success(pos('searchCustomer', query=''))
        assert len(everyone) == 3

        assert expect_success(pos('searchCustomer', query='%')) == []

    def test_debt_log_unknown_customer(self, pos):
        expect_error(pos('getDebtLog', customerId=31337), 'CustomerNotFound')


class TestHistory:

    def test_newest_first_and_capped(self, pos, db_session):
        base = utcnow() - timedelta(days=1)
        for i in range(105):
            db_session.add(SaleTransaction(
                transaction_number=f'T{i:05d}',
                payment_type='CASH',
                total=i,
                customer_label='General',
                line_items=[{'n': 'Item', 'q': 1, 'p': i}],
                created_at=base + timedelta(minutes=i),
            ))
        db_session.commit()

        history = expect_success(pos('getStoreHistory'))
        assert len(history) == 100
        assert history[0]['id'] == 'T00104'
        assert history[-1]['id'] == 'T00005'

    def test_ledger_requires_bound_device(self, rpc, store_session):
        expect_error(rpc('getStoreHistory', token=store_session['token'], deviceId='intruder'),
                     'DeviceMismatch')
        expect_error(rpc('getStoreHistory', token='ARB-0000-0000', deviceId='x'), 'InvalidToken')
