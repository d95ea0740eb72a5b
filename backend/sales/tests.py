"""
Test suite for the sales module
Tests: order creation and totals, references, stock checks, status transitions and stock deduction
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.catalog.models import Product
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.sales.models import SalesOrder
from backend.sales.services import change_sales_order_status


class SalesOrderCreateTests(TestCase):
    """Test sales order creation"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='Sales')
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer()
        self.product = TestDataFactory.create_product(name='Laptop', stock=20)

    def _payload(self, **overrides):
        data = {
            'order_number': 'so-1001',
            'customer': self.customer.id,
            'items': [{
                'product': self.product.id,
                'quantity': 5,
                'unit_price': '100.00',
                'discount': '5.00',
                'tax': '10.00',
            }],
        }
        data.update(overrides)
        return data

    def test_create_derives_totals(self):
        """Test create derives totals"""
        response = self.client.post('/api/v1/sales-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order_number'], 'SO-1001')
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['items'][0]['total'], '495.00')
        self.assertEqual(response.data['subtotal'], '495.00')
        self.assertEqual(response.data['total_tax'], '10.00')
        self.assertEqual(response.data['total_discount'], '5.00')
        self.assertEqual(response.data['grand_total'], '500.00')
        self.assertEqual(response.data['created_by'], self.user.id)

    def test_client_totals_are_ignored(self):
        """Test client totals are ignored"""
        payload = self._payload(grand_total='1.00', status='delivered')
        payload['items'][0]['total'] = '9999.00'
        response = self.client.post('/api/v1/sales-orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['grand_total'], '500.00')
        self.assertEqual(response.data['status'], 'pending')

    def test_creation_does_not_move_stock(self):
        """Test creation does not move stock"""
        self.client.post('/api/v1/sales-orders/', self._payload(), format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 20)

    def test_missing_customer(self):
        """Test missing customer"""
        response = self.client.post('/api/v1/sales-orders/', self._payload(customer=99999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Customer not found')

    def test_missing_product(self):
        """Test missing product"""
        payload = self._payload()
        payload['items'][0]['product'] = 99999
        response = self.client.post('/api/v1/sales-orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Product not found')

    def test_insufficient_stock(self):
        """Test insufficient stock"""
        payload = self._payload()
        payload['items'][0]['quantity'] = 21
        response = self.client.post('/api/v1/sales-orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock for product Laptop')
        self.assertFalse(SalesOrder.objects.exists())

    def test_insufficient_stock_across_lines(self):
        """Test insufficient stock across lines"""
        payload = self._payload()
        payload['items'].append({'product': self.product.id, 'quantity': 16, 'unit_price': '100.00'})
        response = self.client.post('/api/v1/sales-orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_order_number(self):
        """Test duplicate order number"""
        TestDataFactory.create_sales_order(order_number='SO-1001', customer=self.customer)
        response = self.client.post('/api/v1/sales-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'order_number: Order number already exists')

    def test_empty_items(self):
        """Test empty items"""
        response = self.client.post('/api/v1/sales-orders/', self._payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_quantity(self):
        """Test zero quantity"""
        payload = self._payload()
        payload['items'][0]['quantity'] = 0
        response = self.client.post('/api/v1/sales-orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inventory_role_forbidden(self):
        """Test inventory role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Inventory'))
        response = self.client.post('/api/v1/sales-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters(self):
        """Test list filters"""
        TestDataFactory.create_sales_order(order_number='SO-A', customer=self.customer)
        order_b = TestDataFactory.create_sales_order(order_number='SO-B', customer=self.customer)
        change_sales_order_status(order_b.id, 'confirmed')

        response = self.client.get('/api/v1/sales-orders/?status=confirmed')
        self.assertEqual([o['order_number'] for o in response.data['results']], ['SO-B'])

        response = self.client.get('/api/v1/sales-orders/?search=so-a')
        self.assertEqual([o['order_number'] for o in response.data['results']], ['SO-A'])


class SalesOrderUpdateTests(TestCase):
    """Test sales order updates"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        self.product = TestDataFactory.create_product(stock=50)
        self.order = TestDataFactory.create_sales_order(items=[(self.product, 2, '100.00')])

    def test_replace_items_recomputes_totals(self):
        """Test replace items recomputes totals"""
        data = {'items': [{'product': self.product.id, 'quantity': 3, 'unit_price': '10.00', 'tax': '1.50'}]}
        response = self.client.patch(f'/api/v1/sales-orders/{self.order.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['grand_total'], '31.50')

    def test_update_ignores_status_and_totals(self):
        """Test update ignores status and totals"""
        data = {'notes': 'Call first', 'status': 'delivered', 'grand_total': '1.00'}
        response = self.client.patch(f'/api/v1/sales-orders/{self.order.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.notes, 'Call first')
        self.assertEqual(self.order.status, 'pending')
        self.assertEqual(self.order.grand_total, Decimal('200.00'))

    def test_terminal_order_cannot_be_updated(self):
        """Test terminal order cannot be updated"""
        change_sales_order_status(self.order.id, 'cancelled')
        response = self.client.patch(f'/api/v1/sales-orders/{self.order.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot update delivered or cancelled orders')

    def test_delete_requires_admin(self):
        """Test delete requires admin"""
        response = self.client.delete(f'/api/v1/sales-orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/sales-orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(SalesOrder.objects.filter(pk=self.order.pk).exists())

    def test_items_locked_after_shipping(self):
        """Test lines cannot be replaced once the order has shipped"""
        other = TestDataFactory.create_product(name='Monitor', sku='MON-1', stock=10)
        change_sales_order_status(self.order.id, 'confirmed')
        change_sales_order_status(self.order.id, 'shipped')

        data = {'items': [{'product': other.id, 'quantity': 9, 'unit_price': '10.00'}]}
        response = self.client.patch(f'/api/v1/sales-orders/{self.order.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot change items after the order has shipped')

        self.product.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.product.stock, 48)
        self.assertEqual(other.stock, 10)
        self.assertEqual(list(self.order.items.values_list('product_id', flat=True)), [self.product.id])

    def test_shipped_order_header_still_editable(self):
        """Test notes can change on a shipped order"""
        change_sales_order_status(self.order.id, 'confirmed')
        change_sales_order_status(self.order.id, 'shipped')
        response = self.client.patch(f'/api/v1/sales-orders/{self.order.id}/', {'notes': 'Left dock 3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Left dock 3')
        self.assertTrue(response.data['stock_deducted'])


class SalesOrderStatusTests(TestCase):
    """Test status transitions and the stock they move"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        self.product = TestDataFactory.create_product(stock=10)
        self.order = TestDataFactory.create_sales_order(items=[(self.product, 4, '25.00')])
        self.url = f'/api/v1/sales-orders/{self.order.id}/status/'

    def _set_status(self, value):
        return self.client.patch(self.url, {'status': value}, format='json')

    def test_confirm_does_not_move_stock(self):
        """Test confirm does not move stock"""
        response = self._set_status('confirmed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_ship_from_confirmed_deducts_once(self):
        """Test ship from confirmed deducts once"""
        self._set_status('confirmed')
        response = self._set_status('shipped')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'shipped')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 6)

        response = self._set_status('delivered')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 6)
        self.assertEqual(AuditLog.objects.filter(action='stock_ship').count(), 1)

    def test_deliver_from_confirmed_deducts(self):
        """Test deliver from confirmed deducts"""
        self._set_status('confirmed')
        self._set_status('delivered')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 6)

    def test_ship_from_pending_does_not_deduct(self):
        """Test ship from pending does not deduct"""
        self._set_status('shipped')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_deduction_floors_at_zero(self):
        """Test deduction floors at zero"""
        self._set_status('confirmed')
        Product.objects.filter(pk=self.product.pk).update(stock=1)
        self._set_status('shipped')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)

    def test_terminal_status_is_final(self):
        """Test terminal status is final"""
        self._set_status('cancelled')
        response = self._set_status('confirmed')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'cancelled')

    def test_display_label_accepted(self):
        """Test display label accepted"""
        response = self._set_status('Confirmed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'confirmed')

    def test_unknown_status(self):
        """Test unknown status"""
        response = self._set_status('lost')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'].startswith('status:'))

    def test_status_change_is_audited(self):
        """Test status change is audited"""
        self._set_status('confirmed')
        log = AuditLog.objects.get(action='status_change')
        self.assertEqual(log.changes, {'old_status': 'pending', 'new_status': 'confirmed'})

    def test_missing_order(self):
        """Test missing order"""
        response = self.client.patch('/api/v1/sales-orders/99999/status/', {'status': 'confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Sales order not found')

    def test_missing_order_detail(self):
        """Test detail lookup of an unknown order"""
        response = self.client.get('/api/v1/sales-orders/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Sales order not found')

    def test_reshipping_after_reconfirm_does_not_deduct_again(self):
        """Test a confirmed -> shipped cycle only takes stock the first time"""
        for value in ('confirmed', 'shipped', 'confirmed', 'shipped'):
            response = self._set_status(value)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 6)
        self.assertEqual(AuditLog.objects.filter(action='stock_ship').count(), 1)
        self.order.refresh_from_db()
        self.assertTrue(self.order.stock_deducted)
