"""
Test suite for the dashboard endpoints
Tests: overview counts, trends, rankings, recent activity feed and inventory alerts
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.invoicing.services import record_payment
from backend.purchasing.services import change_purchase_order_status


class DashboardOverviewTests(TestCase):
    """Test the overview counters"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Inventory'))

    def test_requires_authentication(self):
        """Test requires authentication"""
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/overview/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_empty_overview(self):
        """Test empty overview"""
        response = self.client.get('/api/v1/dashboard/overview/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['inventory']['total_products'], 0)
        self.assertEqual(response.data['revenue']['total'], '0.00')
        self.assertEqual(response.data['revenue']['pending'], '0.00')

    def test_overview_counts(self):
        """Test overview counts"""
        product = TestDataFactory.create_product(stock=100, reorder_level=10)
        TestDataFactory.create_product(stock=3, reorder_level=10)
        TestDataFactory.create_customer(is_active=False)
        TestDataFactory.create_supplier()

        order = TestDataFactory.create_sales_order(items=[(product, 2, '100.00')])
        paid = TestDataFactory.create_invoice(order)
        record_payment(paid.id, Decimal('200.00'))
        TestDataFactory.create_invoice(
            TestDataFactory.create_sales_order(items=[(product, 1, '40.00')]), due_in_days=-1
        )

        po = TestDataFactory.create_purchase_order(items=[(product, 1, '10.00')])
        TestDataFactory.create_purchase_order(items=[(product, 1, '10.00')])
        change_purchase_order_status(po.id, 'cancelled')

        response = self.client.get('/api/v1/dashboard/overview/')
        data = response.data
        self.assertEqual(data['inventory']['total_products'], 2)
        self.assertEqual(data['inventory']['low_stock_count'], 1)
        # factory orders create their own active customers
        self.assertEqual(data['customers']['total'], 2)
        self.assertEqual(data['suppliers']['total'], 3)
        self.assertEqual(data['sales']['total_orders'], 2)
        self.assertEqual(data['sales']['pending_orders'], 2)
        self.assertEqual(data['purchases']['total_orders'], 2)
        self.assertEqual(data['purchases']['pending_orders'], 1)
        self.assertEqual(Decimal(data['revenue']['total']), Decimal('200.00'))
        self.assertEqual(Decimal(data['revenue']['pending']), Decimal('40.00'))
        self.assertEqual(data['revenue']['overdue_invoices'], 1)


class DashboardRankingTests(TestCase):
    """Test trends, top products, top customers and activity"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        self.mouse = TestDataFactory.create_product(name='Mouse', stock=100)
        self.desk = TestDataFactory.create_product(name='Desk', stock=100)
        self.acme = TestDataFactory.create_customer(name='Acme')
        self.globex = TestDataFactory.create_customer(name='Globex')
        self.order_1 = TestDataFactory.create_sales_order(
            customer=self.acme, items=[(self.mouse, 10, '10.00'), (self.desk, 1, '500.00')]
        )
        self.order_2 = TestDataFactory.create_sales_order(customer=self.globex, items=[(self.mouse, 5, '10.00')])

    def test_top_products(self):
        """Test top products"""
        response = self.client.get('/api/v1/dashboard/top-products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Desk', 'Mouse'])
        self.assertEqual(response.data[1]['total_quantity'], 15)
        self.assertEqual(Decimal(response.data[1]['total_revenue']), Decimal('150.00'))

    def test_top_products_limit(self):
        """Test top products limit"""
        response = self.client.get('/api/v1/dashboard/top-products/?limit=1')
        self.assertEqual(len(response.data), 1)

    def test_top_customers(self):
        """Test top customers"""
        response = self.client.get('/api/v1/dashboard/top-customers/')
        self.assertEqual([c['name'] for c in response.data], ['Acme', 'Globex'])
        self.assertEqual(response.data[0]['total_orders'], 1)
        self.assertEqual(Decimal(response.data[0]['total_revenue']), Decimal('600.00'))

    def test_top_customers_ties_broken_by_id(self):
        """Test top customers ties broken by id"""
        TestDataFactory.create_sales_order(customer=self.globex, items=[(self.desk, 1, '550.00')])
        response = self.client.get('/api/v1/dashboard/top-customers/')
        self.assertEqual([c['name'] for c in response.data], ['Acme', 'Globex'])

    def test_sales_trends(self):
        """Test sales trends"""
        for period in ('month', 'quarter', 'year'):
            response = self.client.get(f'/api/v1/dashboard/sales-trends/?period={period}')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['period'], period)
            self.assertEqual(sum(t['total_orders'] for t in response.data['trends']), 2)

    def test_sales_trends_bad_period(self):
        """Test sales trends bad period"""
        response = self.client.get('/api/v1/dashboard/sales-trends/?period=decade')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recent_activities(self):
        """Test recent activities"""
        invoice = TestDataFactory.create_invoice(self.order_2)
        response = self.client.get('/api/v1/dashboard/recent-activities/?limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertEqual(response.data[0]['type'], 'Invoice')
        self.assertEqual(response.data[0]['reference'], invoice.invoice_number)


class InventoryAlertTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Purchase'))

    def test_low_and_out_of_stock(self):
        """Test low and out of stock"""
        low = TestDataFactory.create_product(stock=4, reorder_level=5)
        empty = TestDataFactory.create_product(stock=0, reorder_level=5)
        TestDataFactory.create_product(stock=50, reorder_level=5)
        response = self.client.get('/api/v1/dashboard/inventory-alerts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['sku'] for p in response.data['low_stock']], [low.sku])
        self.assertEqual([p['sku'] for p in response.data['out_of_stock']], [empty.sku])
