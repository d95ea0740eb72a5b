"""
Test suite for the catalog module
Tests: product CRUD, role checks, search and filters, stock adjustments, low stock
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.catalog.models import Product
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ProductModelTests(TestCase):
    """Test Product model behaviour"""

    def test_sku_is_normalized(self):
        """Test sku is normalized"""
        product = TestDataFactory.create_product(sku='  prod-abc ')
        self.assertEqual(product.sku, 'PROD-ABC')

    def test_needs_reorder(self):
        """Test needs reorder"""
        product = TestDataFactory.create_product(stock=10, reorder_level=10)
        self.assertTrue(product.needs_reorder)
        product.stock = 11
        self.assertFalse(product.needs_reorder)

    def test_str(self):
        """Test str"""
        product = TestDataFactory.create_product(name='Desk', sku='DESK-1')
        self.assertEqual(str(product), 'DESK-1 - Desk')


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.inventory = TestDataFactory.create_user(role='Inventory')
        self.sales = TestDataFactory.create_user(role='Sales')
        self.admin = TestDataFactory.create_user(role='Admin')
        self.client.authenticate_user(self.inventory)

    def _payload(self, **overrides):
        data = {
            'sku': 'prod-001',
            'name': 'Laptop Dell XPS 15',
            'category': 'Electronics',
            'price': '1500.00',
            'cost_price': '1200.00',
            'stock': 25,
        }
        data.update(overrides)
        return data

    def test_create_product(self):
        """Test create product"""
        response = self.client.post('/api/v1/products/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sku'], 'PROD-001')
        self.assertEqual(response.data['reorder_level'], 10)
        self.assertEqual(response.data['unit'], 'pcs')
        self.assertTrue(AuditLog.objects.filter(action='create', object_reference='PROD-001').exists())

    def test_create_duplicate_sku_case_insensitive(self):
        """Test create duplicate sku case insensitive"""
        TestDataFactory.create_product(sku='PROD-001')
        response = self.client.post('/api/v1/products/', self._payload(sku=' Prod-001 '), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'sku: Product with this SKU already exists')

    def test_create_missing_name(self):
        """Test create missing name"""
        data = self._payload()
        del data['name']
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'].startswith('name:'))

    def test_create_negative_stock_rejected(self):
        """Test create negative stock rejected"""
        response = self.client.post('/api/v1/products/', self._payload(stock=-1), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_cannot_create(self):
        """Test sales cannot create"""
        self.client.authenticate_user(self.sales)
        response = self.client.post('/api/v1/products/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Product.objects.exists())

    def test_anonymous_gets_401(self):
        """Test anonymous gets 401"""
        self.client.logout()
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_any_role_can_list(self):
        """Test any role can list"""
        TestDataFactory.create_product()
        self.client.authenticate_user(self.sales)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['totalItems'], 1)

    def test_search_and_filters(self):
        """Test search and filters"""
        TestDataFactory.create_product(name='Wireless Mouse', sku='MOUSE-1', category='Electronics', stock=100)
        TestDataFactory.create_product(name='Standing Desk', sku='DESK-1', category='Furniture', stock=3, reorder_level=5)

        response = self.client.get('/api/v1/products/?search=mouse')
        self.assertEqual([p['sku'] for p in response.data['results']], ['MOUSE-1'])

        response = self.client.get('/api/v1/products/?category=furn')
        self.assertEqual([p['sku'] for p in response.data['results']], ['DESK-1'])

        response = self.client.get('/api/v1/products/?low_stock=true')
        self.assertEqual([p['sku'] for p in response.data['results']], ['DESK-1'])

    def test_get_missing_product(self):
        """Test get missing product"""
        response = self.client.get('/api/v1/products/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_update_ignores_stock(self):
        """Test update ignores stock"""
        product = TestDataFactory.create_product(stock=20)
        response = self.client.patch(
            f'/api/v1/products/{product.id}/', {'name': 'Renamed', 'stock': 999}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.name, 'Renamed')
        self.assertEqual(product.stock, 20)

    def test_update_sku_to_existing_rejected(self):
        """Test update sku to existing rejected"""
        TestDataFactory.create_product(sku='TAKEN-1')
        product = TestDataFactory.create_product(sku='FREE-1')
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'sku': 'taken-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_requires_admin(self):
        """Test delete requires admin"""
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())

    def test_delete_referenced_product_refused(self):
        """Test delete referenced product refused"""
        product = TestDataFactory.create_product(stock=10)
        TestDataFactory.create_sales_order(items=[(product, 1, '100.00')])
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())


class ProductStockTests(TestCase):
    """Test the stock adjustment endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Inventory'))
        self.product = TestDataFactory.create_product(stock=10)
        self.url = f'/api/v1/products/{self.product.id}/stock/'

    def test_add(self):
        """Test add"""
        response = self.client.patch(self.url, {'quantity': 5, 'operation': 'add'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stock'], 15)

    def test_subtract_floors_at_zero(self):
        """Test subtract floors at zero"""
        response = self.client.patch(self.url, {'quantity': 25, 'operation': 'subtract'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stock'], 0)

    def test_set_is_default(self):
        """Test set is default"""
        response = self.client.patch(self.url, {'quantity': 42}, format='json')
        self.assertEqual(response.data['stock'], 42)

    def test_invalid_operation(self):
        """Test invalid operation"""
        response = self.client.patch(self.url, {'quantity': 1, 'operation': 'double'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_adjustment_is_audited(self):
        """Test adjustment is audited"""
        self.client.patch(self.url, {'quantity': 3, 'operation': 'add', 'reason': 'recount'}, format='json')
        log = AuditLog.objects.get(action='stock_adjust')
        self.assertEqual(log.changes['old_stock'], 10)
        self.assertEqual(log.changes['new_stock'], 13)
        self.assertEqual(log.changes['reason'], 'recount')

    def test_purchase_role_forbidden(self):
        """Test purchase role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Purchase'))
        response = self.client.patch(self.url, {'quantity': 3, 'operation': 'add'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_low_stock_alerts(self):
        """Test low stock alerts"""
        low = TestDataFactory.create_product(stock=2, reorder_level=5)
        TestDataFactory.create_product(stock=50, reorder_level=5)
        response = self.client.get('/api/v1/products/alerts/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        skus = [p['sku'] for p in response.data]
        self.assertEqual(skus, [low.sku, self.product.sku])
        self.assertTrue(all(p['needs_reorder'] for p in response.data))
        self.assertEqual(Decimal(response.data[0]['price']), low.price)
