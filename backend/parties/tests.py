"""
Test suite for the parties module
Tests: customer and supplier CRUD, codes, address handling, role checks
"""
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties.models import Customer, Supplier


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.sales = TestDataFactory.create_user(role='Sales')
        self.client.authenticate_user(self.sales)

    def _payload(self, **overrides):
        data = {
            'customer_code': 'cust-001',
            'name': 'Tech Solutions Inc',
            'email': 'Contact@TechSolutions.com',
            'phone': '+1-555-0101',
            'address': {'street': '123 Tech Street', 'city': 'San Francisco'},
            'credit_limit': '50000.00',
        }
        data.update(overrides)
        return data

    def test_create_customer(self):
        """Test create customer"""
        response = self.client.post('/api/v1/customers/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['customer_code'], 'CUST-001')
        self.assertEqual(response.data['email'], 'contact@techsolutions.com')
        self.assertEqual(response.data['address']['city'], 'San Francisco')
        self.assertEqual(response.data['address']['zip_code'], '')
        self.assertTrue(response.data['is_active'])

    def test_duplicate_code(self):
        """Test duplicate code"""
        TestDataFactory.create_customer(customer_code='CUST-001')
        response = self.client.post('/api/v1/customers/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'customer_code: Customer with this code already exists')

    def test_invalid_email(self):
        """Test invalid email"""
        response = self.client.post('/api/v1/customers/', self._payload(email='not-an-email'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'].startswith('email:'))

    def test_negative_credit_limit(self):
        """Test negative credit limit"""
        response = self.client.post('/api/v1/customers/', self._payload(credit_limit='-1'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_purchase_role_forbidden(self):
        """Test purchase role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Purchase'))
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_search(self):
        """Test search"""
        TestDataFactory.create_customer(name='Global Enterprises', customer_code='CUST-002')
        TestDataFactory.create_customer(name='Startup Hub', customer_code='CUST-003')
        response = self.client.get('/api/v1/customers/?search=global')
        self.assertEqual(response.data['pagination']['totalItems'], 1)
        self.assertEqual(response.data['results'][0]['customer_code'], 'CUST-002')

    def test_partial_address_update_merges(self):
        """Test partial address update merges"""
        customer = TestDataFactory.create_customer()
        customer.address = {'street': '1 Main St', 'city': 'Austin', 'state': 'TX', 'zip_code': '73301', 'country': 'USA'}
        customer.save()
        response = self.client.patch(
            f'/api/v1/customers/{customer.id}/', {'address': {'city': 'Dallas'}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.address['city'], 'Dallas')
        self.assertEqual(customer.address['street'], '1 Main St')

    def test_update_ignores_unknown_fields(self):
        """Test update ignores unknown fields"""
        customer = TestDataFactory.create_customer()
        response = self.client.patch(
            f'/api/v1/customers/{customer.id}/', {'name': 'Renamed Co', 'created_at': '2000-01-01T00:00:00Z'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.name, 'Renamed Co')
        self.assertNotEqual(customer.created_at.year, 2000)

    def test_delete_requires_admin(self):
        """Test delete requires admin"""
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Customer.objects.filter(pk=customer.pk).exists())

    def test_delete_customer_with_orders_refused(self):
        """Test delete customer with orders refused"""
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_sales_order(customer=customer)
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Customer.objects.filter(pk=customer.pk).exists())


class SupplierAPITests(TestCase):
    """Test supplier endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Purchase'))

    def test_create_supplier_defaults(self):
        """Test create supplier defaults"""
        data = {
            'supplier_code': ' sup-001 ',
            'name': 'Dell Corporation',
            'email': 'orders@dell.com',
            'phone': '+1-800-555-0001',
        }
        response = self.client.post('/api/v1/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['supplier_code'], 'SUP-001')
        self.assertEqual(response.data['payment_terms'], 'Net 30')
        self.assertEqual(set(response.data['address'].keys()), {'street', 'city', 'state', 'zip_code', 'country'})

    def test_duplicate_code(self):
        """Test duplicate code"""
        TestDataFactory.create_supplier(supplier_code='SUP-001')
        data = {'supplier_code': 'sup-001', 'name': 'Other', 'email': 'o@test.com', 'phone': '1'}
        response = self.client.post('/api/v1/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'supplier_code: Supplier with this code already exists')

    def test_sales_role_forbidden(self):
        """Test sales role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_payment_terms(self):
        """Test update payment terms"""
        supplier = TestDataFactory.create_supplier()
        response = self.client.put(
            f'/api/v1/suppliers/{supplier.id}/', {'payment_terms': 'Net 45'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        supplier.refresh_from_db()
        self.assertEqual(supplier.payment_terms, 'Net 45')

    def test_missing_supplier(self):
        """Test missing supplier"""
        response = self.client.get('/api/v1/suppliers/424242/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(Supplier.objects.filter(pk=424242).exists())
