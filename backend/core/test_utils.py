"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
from decimal import Decimal
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.catalog.models import Product
from backend.invoicing import services as invoice_services
from backend.parties.models import Customer, Supplier
from backend.purchasing import services as purchase_services
from backend.sales import services as sales_services

User = get_user_model()

TEST_PASSWORD = 'Str0ngPass!2024'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password=TEST_PASSWORD, role='Sales', is_superuser=False):
        """Create a test user with the given role"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6).lower()}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_superuser,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_product(name=None, sku=None, price='100.00', stock=50, reorder_level=10, category='General'):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8)}'
        return Product.objects.create(
            name=name,
            sku=sku,
            category=category,
            price=Decimal(price),
            cost_price=Decimal(price) * Decimal('0.8'),
            stock=stock,
            reorder_level=reorder_level
        )

    @staticmethod
    def create_customer(name=None, customer_code=None, email=None, is_active=True):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not customer_code:
            customer_code = f'CUST-{TestDataFactory.random_string(6)}'
        return Customer.objects.create(
            name=name,
            customer_code=customer_code,
            email=email or f'{customer_code.lower()}@test.com',
            phone='1234567890',
            is_active=is_active
        )

    @staticmethod
    def create_supplier(name=None, supplier_code=None, email=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        if not supplier_code:
            supplier_code = f'SUP-{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            name=name,
            supplier_code=supplier_code,
            email=email or f'{supplier_code.lower()}@test.com',
            phone='1234567890'
        )

    @staticmethod
    def create_sales_order(user=None, customer=None, items=None, order_number=None):
        """
        Create a sales order through the service layer.

        `items` is a list of (product, quantity, unit_price[, discount[, tax]]).
        """
        if not customer:
            customer = TestDataFactory.create_customer()
        if not order_number:
            order_number = f'SO-{TestDataFactory.random_string(8)}'
        if items is None:
            items = [(TestDataFactory.create_product(), 2, '100.00')]
        return sales_services.create_sales_order(
            {'order_number': order_number, 'customer': customer},
            TestDataFactory._line_dicts(items),
            created_by=user
        )

    @staticmethod
    def create_purchase_order(user=None, supplier=None, items=None, po_number=None):
        """Create a purchase order; `items` as for create_sales_order"""
        if not supplier:
            supplier = TestDataFactory.create_supplier()
        if not po_number:
            po_number = f'PO-{TestDataFactory.random_string(8)}'
        if items is None:
            items = [(TestDataFactory.create_product(), 10, '50.00')]
        return purchase_services.create_purchase_order(
            {'po_number': po_number, 'supplier': supplier},
            TestDataFactory._line_dicts(items),
            created_by=user
        )

    @staticmethod
    def create_grn(purchase_order, user=None, items=None, grn_number=None):
        """
        Record a GRN. `items` is a list of (product, received, accepted[, rejected]);
        defaults to receiving every PO line in full.
        """
        if not grn_number:
            grn_number = f'GRN-{TestDataFactory.random_string(8)}'
        if items is None:
            items = [(line.product, line.quantity, line.quantity) for line in purchase_order.items.all()]
        items_data = []
        for item in items:
            product, received, accepted = item[:3]
            items_data.append({
                'product': product,
                'received_quantity': received,
                'accepted_quantity': accepted,
                'rejected_quantity': item[3] if len(item) > 3 else 0,
            })
        return purchase_services.create_grn(
            {'grn_number': grn_number, 'purchase_order': purchase_order},
            items_data,
            received_by=user
        )

    @staticmethod
    def create_invoice(sales_order, user=None, invoice_number=None, due_in_days=30, amount_paid=None):
        """Raise an invoice for a sales order"""
        if not invoice_number:
            invoice_number = f'INV-{TestDataFactory.random_string(8)}'
        data = {
            'invoice_number': invoice_number,
            'sales_order': sales_order,
            'due_date': timezone.localdate() + timedelta(days=due_in_days),
        }
        if amount_paid is not None:
            data['amount_paid'] = Decimal(amount_paid)
        return invoice_services.create_invoice(data, created_by=user)

    @staticmethod
    def _line_dicts(items):
        lines = []
        for item in items:
            product, quantity, unit_price = item[:3]
            lines.append({
                'product': product,
                'quantity': quantity,
                'unit_price': Decimal(unit_price),
                'discount': Decimal(item[3]) if len(item) > 3 else Decimal('0.00'),
                'tax': Decimal(item[4]) if len(item) > 4 else Decimal('0.00'),
            })
        return lines


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
