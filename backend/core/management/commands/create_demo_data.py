from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from backend.catalog.models import Product
from backend.core.models import User
from backend.parties.models import Customer, Supplier

DEMO_USERS = [
    ('admin', 'admin@erp.com', 'Admin', 'User', User.ROLE_ADMIN),
    ('sales', 'sales@erp.com', 'Sales', 'Manager', User.ROLE_SALES),
    ('purchase', 'purchase@erp.com', 'Purchase', 'Manager', User.ROLE_PURCHASE),
    ('inventory', 'inventory@erp.com', 'Inventory', 'Manager', User.ROLE_INVENTORY),
]

DEMO_PRODUCTS = [
    ('PROD-001', 'Laptop Dell XPS 15', 'High-performance laptop for professionals', 'Electronics', '1500', '1200', 25, 10),
    ('PROD-002', 'Office Chair Ergonomic', 'Comfortable ergonomic office chair', 'Furniture', '350', '250', 50, 15),
    ('PROD-003', 'Wireless Mouse Logitech', 'Wireless mouse with precision tracking', 'Electronics', '45', '30', 100, 20),
    ('PROD-004', 'Standing Desk', 'Adjustable height standing desk', 'Furniture', '650', '450', 8, 5),
    ('PROD-005', 'Monitor 27 inch 4K', '27 inch 4K resolution monitor', 'Electronics', '550', '400', 30, 10),
]

DEMO_CUSTOMERS = [
    ('CUST-001', 'Tech Solutions Inc', 'contact@techsolutions.com', '+1-555-0101',
     ('123 Tech Street', 'San Francisco', 'CA', '94102'), '50000'),
    ('CUST-002', 'Global Enterprises', 'info@globalent.com', '+1-555-0102',
     ('456 Business Ave', 'New York', 'NY', '10001'), '75000'),
    ('CUST-003', 'Startup Hub', 'hello@startuphub.com', '+1-555-0103',
     ('789 Innovation Blvd', 'Austin', 'TX', '73301'), '30000'),
]

DEMO_SUPPLIERS = [
    ('SUP-001', 'Dell Corporation', 'orders@dell.com', '+1-800-555-0001',
     ('1 Dell Way', 'Round Rock', 'TX', '78682'), 'Net 30'),
    ('SUP-002', 'Office Furniture Co', 'sales@officefurniture.com', '+1-800-555-0002',
     ('200 Furniture Lane', 'Chicago', 'IL', '60601'), 'Net 45'),
    ('SUP-003', 'Electronics Wholesale', 'wholesale@electronics.com', '+1-800-555-0003',
     ('500 Circuit Road', 'San Jose', 'CA', '95101'), 'Net 30'),
]


def _address(street, city, state, zip_code):
    return {'street': street, 'city': city, 'state': state, 'zip_code': zip_code, 'country': 'USA'}


class Command(BaseCommand):
    help = 'Seed demo users (one per role), products, customers and suppliers'

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            default='Demo@12345',
            help='Password given to every demo user (default: Demo@12345)'
        )

    @transaction.atomic
    def handle(self, *args, **options):
        password = options['password']

        for username, email, first_name, last_name, role in DEMO_USERS:
            user, created = User.objects.update_or_create(
                username=username,
                defaults={
                    'email': email,
                    'first_name': first_name,
                    'last_name': last_name,
                    'role': role,
                    'is_active': True,
                    'is_staff': role == User.ROLE_ADMIN,
                    'is_superuser': role == User.ROLE_ADMIN,
                }
            )
            user.set_password(password)
            user.save()
            self.stdout.write(f"{'Created' if created else 'Updated'} user {username} ({role})")

        for sku, name, description, category, price, cost_price, stock, reorder_level in DEMO_PRODUCTS:
            Product.objects.update_or_create(
                sku=sku,
                defaults={
                    'name': name,
                    'description': description,
                    'category': category,
                    'price': Decimal(price),
                    'cost_price': Decimal(cost_price),
                    'stock': stock,
                    'reorder_level': reorder_level,
                    'unit': 'pcs',
                }
            )
        self.stdout.write(f"Seeded {len(DEMO_PRODUCTS)} products")

        for code, name, email, phone, address, credit_limit in DEMO_CUSTOMERS:
            Customer.objects.update_or_create(
                customer_code=code,
                defaults={
                    'name': name,
                    'email': email,
                    'phone': phone,
                    'company': name,
                    'address': _address(*address),
                    'credit_limit': Decimal(credit_limit),
                }
            )
        self.stdout.write(f"Seeded {len(DEMO_CUSTOMERS)} customers")

        for code, name, email, phone, address, payment_terms in DEMO_SUPPLIERS:
            Supplier.objects.update_or_create(
                supplier_code=code,
                defaults={
                    'name': name,
                    'email': email,
                    'phone': phone,
                    'company': name,
                    'address': _address(*address),
                    'payment_terms': payment_terms,
                }
            )
        self.stdout.write(f"Seeded {len(DEMO_SUPPLIERS)} suppliers")

        self.stdout.write(self.style.SUCCESS('Demo data ready'))
