"""
Test suite for the core module
Tests: derivations, role checks, authentication, users, audit log and pagination
"""
from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import NotFound

from backend.core.calculations import (
    compute_line_total, compute_document_totals, derive_payment_status,
    derive_receipt_status, compute_receipt_total,
)
from backend.core.exceptions import flatten_errors
from backend.core.models import AuditLog, User
from backend.core.permissions import check_capability, get_user_role, ADMIN, SALES, INVENTORY
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient, TEST_PASSWORD
from backend.core.utils import create_audit_log, get_object_or_404


class CalculationTests(TestCase):
    """Test the pure total and status derivations"""

    def test_line_total_subtracts_discount(self):
        """Test line total subtracts discount"""
        self.assertEqual(compute_line_total(5, Decimal('100.00'), Decimal('5.00')), Decimal('495.00'))

    def test_line_total_rounds_to_cents(self):
        """Test line total rounds to cents"""
        self.assertEqual(compute_line_total(3, '0.333', 0), Decimal('0.99'))

    def test_document_totals(self):
        """Grand total = sum of line totals + tax - discount"""
        totals = compute_document_totals([
            {'total': Decimal('495.00'), 'tax': Decimal('10.00'), 'discount': Decimal('5.00')},
        ])
        self.assertEqual(totals['subtotal'], Decimal('495.00'))
        self.assertEqual(totals['total_tax'], Decimal('10.00'))
        self.assertEqual(totals['total_discount'], Decimal('5.00'))
        self.assertEqual(totals['grand_total'], Decimal('500.00'))

    def test_document_totals_empty(self):
        """Test document totals empty"""
        totals = compute_document_totals([])
        self.assertEqual(totals['grand_total'], Decimal('0.00'))

    def test_document_totals_are_stable(self):
        """Test document totals are stable"""
        items = [
            {'total': Decimal('200.00'), 'tax': Decimal('20.00'), 'discount': Decimal('0.00')},
            {'total': Decimal('45.50'), 'tax': Decimal('0.00'), 'discount': Decimal('4.50')},
        ]
        self.assertEqual(compute_document_totals(items), compute_document_totals(items))

    def test_payment_status(self):
        """Test payment status"""
        today = date(2024, 6, 1)
        future = today + timedelta(days=10)
        self.assertEqual(derive_payment_status(0, 100, future, today), 'unpaid')
        self.assertEqual(derive_payment_status(40, 100, future, today), 'partially_paid')
        self.assertEqual(derive_payment_status(100, 100, future, today), 'paid')

    def test_payment_status_overdue(self):
        """Test payment status overdue"""
        today = date(2024, 6, 1)
        past = today - timedelta(days=1)
        self.assertEqual(derive_payment_status(0, 100, past, today), 'overdue')
        self.assertEqual(derive_payment_status(40, 100, past, today), 'overdue')
        self.assertEqual(derive_payment_status(100, 100, past, today), 'paid')

    def test_payment_status_due_today_is_not_overdue(self):
        """Test payment status due today is not overdue"""
        today = date(2024, 6, 1)
        self.assertEqual(derive_payment_status(0, 100, today, today), 'unpaid')

    def test_receipt_status(self):
        """Test receipt status"""
        self.assertEqual(derive_receipt_status([(10, 10), (5, 6)]), 'received')
        self.assertEqual(derive_receipt_status([(10, 4), (5, 0)]), 'partially_received')
        self.assertIsNone(derive_receipt_status([(10, 0)]))
        self.assertIsNone(derive_receipt_status([]))

    def test_receipt_total_uses_accepted_quantity(self):
        """Test receipt total uses accepted quantity"""
        items = [
            {'accepted_quantity': 8, 'unit_price': Decimal('50.00')},
            {'accepted_quantity': 2, 'unit_price': Decimal('12.50')},
        ]
        self.assertEqual(compute_receipt_total(items), Decimal('425.00'))


class CapabilityTests(TestCase):
    """Test check_capability decisions"""

    def setUp(self):
        self.sales_user = TestDataFactory.create_user(role=SALES)
        self.admin_user = TestDataFactory.create_user(role=ADMIN)

    def test_anonymous_allowed_when_no_roles_required(self):
        """Test anonymous allowed when no roles required"""
        self.assertTrue(check_capability(AnonymousUser(), None))
        self.assertTrue(check_capability(None, None))

    def test_anonymous_denied_for_authenticated_routes(self):
        """Test anonymous denied for authenticated routes"""
        self.assertFalse(check_capability(AnonymousUser(), ()))
        self.assertFalse(check_capability(None, (SALES,)))

    def test_any_authenticated_user(self):
        """Test any authenticated user"""
        self.assertTrue(check_capability(self.sales_user, ()))

    def test_role_membership(self):
        """Test role membership"""
        self.assertTrue(check_capability(self.sales_user, (ADMIN, SALES)))
        self.assertFalse(check_capability(self.sales_user, (ADMIN, INVENTORY)))
        self.assertTrue(check_capability(self.admin_user, (ADMIN,)))

    def test_superuser_counts_as_admin(self):
        """Test superuser counts as admin"""
        superuser = TestDataFactory.create_user(role=SALES, is_superuser=True)
        self.assertEqual(get_user_role(superuser), ADMIN)
        self.assertTrue(check_capability(superuser, (ADMIN,)))

    def test_inactive_user_denied(self):
        """Test inactive user denied"""
        self.sales_user.is_active = False
        self.assertFalse(check_capability(self.sales_user, ()))


class ErrorFormatTests(TestCase):
    """Test flattening of serializer errors"""

    def test_field_error_is_prefixed(self):
        """Test field error is prefixed"""
        self.assertEqual(flatten_errors({'sku': ['This field is required.']}), 'sku: This field is required.')

    def test_non_field_error_is_not_prefixed(self):
        """Test non field error is not prefixed"""
        self.assertEqual(flatten_errors({'non_field_errors': ['Bad input']}), 'Bad input')

    def test_nested_list_skips_empty_entries(self):
        """Test nested list skips empty entries"""
        errors = {'items': [{}, {'quantity': ['Ensure this value is greater than or equal to 1.']}]}
        self.assertEqual(flatten_errors(errors), 'items: Ensure this value is greater than or equal to 1.')

    def test_missing_record_named_by_verbose_name(self):
        """Test lookups answer '<Verbose name> not found'"""
        with self.assertRaisesMessage(NotFound, 'Audit log not found'):
            get_object_or_404(AuditLog, pk=99999)
        with self.assertRaisesMessage(NotFound, 'User not found'):
            get_object_or_404(User.objects.filter(is_active=True), pk=99999)


class AuthAPITests(TestCase):
    """Test registration, login and profile endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_returns_tokens(self):
        """Test register returns tokens"""
        data = {
            'username': 'newsales',
            'email': 'newsales@test.com',
            'password': TEST_PASSWORD,
            'role': 'Sales',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'Sales')

    def test_register_cannot_pick_admin_role(self):
        """Test register cannot pick admin role"""
        data = {
            'username': 'sneaky',
            'email': 'sneaky@test.com',
            'password': TEST_PASSWORD,
            'role': 'Admin',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'].startswith('role:'))
        self.assertFalse(User.objects.filter(username='sneaky').exists())

    def test_register_duplicate_email(self):
        """Test register duplicate email"""
        TestDataFactory.create_user(username='taken', email='taken@test.com')
        data = {'username': 'other', 'email': 'taken@test.com', 'password': TEST_PASSWORD}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already exists', response.data['error'])

    def test_login_includes_role(self):
        """Test login includes role"""
        TestDataFactory.create_user(username='buyer', role='Purchase')
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'buyer', 'password': TEST_PASSWORD}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], 'Purchase')

    def test_login_wrong_password(self):
        """Test login wrong password"""
        TestDataFactory.create_user(username='buyer')
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'buyer', 'password': 'wrong'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_me_requires_authentication(self):
        """Test me requires authentication"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_returns_profile(self):
        """Test me returns profile"""
        user = TestDataFactory.create_user(role=INVENTORY)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], user.username)
        self.assertEqual(response.data['role'], INVENTORY)
        self.assertFalse(response.data['is_admin'])

    def test_me_update_ignores_role(self):
        """Test me update ignores role"""
        user = TestDataFactory.create_user(role=SALES)
        self.client.authenticate_user(user)
        response = self.client.patch('/api/v1/auth/me/', {'first_name': 'Ana', 'role': 'Admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.first_name, 'Ana')
        self.assertEqual(user.role, SALES)


class UserAPITests(TestCase):
    """Test admin-only user management"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_user(role=ADMIN)

    def test_non_admin_forbidden(self):
        """Test non admin forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role=SALES))
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)

    def test_admin_can_create_admin(self):
        """Test admin can create admin"""
        self.client.authenticate_user(self.admin)
        data = {'username': 'admin2', 'email': 'admin2@test.com', 'password': TEST_PASSWORD, 'role': 'Admin'}
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(username='admin2').role, ADMIN)

    def test_admin_cannot_delete_self(self):
        """Test admin cannot delete self"""
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_paginated(self):
        """Test list is paginated"""
        for _ in range(3):
            TestDataFactory.create_user()
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/users/?page=2&limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        pagination = response.data['pagination']
        self.assertEqual(pagination['currentPage'], 2)
        self.assertEqual(pagination['totalItems'], 4)
        self.assertEqual(pagination['totalPages'], 2)
        self.assertEqual(pagination['itemsPerPage'], 2)
        self.assertFalse(pagination['hasNextPage'])
        self.assertTrue(pagination['hasPrevPage'])
        self.assertEqual(len(response.data['results']), 2)

    def test_bad_pagination_params_fall_back(self):
        """Test bad pagination params fall back"""
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/users/?page=abc&limit=-3')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['currentPage'], 1)
        self.assertEqual(response.data['pagination']['itemsPerPage'], 10)


class AuditLogTests(TestCase):
    """Test audit log creation and visibility"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_user(role=ADMIN)
        self.sales = TestDataFactory.create_user(role=SALES)

    def test_create_audit_log_skips_incomplete_entries(self):
        """Test create audit log skips incomplete entries"""
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id=1))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_non_admin_sees_only_own_entries(self):
        """Test non admin sees only own entries"""
        create_audit_log(user=self.admin, action='create', model_name='Product', object_id=1)
        create_audit_log(user=self.sales, action='create', model_name='Customer', object_id=2)

        self.client.authenticate_user(self.sales)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['totalItems'], 1)
        self.assertEqual(response.data['results'][0]['model_name'], 'Customer')

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/?model=Product')
        self.assertEqual(response.data['pagination']['totalItems'], 1)

    def test_non_admin_cannot_read_other_entry(self):
        """Test non admin cannot read other entry"""
        entry = create_audit_log(user=self.admin, action='delete', model_name='Product', object_id=1)
        self.client.authenticate_user(self.sales)
        response = self.client.get(f'/api/v1/audit-logs/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class HealthTests(TestCase):
    def test_health_is_public(self):
        """Test health is public"""
        response = AuthenticatedAPIClient().get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['database'], 'ok')
