"""
Test suite for the invoicing module
Tests: invoice creation from sales orders, payment state, payments, overpayment, overdue refresh, stats
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.invoicing.models import Invoice, Payment
from backend.invoicing.services import record_payment, refresh_open_invoices
from backend.sales.services import change_sales_order_status


class InvoiceCreateTests(TestCase):
    """Test raising invoices from sales orders"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='Sales')
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(name='Laptop', stock=20)
        self.order = TestDataFactory.create_sales_order(
            user=self.user, items=[(self.product, 5, '100.00', '5.00', '10.00')]
        )
        self.due_date = (timezone.localdate() + timedelta(days=30)).isoformat()

    def _payload(self, **overrides):
        data = {'invoice_number': 'inv-3001', 'sales_order': self.order.id, 'due_date': self.due_date}
        data.update(overrides)
        return data

    def test_create_copies_order(self):
        """Test create copies order"""
        response = self.client.post('/api/v1/invoices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice_number'], 'INV-3001')
        self.assertEqual(response.data['customer'], self.order.customer_id)
        self.assertEqual(response.data['grand_total'], '500.00')
        self.assertEqual(response.data['balance_due'], '500.00')
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertEqual(response.data['terms'], 'Payment due within 30 days')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['description'], 'Laptop')
        self.assertEqual(response.data['items'][0]['total'], '495.00')

    def test_create_with_opening_payment(self):
        """Test create with opening payment"""
        response = self.client.post(
            '/api/v1/invoices/', self._payload(amount_paid='200.00', payment_method='bank_transfer'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_status'], 'partially_paid')
        self.assertEqual(response.data['balance_due'], '300.00')
        payment = Payment.objects.get()
        self.assertEqual(payment.amount, Decimal('200.00'))
        self.assertEqual(payment.payment_method, 'bank_transfer')

    def test_create_fully_paid(self):
        """Test create fully paid"""
        response = self.client.post('/api/v1/invoices/', self._payload(amount_paid='500.00'), format='json')
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(response.data['balance_due'], '0.00')

    def test_opening_payment_above_total_refused(self):
        """Test opening payment above total refused"""
        response = self.client.post('/api/v1/invoices/', self._payload(amount_paid='500.01'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Payment exceeds balance due')
        self.assertFalse(Invoice.objects.exists())

    def test_missing_sales_order(self):
        """Test missing sales order"""
        response = self.client.post('/api/v1/invoices/', self._payload(sales_order=99999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Sales order not found')

    def test_cancelled_order_refused(self):
        """Test cancelled order refused"""
        change_sales_order_status(self.order.id, 'cancelled')
        response = self.client.post('/api/v1/invoices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_invoice_number(self):
        """Test duplicate invoice number"""
        TestDataFactory.create_invoice(self.order, invoice_number='INV-3001')
        response = self.client.post('/api/v1/invoices/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invoice_number: Invoice number already exists')

    def test_due_date_before_invoice_date(self):
        """Test due date before invoice date"""
        today = timezone.localdate()
        payload = self._payload(invoice_date=today.isoformat(), due_date=(today - timedelta(days=1)).isoformat())
        response = self.client.post('/api/v1/invoices/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(response.data['error'].startswith('due_date:'))

    def test_missing_due_date(self):
        """Test missing due date"""
        payload = self._payload()
        del payload['due_date']
        response = self.client.post('/api/v1/invoices/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_past_due_date_is_overdue(self):
        """Test past due date is overdue"""
        invoice = TestDataFactory.create_invoice(self.order, due_in_days=-3)
        self.assertEqual(invoice.payment_status, 'overdue')

    def test_purchase_role_forbidden(self):
        """Test purchase role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Purchase'))
        response = self.client.get('/api/v1/invoices/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class InvoicePaymentTests(TestCase):
    """Test recording payments"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='Sales')
        self.client.authenticate_user(self.user)
        order = TestDataFactory.create_sales_order(items=[(TestDataFactory.create_product(stock=10), 2, '250.00')])
        self.invoice = TestDataFactory.create_invoice(order, user=self.user)
        self.url = f'/api/v1/invoices/{self.invoice.id}/payment/'

    def test_partial_then_full_payment(self):
        """Test partial then full payment"""
        response = self.client.patch(self.url, {'amount': '200.00', 'payment_method': 'Credit Card'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['amount_paid'], '200.00')
        self.assertEqual(response.data['balance_due'], '300.00')
        self.assertEqual(response.data['payment_status'], 'partially_paid')
        self.assertEqual(response.data['payment_method'], 'credit_card')

        response = self.client.patch(self.url, {'amount': '300.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(response.data['balance_due'], '0.00')
        self.assertEqual(self.invoice.payments.count(), 2)
        self.assertEqual(AuditLog.objects.filter(action='payment_add').count(), 2)

    def test_overpayment_refused(self):
        """Test overpayment refused"""
        response = self.client.patch(self.url, {'amount': '500.01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Payment exceeds balance due')
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal('0.00'))
        self.assertFalse(Payment.objects.exists())

    def test_paid_invoice_refuses_payment(self):
        """Test paid invoice refuses payment"""
        record_payment(self.invoice.id, Decimal('500.00'))
        response = self.client.patch(self.url, {'amount': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invoice is already paid')

    def test_zero_amount_refused(self):
        """Test zero amount refused"""
        response = self.client.patch(self.url, {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_invoice(self):
        """Test missing invoice"""
        response = self.client.patch('/api/v1/invoices/99999/payment/', {'amount': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_payment_history(self):
        """Test payment history"""
        record_payment(self.invoice.id, Decimal('100.00'), payment_method='cash', reference='R-1')
        record_payment(self.invoice.id, Decimal('50.00'), payment_method='check', reference='R-2')
        response = self.client.get(f'/api/v1/invoices/{self.invoice.id}/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['reference'] for p in response.data], ['R-2', 'R-1'])

    def test_overdue_invoice_accepts_payment(self):
        """Test overdue invoice accepts payment"""
        Invoice.objects.filter(pk=self.invoice.pk).update(due_date=timezone.localdate() - timedelta(days=1))
        response = self.client.patch(self.url, {'amount': '100.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'overdue')

        response = self.client.patch(self.url, {'amount': '400.00'}, format='json')
        self.assertEqual(response.data['payment_status'], 'paid')


class InvoiceUpdateDeleteTests(TestCase):
    """Test invoice updates and deletion rules"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        order = TestDataFactory.create_sales_order(items=[(TestDataFactory.create_product(stock=10), 1, '80.00')])
        self.invoice = TestDataFactory.create_invoice(order)

    def test_update_allow_list(self):
        """Test update allow list"""
        response = self.client.patch(
            f'/api/v1/invoices/{self.invoice.id}/',
            {'notes': 'Thanks', 'grand_total': '1.00', 'amount_paid': '80.00'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.notes, 'Thanks')
        self.assertEqual(self.invoice.grand_total, Decimal('80.00'))
        self.assertEqual(self.invoice.amount_paid, Decimal('0.00'))

    def test_moving_due_date_into_past_marks_overdue(self):
        """Test moving due date into past marks overdue"""
        past = (timezone.localdate() - timedelta(days=2)).isoformat()
        response = self.client.patch(f'/api/v1/invoices/{self.invoice.id}/', {'due_date': past}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'overdue')

    def test_paid_invoice_cannot_be_updated(self):
        """Test paid invoice cannot be updated"""
        record_payment(self.invoice.id, Decimal('80.00'))
        response = self.client.patch(f'/api/v1/invoices/{self.invoice.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_requires_admin(self):
        """Test delete requires admin"""
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_unpaid_invoice(self):
        """Test delete unpaid invoice"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Invoice.objects.filter(pk=self.invoice.pk).exists())

    def test_delete_invoice_with_payments_refused(self):
        """Test delete invoice with payments refused"""
        record_payment(self.invoice.id, Decimal('10.00'))
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/invoices/{self.invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete invoice with payments')

    def test_invoiced_order_cannot_be_deleted(self):
        """Test invoiced order cannot be deleted"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/sales-orders/{self.invoice.sales_order_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class InvoiceStatusRefreshTests(TestCase):
    """Test the overdue refresh and invoice statistics"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        product = TestDataFactory.create_product(stock=100)
        self.open_invoice = TestDataFactory.create_invoice(
            TestDataFactory.create_sales_order(items=[(product, 1, '100.00')]), due_in_days=5
        )
        self.paid_invoice = TestDataFactory.create_invoice(
            TestDataFactory.create_sales_order(items=[(product, 1, '300.00')]), amount_paid='300.00'
        )
        self.partial_invoice = TestDataFactory.create_invoice(
            TestDataFactory.create_sales_order(items=[(product, 1, '200.00')]), amount_paid='50.00'
        )

    def test_refresh_flags_overdue(self):
        """Test refresh flags overdue"""
        later = timezone.localdate() + timedelta(days=10)
        changed = refresh_open_invoices(today=later)
        self.assertEqual(changed, 1)
        self.open_invoice.refresh_from_db()
        self.assertEqual(self.open_invoice.payment_status, 'overdue')
        self.paid_invoice.refresh_from_db()
        self.assertEqual(self.paid_invoice.payment_status, 'paid')

    def test_refresh_command(self):
        """Test refresh command"""
        Invoice.objects.filter(pk=self.open_invoice.pk).update(due_date=timezone.localdate() - timedelta(days=1))
        out = StringIO()
        call_command('refresh_invoice_status', stdout=out)
        self.assertIn('1 invoice(s)', out.getvalue())
        self.open_invoice.refresh_from_db()
        self.assertEqual(self.open_invoice.payment_status, 'overdue')

    def test_stats(self):
        """Test stats"""
        response = self.client.get('/api/v1/invoices/stats/overview/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_invoices'], 3)
        self.assertEqual(response.data['paid_invoices'], 1)
        self.assertEqual(response.data['unpaid_invoices'], 1)
        self.assertEqual(response.data['partially_paid_invoices'], 1)
        self.assertEqual(response.data['overdue_invoices'], 0)
        self.assertEqual(Decimal(response.data['total_revenue']), Decimal('300.00'))
        self.assertEqual(Decimal(response.data['pending_revenue']), Decimal('250.00'))

    def test_filter_by_payment_status(self):
        """Test filter by payment status"""
        response = self.client.get('/api/v1/invoices/?payment_status=partially_paid')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [i['invoice_number'] for i in response.data['results']], [self.partial_invoice.invoice_number]
        )
