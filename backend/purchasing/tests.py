"""
Test suite for the purchasing module
Tests: purchase orders, GRN receipts against PO lines, approval into stock, reversal and edge cases
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.purchasing.models import PurchaseOrder, GRN
from backend.purchasing.services import approve_grn, change_purchase_order_status


class PurchaseOrderAPITests(TestCase):
    """Test purchase order endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='Purchase')
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.product = TestDataFactory.create_product(stock=0)

    def _payload(self, **overrides):
        data = {
            'po_number': 'po-2001',
            'supplier': self.supplier.id,
            'items': [{'product': self.product.id, 'quantity': 10, 'unit_price': '50.00', 'tax': '25.00'}],
        }
        data.update(overrides)
        return data

    def test_create_purchase_order(self):
        """Test create purchase order"""
        response = self.client.post('/api/v1/purchase-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['po_number'], 'PO-2001')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['grand_total'], '525.00')
        self.assertEqual(response.data['items'][0]['received_quantity'], 0)
        self.assertEqual(response.data['items'][0]['pending_quantity'], 10)

    def test_missing_supplier(self):
        """Test missing supplier"""
        response = self.client.post('/api/v1/purchase-orders/', self._payload(supplier=99999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Supplier not found')

    def test_duplicate_po_number(self):
        """Test duplicate po number"""
        TestDataFactory.create_purchase_order(po_number='PO-2001', supplier=self.supplier)
        response = self.client.post('/api/v1/purchase-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'po_number: PO number already exists')

    def test_sales_role_forbidden(self):
        """Test sales role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        response = self.client.get('/api/v1/purchase-orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manual_status_change(self):
        """Test manual status change"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier)
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/status/', {'status': 'Sent'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'sent')

    def test_receipt_status_cannot_be_set_manually(self):
        """Test receipt status cannot be set manually"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier)
        response = self.client.patch(
            f'/api/v1/purchase-orders/{po.id}/status/', {'status': 'Partially Received'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        po.refresh_from_db()
        self.assertEqual(po.status, 'draft')

    def test_update_items_before_receipt(self):
        """Test update items before receipt"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.product, 10, '50.00')])
        data = {'items': [{'product': self.product.id, 'quantity': 4, 'unit_price': '20.00'}]}
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['grand_total'], '80.00')

    def test_update_items_after_receipt_refused(self):
        """Test update items after receipt refused"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.product, 10, '50.00')])
        TestDataFactory.create_grn(po, items=[(self.product, 3, 3)])
        data = {'items': [{'product': self.product.id, 'quantity': 4, 'unit_price': '20.00'}]}
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancelled_po_cannot_be_updated(self):
        """Test cancelled po cannot be updated"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier)
        change_purchase_order_status(po.id, 'cancelled')
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class GRNCreateTests(TestCase):
    """Test recording goods received against a purchase order"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='Inventory')
        self.client.authenticate_user(self.user)
        self.product_a = TestDataFactory.create_product(stock=5)
        self.product_b = TestDataFactory.create_product(stock=0)
        self.po = TestDataFactory.create_purchase_order(
            items=[(self.product_a, 10, '50.00'), (self.product_b, 4, '20.00')]
        )

    def _payload(self, items, grn_number='grn-1'):
        return {'grn_number': grn_number, 'purchase_order': self.po.id, 'items': items}

    def test_partial_receipt(self):
        """Test partial receipt"""
        items = [{'product': self.product_a.id, 'received_quantity': 10, 'accepted_quantity': 8, 'rejected_quantity': 2}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['grn_number'], 'GRN-1')
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['supplier'], self.po.supplier_id)
        self.assertEqual(response.data['total_amount'], '400.00')
        self.assertEqual(response.data['items'][0]['ordered_quantity'], 10)
        self.assertEqual(response.data['items'][0]['unit_price'], '50.00')

        self.po.refresh_from_db()
        self.assertEqual(self.po.status, 'partially_received')
        self.assertEqual(self.po.items.get(product=self.product_a).received_quantity, 8)

        # stock moves only on approval
        self.product_a.refresh_from_db()
        self.assertEqual(self.product_a.stock, 5)

    def test_receipts_accumulate_to_received(self):
        """Test receipts accumulate to received"""
        TestDataFactory.create_grn(self.po, items=[(self.product_a, 6, 6)])
        items = [
            {'product': self.product_a.id, 'received_quantity': 4, 'accepted_quantity': 4},
            {'product': self.product_b.id, 'received_quantity': 4, 'accepted_quantity': 4},
        ]
        response = self.client.post('/api/v1/grns/', self._payload(items, 'GRN-2'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.po.refresh_from_db()
        self.assertEqual(self.po.status, 'received')
        self.assertEqual(self.po.items.get(product=self.product_a).received_quantity, 10)

    def test_received_po_refuses_more_grns(self):
        """Test received po refuses more grns"""
        TestDataFactory.create_grn(self.po)
        items = [{'product': self.product_a.id, 'received_quantity': 1, 'accepted_quantity': 1}]
        response = self.client.post('/api/v1/grns/', self._payload(items, 'GRN-X'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(GRN.objects.filter(grn_number='GRN-X').exists())

    def test_cancelled_po_refused(self):
        """Test cancelled po refused"""
        change_purchase_order_status(self.po.id, 'cancelled')
        items = [{'product': self.product_a.id, 'received_quantity': 1, 'accepted_quantity': 1}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_missing_purchase_order(self):
        """Test missing purchase order"""
        payload = self._payload([{'product': self.product_a.id, 'received_quantity': 1, 'accepted_quantity': 1}])
        payload['purchase_order'] = 99999
        response = self.client.post('/api/v1/grns/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Purchase order not found')

    def test_missing_product(self):
        """Test missing product"""
        items = [{'product': 99999, 'received_quantity': 1, 'accepted_quantity': 1}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_product_not_on_po(self):
        """Test product not on po"""
        other = TestDataFactory.create_product()
        items = [{'product': other.id, 'received_quantity': 1, 'accepted_quantity': 1}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('is not on purchase order', response.data['error'])
        self.po.refresh_from_db()
        self.assertEqual(self.po.status, 'draft')

    def test_accepted_plus_rejected_exceeds_received(self):
        """Test accepted plus rejected exceeds received"""
        items = [{'product': self.product_a.id, 'received_quantity': 5, 'accepted_quantity': 4, 'rejected_quantity': 2}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(GRN.objects.exists())

    def test_duplicate_grn_number(self):
        """Test duplicate grn number"""
        TestDataFactory.create_grn(self.po, items=[(self.product_a, 1, 1)], grn_number='GRN-1')
        items = [{'product': self.product_a.id, 'received_quantity': 1, 'accepted_quantity': 1}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'grn_number: GRN number already exists')

    def test_duplicate_grn_number_reported_before_missing_product(self):
        """Test GRN number is checked ahead of line products"""
        TestDataFactory.create_grn(self.po, items=[(self.product_a, 1, 1)], grn_number='GRN-1')
        items = [{'product': 99999, 'received_quantity': 1, 'accepted_quantity': 1}]
        response = self.client.post('/api/v1/grns/', self._payload(items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'grn_number: GRN number already exists')

    def test_missing_purchase_order_reported_before_duplicate_number(self):
        """Test purchase order is checked ahead of the GRN number"""
        TestDataFactory.create_grn(self.po, items=[(self.product_a, 1, 1)], grn_number='GRN-1')
        payload = self._payload([{'product': self.product_a.id, 'received_quantity': 1, 'accepted_quantity': 1}])
        payload['purchase_order'] = 99999
        response = self.client.post('/api/v1/grns/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Purchase order not found')

    def test_sales_role_forbidden(self):
        """Test sales role forbidden"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Sales'))
        response = self.client.get('/api/v1/grns/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class GRNApprovalTests(TestCase):
    """Test approval, rejection, update and deletion of GRNs"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='Inventory')
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(stock=5)
        self.po = TestDataFactory.create_purchase_order(items=[(self.product, 10, '50.00')])
        self.grn = TestDataFactory.create_grn(self.po, items=[(self.product, 10, 8, 2)])

    def test_approve_adds_accepted_quantity_to_stock(self):
        """Test approve adds accepted quantity to stock"""
        response = self.client.patch(f'/api/v1/grns/{self.grn.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertEqual(response.data['approved_by'], self.user.id)
        self.assertIsNotNone(response.data['approved_at'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 13)
        self.assertTrue(AuditLog.objects.filter(action='grn_approve').exists())
        self.assertTrue(AuditLog.objects.filter(action='stock_receive', object_reference=self.product.sku).exists())

    def test_second_approval_refused(self):
        """Test second approval refused"""
        self.client.patch(f'/api/v1/grns/{self.grn.id}/approve/')
        response = self.client.patch(f'/api/v1/grns/{self.grn.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'GRN already approved')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 13)

    def test_purchase_role_cannot_approve(self):
        """Test purchase role cannot approve"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Purchase'))
        response = self.client.patch(f'/api/v1/grns/{self.grn.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_pending_grn(self):
        """Test update pending grn"""
        response = self.client.patch(
            f'/api/v1/grns/{self.grn.id}/', {'notes': 'Two cartons damaged', 'status': 'approved'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.grn.refresh_from_db()
        self.assertEqual(self.grn.notes, 'Two cartons damaged')
        self.assertEqual(self.grn.status, 'pending')

    def test_update_approved_grn_refused(self):
        """Test update approved grn refused"""
        approve_grn(self.grn.id)
        response = self.client.patch(f'/api/v1/grns/{self.grn.id}/', {'notes': 'late edit'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject_reverses_receipt(self):
        """Test reject reverses receipt"""
        response = self.client.patch(f'/api/v1/grns/{self.grn.id}/reject/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'rejected')
        self.po.refresh_from_db()
        self.assertEqual(self.po.status, 'confirmed')
        self.assertEqual(self.po.items.get().received_quantity, 0)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5)

    def test_rejected_grn_cannot_be_approved(self):
        """Test rejected grn cannot be approved"""
        self.client.patch(f'/api/v1/grns/{self.grn.id}/reject/')
        response = self.client.patch(f'/api/v1/grns/{self.grn.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_pending_grn_reverses_receipt(self):
        """Test delete pending grn reverses receipt"""
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/grns/{self.grn.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(GRN.objects.filter(pk=self.grn.pk).exists())
        self.po.refresh_from_db()
        self.assertEqual(self.po.status, PurchaseOrder.STATUS_CONFIRMED)
        self.assertEqual(self.po.items.get().received_quantity, 0)

    def test_delete_approved_grn_refused(self):
        """Test delete approved grn refused"""
        approve_grn(self.grn.id)
        self.client.authenticate_user(TestDataFactory.create_user(role='Admin'))
        response = self.client.delete(f'/api/v1/grns/{self.grn.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete approved GRN')
        self.assertTrue(GRN.objects.filter(pk=self.grn.pk).exists())

    def test_delete_requires_admin(self):
        """Test delete requires admin"""
        response = self.client.delete(f'/api/v1/grns/{self.grn.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_receipt_total(self):
        """Test receipt total"""
        self.assertEqual(self.grn.total_amount, Decimal('400.00'))
