"""
Comprehensive test suite for Sales module
Tests: Sale creation, updates and deletion with stock reconciliation,
sale ids, status listings and quote calculation
"""
import re
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from decimal import Decimal
from capshop.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from capshop.core.exceptions import OutOfStock, NotFound
from capshop.core.models import AutomationLog
from capshop.catalog.models import Item
from capshop.sales.models import Sale, SaleItem
from capshop.sales.services import create_sale, update_sale, delete_sale, calculate_quote


class SaleModelTests(TestCase):
    """Test Sale model methods"""

    def test_sale_id_sequence(self):
        """Test sale ids are sequential per year"""
        year = timezone.localdate().year
        first = TestDataFactory.create_sale()
        second = TestDataFactory.create_sale()
        self.assertEqual(first.sale_id, f'SALE-{year}-001')
        self.assertEqual(second.sale_id, f'SALE-{year}-002')
        self.assertEqual(str(first), f'SALE-{year}-001 - {first.name}')

    def test_sale_id_unchanged_on_save(self):
        """Test saving again keeps the id"""
        sale = TestDataFactory.create_sale()
        sale_id = sale.sale_id
        sale.name = 'Otro cliente'
        sale.save()
        sale.refresh_from_db()
        self.assertEqual(sale.sale_id, sale_id)

    def test_get_item_ids(self):
        """Test item ids are expanded per unit"""
        a = TestDataFactory.create_item()
        b = TestDataFactory.create_item()
        sale = TestDataFactory.create_sale(items=[a, b, a])
        self.assertEqual(sorted(sale.get_item_ids()), sorted([a.id, a.id, b.id]))


class SaleServiceTests(TestCase):
    """Test stock reconciliation in sale services"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.a = TestDataFactory.create_item(name='Gorro A', quantity=5)
        self.b = TestDataFactory.create_item(name='Gorro B', quantity=5)

    def _data(self, items, **overrides):
        data = {
            'name': 'Enfermera Ana',
            'social_media_platform': 'facebook',
            'social_media_username': 'ana.enf',
            'shipping_type': 'local',
            'local_shipping_option': 'pzexpress',
            'total_amount': Decimal('450.00'),
            'items': items,
        }
        data.update(overrides)
        return data

    def _quantities(self):
        self.a.refresh_from_db()
        self.b.refresh_from_db()
        return self.a.quantity, self.b.quantity

    def test_create_takes_stock_per_unit(self):
        """Test duplicate ids take one unit each"""
        sale = create_sale(self._data([self.a.id, self.a.id, self.b.id]), user=self.user)
        self.assertEqual(self._quantities(), (3, 4))
        self.assertEqual(SaleItem.objects.get(sale=sale, item=self.a).quantity, 2)
        self.assertEqual(sale.created_by, self.user)

    def test_create_out_of_stock_rolls_back(self):
        """Test a failing line leaves every counter and no sale"""
        with self.assertRaises(OutOfStock):
            create_sale(self._data([self.a.id] + [self.b.id] * 6))
        self.assertEqual(self._quantities(), (5, 5))
        self.assertEqual(Sale.objects.count(), 0)

    def test_create_unknown_item_rolls_back(self):
        """Test an unknown id leaves every counter and no sale"""
        with self.assertRaises(NotFound):
            create_sale(self._data([self.a.id, 99999]))
        self.assertEqual(self._quantities(), (5, 5))
        self.assertEqual(Sale.objects.count(), 0)

    def test_update_reconciles_difference(self):
        """Test update returns removed units and takes added ones"""
        sale = create_sale(self._data([self.a.id, self.a.id]))
        self.assertEqual(self._quantities(), (3, 5))

        update_sale(sale, {'items': [self.a.id, self.b.id, self.b.id]})
        self.assertEqual(self._quantities(), (4, 3))
        self.assertEqual(sorted(Sale.objects.get(pk=sale.pk).get_item_ids()), sorted([self.a.id, self.b.id, self.b.id]))

    def test_update_same_items_no_change(self):
        """Test update with the same multiset leaves stock alone"""
        sale = create_sale(self._data([self.a.id, self.b.id]))
        update_sale(sale, {'items': [self.b.id, self.a.id], 'status': 'shipped'})
        self.assertEqual(self._quantities(), (4, 4))
        self.assertEqual(Sale.objects.get(pk=sale.pk).status, 'shipped')

    def test_update_returns_before_taking(self):
        """Test a swap can use units freed by the same update"""
        item = TestDataFactory.create_item(quantity=1)
        sale = create_sale(self._data([item.id]))
        item.refresh_from_db()
        self.assertEqual(item.quantity, 0)

        update_sale(sale, {'items': [self.a.id]})
        update_sale(sale, {'items': [item.id]})
        item.refresh_from_db()
        self.assertEqual(item.quantity, 0)
        self.assertEqual(self._quantities(), (5, 5))

    def test_update_out_of_stock_rolls_back(self):
        """Test a failed update leaves stock, lines and fields unchanged"""
        sale = create_sale(self._data([self.a.id]))
        with self.assertRaises(OutOfStock):
            update_sale(sale, {'items': [self.b.id] * 6, 'name': 'Cambiado'})
        self.assertEqual(self._quantities(), (4, 5))
        sale.refresh_from_db()
        self.assertEqual(sale.name, 'Enfermera Ana')
        self.assertEqual(sale.get_item_ids(), [self.a.id])

    def test_update_without_items_keeps_lines(self):
        """Test omitting items leaves lines and stock alone"""
        sale = create_sale(self._data([self.a.id]))
        update_sale(sale, {'tracking_number': 'EST123'})
        self.assertEqual(self._quantities(), (4, 5))
        self.assertEqual(Sale.objects.get(pk=sale.pk).get_item_ids(), [self.a.id])

    def test_update_replaces_extras(self):
        """Test extras are replaced when supplied"""
        sale = create_sale(self._data([self.a.id], extras=[{'name': 'Bordado', 'price': Decimal('40.00')}]))
        update_sale(sale, {'extras': [{'name': 'Botón', 'price': Decimal('10.00')}]})
        self.assertEqual(list(sale.extras.values_list('name', flat=True)), ['Botón'])

    def test_delete_returns_stock(self):
        """Test delete returns every unit"""
        sale = create_sale(self._data([self.a.id, self.a.id, self.b.id]))
        delete_sale(sale)
        self.assertEqual(self._quantities(), (5, 5))
        self.assertFalse(Sale.objects.filter(pk=sale.pk).exists())

    def test_end_to_end_unit_increase(self):
        """Test create, add a unit of the same item, then delete"""
        sale = create_sale(self._data([self.a.id]))
        self.assertEqual(self._quantities()[0], 4)

        update_sale(sale, {'items': [self.a.id, self.a.id]})
        self.assertEqual(self._quantities()[0], 3)
        self.assertEqual(SaleItem.objects.get(sale=sale, item=self.a).quantity, 2)

        delete_sale(sale)
        self.assertEqual(self._quantities()[0], 5)

    def test_delete_restores_beyond_original_stock(self):
        """Test delete adds the full line quantity whatever the current stock"""
        sale = create_sale(self._data([self.a.id, self.a.id]))
        Item.objects.filter(pk=self.a.pk).update(quantity=20)

        delete_sale(sale)
        self.assertEqual(self._quantities()[0], 22)

    def test_stock_logs(self):
        """Test stock movements are logged per item"""
        sale = create_sale(self._data([self.a.id, self.a.id]))
        log = AutomationLog.objects.get(action='stock_sale')
        self.assertEqual(log.record_id, str(self.a.id))
        self.assertEqual(log.details['quantity'], 2)
        self.assertEqual(log.details['sale_id'], sale.sale_id)

        delete_sale(sale)
        self.assertTrue(AutomationLog.objects.filter(action='stock_return', record_id=str(self.a.id)).exists())
        self.assertTrue(AutomationLog.objects.filter(action='sale_delete', record_id=str(sale.pk)).exists())


class SaleAPITests(TestCase):
    """Test Sale API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.item = TestDataFactory.create_item(quantity=3, price=Decimal('150.00'))

    def test_create_sale(self):
        """Test creating a sale through the API"""
        data = TestDataFactory.sale_payload([self.item.id, self.item.id])
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(re.match(r'^SALE-\d{4}-\d{3}$', response.data['data']['sale_id']))
        self.assertEqual(response.data['data']['items'], [self.item.id, self.item.id])
        self.assertEqual(response.data['data']['created_by'], self.user.id)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 1)

    def test_create_sale_out_of_stock(self):
        """Test creating a sale beyond stock"""
        data = TestDataFactory.sale_payload([self.item.id] * 4)
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock')
        self.assertIn('out of stock', response.data['message'])
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)
        self.assertEqual(Sale.objects.count(), 0)

    def test_create_sale_unknown_item(self):
        """Test creating a sale with an unknown item"""
        data = TestDataFactory.sale_payload([99999])
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Item with ID 99999 not found')

    def test_create_sale_validation(self):
        """Test shipping fields must match the shipping type"""
        data = TestDataFactory.sale_payload([self.item.id], local_shipping_option='pzexpress')
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data = TestDataFactory.sale_payload([self.item.id], name='   ')
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data = TestDataFactory.sale_payload([self.item.id], social_media_platform='tiktok')
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)

    def test_update_sale_items(self):
        """Test updating sale items through the API"""
        other = TestDataFactory.create_item(quantity=2)
        sale_id = self.client.post(
            '/api/v1/sales/', TestDataFactory.sale_payload([self.item.id]), format='json'
        ).data['data']['id']

        response = self.client.put(f'/api/v1/sales/{sale_id}/', {'items': [other.id, other.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'], [other.id, other.id])
        self.item.refresh_from_db()
        other.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)
        self.assertEqual(other.quantity, 0)

    def test_update_sale_status(self):
        """Test status-only update"""
        sale = TestDataFactory.create_sale(user=self.user, items=[self.item])
        response = self.client.patch(f'/api/v1/sales/{sale.id}/', {'status': 'shipped'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'shipped')
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)

    def test_change_shipping_type_clears_other_fields(self):
        """Test switching shipping type drops the previous type's field"""
        sale = TestDataFactory.create_sale(user=self.user, items=[self.item])
        response = self.client.patch(f'/api/v1/sales/{sale.id}/', {'shipping_type': 'nacional'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sale.refresh_from_db()
        self.assertEqual((sale.shipping_type, sale.local_shipping_option), ('nacional', ''))

        response = self.client.patch(
            f'/api/v1/sales/{sale.id}/',
            {'shipping_type': 'local', 'local_shipping_option': 'pzexpress'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sale.refresh_from_db()
        self.assertEqual(sale.local_shipping_option, 'pzexpress')
        self.assertEqual(sale.national_shipping_carrier, '')

    def test_carrier_on_stored_local_sale_rejected(self):
        """Test a carrier cannot be added to a local sale without changing its type"""
        sale = TestDataFactory.create_sale(user=self.user, items=[self.item])
        response = self.client.patch(
            f'/api/v1/sales/{sale.id}/', {'national_shipping_carrier': 'dhl'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_sale(self):
        """Test deleting a sale restores stock"""
        sale_id = self.client.post(
            '/api/v1/sales/', TestDataFactory.sale_payload([self.item.id, self.item.id]), format='json'
        ).data['data']['id']
        response = self.client.delete(f'/api/v1/sales/{sale_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 3)

    def test_list_and_filter(self):
        """Test listing, status path and search filter"""
        TestDataFactory.create_sale(user=self.user, name='Dra. Paula', status='shipped')
        TestDataFactory.create_sale(user=self.user, name='Enfermero Luis')
        response = self.client.get('/api/v1/sales/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/sales/?search=paula')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/sales/status/shipped/')
        self.assertEqual(response.data['count'], 1)

    def test_list_by_invalid_status(self):
        """Test unknown status in path"""
        response = self.client.get('/api/v1/sales/status/returned/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Validation failed')


class QuoteTests(TestCase):
    """Test quote calculation"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.item = TestDataFactory.create_item(quantity=1, price=Decimal('150.00'))

    def test_calculate_quote(self):
        """Test totals with extras and discount"""
        quote = calculate_quote(
            [{'item_id': self.item.id, 'quantity': 3}],
            [{'name': 'Bordado', 'price': Decimal('40.00')}],
            Decimal('20.00'),
        )
        self.assertEqual(quote['items_total'], Decimal('450.00'))
        self.assertEqual(quote['extras_total'], Decimal('40.00'))
        self.assertEqual(quote['subtotal'], Decimal('490.00'))
        self.assertEqual(quote['total'], Decimal('470.00'))
        self.assertEqual(quote['items'][0]['available'], 1)

    def test_discount_never_negative_total(self):
        """Test total is floored at zero"""
        quote = calculate_quote([{'item_id': self.item.id, 'quantity': 1}], [], Decimal('500.00'))
        self.assertEqual(quote['total'], Decimal('0.00'))

    def test_quote_api_does_not_touch_stock(self):
        """Test quotes never change stock"""
        data = {
            'customer_name': 'Hospital Central',
            'items': [{'item_id': self.item.id, 'quantity': 5}],
            'extras': [{'name': 'Envío', 'price': '99.00'}],
            'discount': '49.00',
        }
        response = self.client.post('/api/v1/quotes/calculate/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data['data']['total'])), Decimal('800.00'))
        self.assertEqual(response.data['data']['customer_name'], 'Hospital Central')
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 1)
        self.assertEqual(Item.objects.count(), 1)

    def test_quote_unknown_item(self):
        """Test quote with unknown item"""
        response = self.client.post('/api/v1/quotes/calculate/', {'items': [{'item_id': 99999}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
