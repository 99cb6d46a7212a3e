"""
Comprehensive test suite for Catalog module
Tests: Item and raw material CRUD, stock reduction, low stock, delete pre-checks
"""
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from capshop.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from capshop.core.exceptions import NotFound, OutOfStock, Conflict
from capshop.core.models import AutomationLog
from capshop.catalog.models import Item, RawMaterial, ItemMaterial
from capshop.catalog.services import (
    decrement_item_stock, restore_item_stock, add_raw_material_stock,
    ensure_item_deletable, ensure_raw_material_deletable,
)


class StockServiceTests(TestCase):
    """Test stock counter adjustments"""

    def setUp(self):
        self.item = TestDataFactory.create_item(quantity=5)

    def test_decrement(self):
        """Test decrement within stock"""
        decrement_item_stock(self.item.id, 3)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 2)

    def test_decrement_to_zero(self):
        """Test decrement of the whole stock"""
        decrement_item_stock(self.item.id, 5)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 0)

    def test_decrement_out_of_stock(self):
        """Test decrement beyond stock leaves quantity unchanged"""
        with self.assertRaises(OutOfStock) as ctx:
            decrement_item_stock(self.item.id, 6)
        self.assertIn('only 5 available', str(ctx.exception.detail))
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 5)

    def test_decrement_missing_item(self):
        """Test decrement of unknown item"""
        with self.assertRaises(NotFound):
            decrement_item_stock(99999, 1)

    def test_restore(self):
        """Test restore adds units back"""
        self.assertTrue(restore_item_stock(self.item.id, 2))
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 7)

    def test_restore_missing_item_skipped(self):
        """Test restore of a deleted item is skipped"""
        self.assertFalse(restore_item_stock(99999, 2))

    def test_add_raw_material_stock(self):
        """Test raw material increment returns new quantity"""
        material = TestDataFactory.create_raw_material(quantity=Decimal('2.50'))
        self.assertEqual(add_raw_material_stock(material.id, 4), Decimal('6.50'))

    def test_add_raw_material_stock_missing(self):
        """Test raw material increment of unknown material"""
        with self.assertRaises(NotFound):
            add_raw_material_stock(99999, 1)


class DeletePrecheckTests(TestCase):
    """Test delete pre-checks"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.material = TestDataFactory.create_raw_material()
        self.item = TestDataFactory.create_item(materials=[self.material])

    def test_item_in_sale_not_deletable(self):
        """Test item referenced by a sale line"""
        TestDataFactory.create_sale(user=self.user, items=[self.item])
        with self.assertRaises(Conflict):
            ensure_item_deletable(self.item)

    def test_item_without_sales_deletable(self):
        """Test unreferenced item passes"""
        ensure_item_deletable(self.item)

    def test_material_in_item_not_deletable(self):
        """Test raw material linked to an item"""
        with self.assertRaises(Conflict):
            ensure_raw_material_deletable(self.material)

    def test_material_in_order_not_deletable(self):
        """Test raw material used by an order design"""
        material = TestDataFactory.create_raw_material()
        TestDataFactory.create_order(user=self.user, groups=[(2, [material])])
        with self.assertRaises(Conflict):
            ensure_raw_material_deletable(material)


class ItemAPITests(TestCase):
    """Test Item API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(name='Antibacterial azul')

    def test_list_items(self):
        """Test listing items"""
        TestDataFactory.create_item()
        TestDataFactory.create_item()
        response = self.client.get('/api/v1/items/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['count'], 2)

    def test_list_items_filters(self):
        """Test category, search and material filters"""
        TestDataFactory.create_item(name='Gorro Mario Bros', category='completo', materials=[self.material])
        TestDataFactory.create_item(name='Gorro Flores', category='sencillo')

        response = self.client.get('/api/v1/items/?category=completo')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/items/?search=flores')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['data'][0]['name'], 'Gorro Flores')

        response = self.client.get(f'/api/v1/items/?material={self.material.id}')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['data'][0]['name'], 'Gorro Mario Bros')

    def test_create_item_with_materials(self):
        """Test creating an item linked to raw materials"""
        data = {
            'name': 'Gorro Estrellas',
            'category': 'doble-vista',
            'quantity': 12,
            'price': '180.00',
            'materials': [self.material.id, self.material.id],
        }
        response = self.client.post('/api/v1/items/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['materials'], [self.material.id])
        self.assertEqual(response.data['data']['category_display'], 'Doble Vista')
        self.assertEqual(ItemMaterial.objects.filter(item_id=response.data['data']['id']).count(), 1)

    def test_create_item_invalid_category(self):
        """Test invalid category is rejected"""
        data = {'name': 'Gorro', 'category': 'sombrero', 'quantity': 1}
        response = self.client.post('/api/v1/items/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Validation failed')
        self.assertIn('category', response.data['errors'])

    def test_create_item_negative_quantity(self):
        """Test negative quantity is rejected"""
        data = {'name': 'Gorro', 'category': 'sencillo', 'quantity': -1}
        response = self.client.post('/api/v1/items/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_partial_update_keeps_materials(self):
        """Test update without materials keeps existing links"""
        item = TestDataFactory.create_item(materials=[self.material])
        response = self.client.put(f'/api/v1/items/{item.id}/', {'price': '199.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['materials'], [self.material.id])
        item.refresh_from_db()
        self.assertEqual(item.price, Decimal('199.00'))

    def test_update_replaces_materials(self):
        """Test update with materials replaces links"""
        other = TestDataFactory.create_raw_material()
        item = TestDataFactory.create_item(materials=[self.material])
        response = self.client.patch(f'/api/v1/items/{item.id}/', {'materials': [other.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(item.materials.values_list('id', flat=True)), [other.id])

    def test_delete_item(self):
        """Test deleting an unreferenced item"""
        item = TestDataFactory.create_item()
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Item.objects.filter(id=item.id).exists())

    def test_delete_item_used_in_sale(self):
        """Test deleting an item referenced by a sale"""
        item = TestDataFactory.create_item()
        TestDataFactory.create_sale(user=self.user, items=[item])
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete')
        self.assertEqual(response.data['message'], 'This item is used in one or more sales')
        self.assertTrue(Item.objects.filter(id=item.id).exists())

    def test_get_missing_item(self):
        """Test 404 for unknown item"""
        response = self.client.get('/api/v1/items/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ItemReduceQuantityTests(TestCase):
    """Test manual stock reduction"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.item = TestDataFactory.create_item(quantity=4)
        self.url = f'/api/v1/items/{self.item.id}/reduce-quantity/'

    def test_reduce_quantity(self):
        """Test reducing stock logs a gift"""
        response = self.client.patch(self.url, {'quantity': 3, 'reason': 'Regalo'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['quantity'], 1)
        self.assertEqual(response.data['message'], 'Quantity reduced by 3. New quantity: 1')
        log = AutomationLog.objects.get(action='stock_gift')
        self.assertEqual(log.record_id, str(self.item.id))
        self.assertEqual(log.details['reason'], 'Regalo')
        self.assertEqual(log.user, self.user)

    def test_reduce_more_than_stock(self):
        """Test reducing beyond stock"""
        response = self.client.patch(self.url, {'quantity': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock')
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 4)

    def test_reduce_zero(self):
        """Test quantity must be positive"""
        response = self.client.patch(self.url, {'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reduce_missing_item(self):
        """Test reducing an unknown item"""
        response = self.client.patch('/api/v1/items/99999/reduce-quantity/', {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class LowStockAPITests(TestCase):
    """Test low stock listings"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_item_low_stock_default_threshold(self):
        """Test items at or below the default threshold, lowest first"""
        TestDataFactory.create_item(name='A', quantity=10)
        TestDataFactory.create_item(name='B', quantity=2)
        TestDataFactory.create_item(name='C', quantity=11)
        response = self.client.get('/api/v1/items/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['threshold'], 10)
        self.assertEqual([i['name'] for i in response.data['data']], ['B', 'A'])

    def test_item_low_stock_custom_threshold(self):
        """Test threshold in path"""
        TestDataFactory.create_item(quantity=3)
        TestDataFactory.create_item(quantity=8)
        response = self.client.get('/api/v1/items/low-stock/5/')
        self.assertEqual(response.data['count'], 1)

    def test_raw_material_low_stock(self):
        """Test raw materials at or below the threshold"""
        TestDataFactory.create_raw_material(quantity=Decimal('3.00'))
        TestDataFactory.create_raw_material(quantity=Decimal('3.50'))
        response = self.client.get('/api/v1/raw-materials/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class RawMaterialAPITests(TestCase):
    """Test RawMaterial API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_raw_material(self):
        """Test creating a raw material"""
        data = {'name': 'Algodón rosa', 'width': '1.50', 'height': '2.00', 'quantity': '5.00', 'supplier': 'Telas MX'}
        response = self.client.post('/api/v1/raw-materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['unit'], 'm²')

    def test_create_raw_material_zero_width(self):
        """Test dimensions must be positive"""
        data = {'name': 'Algodón', 'width': '0', 'height': '2.00'}
        response = self.client.post('/api/v1/raw-materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('width', response.data['errors'])

    def test_filter_by_supplier(self):
        """Test supplier filter"""
        TestDataFactory.create_raw_material()
        response = self.client.get('/api/v1/raw-materials/?supplier=centro')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/raw-materials/?supplier=norte')
        self.assertEqual(response.data['count'], 0)

    def test_delete_raw_material(self):
        """Test deleting an unreferenced raw material"""
        material = TestDataFactory.create_raw_material()
        response = self.client.delete(f'/api/v1/raw-materials/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(RawMaterial.objects.filter(id=material.id).exists())

    def test_delete_raw_material_used_in_item(self):
        """Test deleting a raw material linked to an item"""
        material = TestDataFactory.create_raw_material()
        TestDataFactory.create_item(materials=[material])
        response = self.client.delete(f'/api/v1/raw-materials/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'This material is used in one or more items')
        self.assertTrue(RawMaterial.objects.filter(id=material.id).exists())

    def test_delete_raw_material_used_in_order(self):
        """Test deleting a raw material used by an order"""
        material = TestDataFactory.create_raw_material()
        TestDataFactory.create_order(user=self.user, groups=[(1, [material])])
        response = self.client.delete(f'/api/v1/raw-materials/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(RawMaterial.objects.filter(id=material.id).exists())


class ExtraAPITests(TestCase):
    """Test Extra API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_list_extras(self):
        """Test creating and listing extras"""
        response = self.client.post('/api/v1/extras/', {'name': 'Botón', 'price': '15.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/extras/')
        self.assertEqual(response.data['count'], 1)

    def test_duplicate_extra_name(self):
        """Test extra names are unique"""
        TestDataFactory.create_extra(name='Bordado')
        response = self.client.post('/api/v1/extras/', {'name': 'Bordado', 'price': '40.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
