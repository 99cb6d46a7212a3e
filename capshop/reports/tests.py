"""
Comprehensive test suite for Reports module
Tests: Dashboard stats, category distribution, recent activity, low stock,
sales summary and dashboard cache invalidation
"""
from django.core.cache import cache
from unittest.mock import patch
from django.db import connection, transaction
from django.test import TestCase, TransactionTestCase
from rest_framework import status
from decimal import Decimal
from capshop.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from capshop.catalog.serializers import ItemSerializer
from capshop.core.cache_utils import (
    make_cache_key, get_dashboard_generation, invalidate_dashboard_cache,
)


class CacheUtilsTests(TestCase):
    """Test dashboard cache helpers"""

    def setUp(self):
        cache.clear()

    def test_make_cache_key_stable(self):
        """Test same arguments give the same key"""
        self.assertEqual(make_cache_key('stats', 1, 2), make_cache_key('stats', 1, 2))
        self.assertNotEqual(make_cache_key('stats', 1, 2), make_cache_key('stats', 2, 1))
        self.assertTrue(make_cache_key('stats', a=1).startswith('stats:'))

    def test_invalidate_bumps_generation(self):
        """Test invalidation changes the generation"""
        before = get_dashboard_generation()
        invalidate_dashboard_cache()
        self.assertNotEqual(get_dashboard_generation(), before)

    def test_invalidate_without_generation(self):
        """Test invalidation when no generation exists yet"""
        invalidate_dashboard_cache()
        self.assertIsNotNone(get_dashboard_generation())


class DashboardAPITests(TestCase):
    """Test dashboard endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

        self.material = TestDataFactory.create_raw_material(quantity=Decimal('2.00'))
        TestDataFactory.create_raw_material(quantity=Decimal('20.00'))
        self.low_item = TestDataFactory.create_item(name='Gorro Azul', category='sencillo', quantity=2)
        self.item = TestDataFactory.create_item(name='Gorro Rojo', category='completo', quantity=30)
        TestDataFactory.create_order(user=self.user, status='pending', groups=[(2, [self.material])])
        TestDataFactory.create_order(user=self.user, status='ordered')
        TestDataFactory.create_sale(user=self.user, items=[self.item], total_amount=Decimal('300.00'))
        TestDataFactory.create_sale(user=self.user, items=[self.item], status='shipped', total_amount=Decimal('100.00'))

    def test_stats(self):
        """Test totals, alerts and sales by status"""
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['totals']['items'], 2)
        self.assertEqual(data['totals']['materials'], 2)
        self.assertEqual(data['totals']['orders'], 2)
        self.assertEqual(data['totals']['sales'], 2)
        self.assertEqual(data['totals']['designs'], 1)
        self.assertEqual(data['totals']['revenue'], Decimal('400.00'))
        self.assertEqual(data['alerts']['pendingOrders'], 1)
        self.assertEqual(data['alerts']['lowStockItems'], 1)
        self.assertEqual(data['alerts']['lowStockMaterials'], 1)
        self.assertEqual(data['alerts']['totalLowStock'], 2)
        self.assertEqual(data['salesByStatus'], {'pending': 1, 'shipped': 1, 'delivered': 0})

    def test_category_distribution(self):
        """Test item count per category"""
        response = self.client.get('/api/v1/dashboard/category-distribution/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], {'completo': 1, 'sencillo': 1})

    def test_recent_activity(self):
        """Test activity feed is newest first and limited"""
        response = self.client.get('/api/v1/dashboard/recent-activity/?limit=3')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 3)
        timestamps = [activity['timestamp'] for activity in response.data['data']]
        self.assertEqual(timestamps, sorted(timestamps, reverse=True))

    def test_recent_activity_invalid_limit(self):
        """Test non-numeric limit"""
        response = self.client.get('/api/v1/dashboard/recent-activity/?limit=many')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_low_stock(self):
        """Test low stock lists and custom thresholds"""
        response = self.client.get('/api/v1/dashboard/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([i['name'] for i in response.data['data']['items']], ['Gorro Azul'])
        self.assertEqual(len(response.data['data']['materials']), 1)

        response = self.client.get('/api/v1/dashboard/low-stock/?itemThreshold=50&materialThreshold=0')
        self.assertEqual(len(response.data['data']['items']), 2)
        self.assertEqual(response.data['data']['materials'], [])
        self.assertEqual(response.data['data']['thresholds'], {'items': 50, 'materials': 0})

    def test_sales_summary(self):
        """Test revenue summary"""
        response = self.client.get('/api/v1/dashboard/sales-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['salesCount'], 2)
        self.assertEqual(data['totalRevenue'], Decimal('400.00'))
        self.assertEqual(data['averageOrderValue'], Decimal('200.00'))
        self.assertEqual(data['monthlyRevenue'], Decimal('400.00'))

    def test_stats_refresh_after_sale(self):
        """Test a new sale is reflected in cached stats"""
        self.client.get('/api/v1/dashboard/stats/')
        response = self.client.post(
            '/api/v1/sales/', TestDataFactory.sale_payload([self.item.id], total_amount='50.00'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['data']['totals']['sales'], 3)
        self.assertEqual(response.data['data']['totals']['revenue'], Decimal('450.00'))

    def test_low_stock_refresh_after_reduce_quantity(self):
        """Test stock reductions are reflected in cached low stock"""
        self.client.get('/api/v1/dashboard/low-stock/')
        self.client.patch(f'/api/v1/items/{self.item.id}/reduce-quantity/', {'quantity': 25}, format='json')
        response = self.client.get('/api/v1/dashboard/low-stock/')
        self.assertEqual(len(response.data['data']['items']), 2)

    def test_requires_authentication(self):
        """Test dashboard requires a token"""
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CacheSignalCommitTests(TransactionTestCase):
    """Test model signals invalidate the dashboard only after commit"""

    def setUp(self):
        cache.clear()
        self.calls = []

    def _record(self):
        self.calls.append(connection.in_atomic_block)

    def test_invalidation_runs_after_commit(self):
        """Test saving an item through its serializer invalidates outside the transaction"""
        with patch('capshop.core.cache_signals.invalidate_dashboard_cache', side_effect=self._record):
            serializer = ItemSerializer(data={'name': 'Gorro Verde', 'category': 'stretch', 'quantity': 3})
            serializer.is_valid(raise_exception=True)
            serializer.save()
        self.assertTrue(self.calls)
        self.assertNotIn(True, self.calls)

    def test_no_invalidation_on_rollback(self):
        """Test a rolled back save does not invalidate"""
        with patch('capshop.core.cache_signals.invalidate_dashboard_cache', side_effect=self._record):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    TestDataFactory.create_item()
                    raise RuntimeError('abort')
        self.assertEqual(self.calls, [])
