"""
Comprehensive test suite for Purchasing module
Tests: Material order CRUD, delivery status updates, raw material replenishment,
carrier tracking lookups and the delivery polling command
"""
from io import StringIO
from unittest.mock import patch, MagicMock
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework import status
from decimal import Decimal
import requests
from capshop.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from capshop.core.exceptions import NotFound, InvalidState, UpstreamFailure
from capshop.core.models import AutomationLog
from capshop.catalog.models import RawMaterial
from capshop.catalog.services import add_raw_material_stock
from capshop.purchasing.models import OrderMaterial, OrderMaterialGroup, OrderDesign
from capshop.purchasing.services import update_delivery_status, process_received_order, check_delivery
from capshop.purchasing.tracking import is_delivered, fetch_tracking_events, TrackingError

TRACKING_SETTINGS = {
    'ESTAFETA_TRACKING_URL': 'https://tracking.example.com',
    'DHL_API_KEY': 'test-key',
    'DHL_TRACKING_URL': 'https://dhl.example.com/track/shipments',
}


def mock_json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


class OrderMaterialAPITests(TestCase):
    """Test OrderMaterial API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material()

    def _payload(self, **overrides):
        data = {
            'distributor': 'Telas del Bajío',
            'status': 'pending',
            'materials': [
                {
                    'quantity': 3,
                    'designs': [
                        {'raw_material': self.material.id, 'height': '1.00', 'width': '1.50'},
                    ],
                },
            ],
        }
        data.update(overrides)
        return data

    def test_create_order(self):
        """Test creating an order with groups and designs"""
        response = self.client.post('/api/v1/order-materials/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = OrderMaterial.objects.get(id=response.data['data']['id'])
        self.assertEqual(order.created_by, self.user)
        self.assertFalse(order.inventory_processed)
        self.assertEqual(order.groups.count(), 1)
        self.assertEqual(response.data['data']['materials'][0]['designs'][0]['raw_material'], self.material.id)

    def test_create_order_without_groups(self):
        """Test an order needs at least one group"""
        response = self.client.post('/api/v1/order-materials/', self._payload(materials=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('materials', response.data['errors'])

        data = self._payload()
        del data['materials']
        response = self.client.post('/api/v1/order-materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_order_group_without_designs(self):
        """Test a group needs at least one design"""
        data = self._payload(materials=[{'quantity': 2, 'designs': []}])
        response = self.client.post('/api/v1/order-materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(OrderMaterial.objects.count(), 0)

    def test_create_order_zero_quantity(self):
        """Test group quantity must be positive"""
        data = self._payload()
        data['materials'][0]['quantity'] = 0
        response = self.client.post('/api/v1/order-materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_orders_by_status(self):
        """Test status filters"""
        TestDataFactory.create_order(user=self.user, status='pending')
        TestDataFactory.create_order(user=self.user, status='ordered')
        response = self.client.get('/api/v1/order-materials/?status=ordered')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/order-materials/status/pending/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_list_orders_invalid_status(self):
        """Test unknown status in path"""
        response = self.client.get('/api/v1/order-materials/status/lost/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_manual_status_update_does_not_touch_stock(self):
        """Test setting received by hand leaves stock alone"""
        order = TestDataFactory.create_order(user=self.user, groups=[(4, [self.material])])
        response = self.client.patch(f'/api/v1/order-materials/{order.id}/', {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'received')
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('10.00'))
        order.refresh_from_db()
        self.assertFalse(order.inventory_processed)

    def test_update_replaces_groups(self):
        """Test update with materials replaces the groups"""
        other = TestDataFactory.create_raw_material()
        order = TestDataFactory.create_order(user=self.user, groups=[(4, [self.material])])
        data = {'materials': [{'quantity': 1, 'designs': [{'raw_material': other.id, 'height': '2', 'width': '2'}]}]}
        response = self.client.put(f'/api/v1/order-materials/{order.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(OrderDesign.objects.filter(group__order=order).get().raw_material, other)

    def test_delete_order(self):
        """Test deleting an order removes groups and designs"""
        order = TestDataFactory.create_order(user=self.user, groups=[(1, [self.material])])
        response = self.client.delete(f'/api/v1/order-materials/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(OrderMaterialGroup.objects.count(), 0)
        self.assertTrue(RawMaterial.objects.filter(id=self.material.id).exists())


class DeliveryStatusTests(TestCase):
    """Test delivery status updates and replenishment"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(quantity=Decimal('10.00'))
        self.order = TestDataFactory.create_order(user=self.user, status='ordered', groups=[(4, [self.material])])
        self.url = f'/api/v1/order-materials/{self.order.id}/update-delivery-status/'

    def test_delivered_order_replenishes_once(self):
        """Test delivery adds group quantity once; repeated calls change nothing"""
        response = self.client.post(self.url, {'isDelivered': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['updated'])
        self.assertEqual(response.data['message'], 'Order marked as received and inventory updated')
        self.assertEqual(response.data['data']['order']['status'], 'received')
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('14.00'))

        response = self.client.post(self.url, {'isDelivered': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['updated'])
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('14.00'))

    def test_not_delivered_is_noop(self):
        """Test isDelivered false changes nothing"""
        response = self.client.post(self.url, {'isDelivered': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'No status change')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'ordered')

    def test_pending_order_is_noop(self):
        """Test only ordered orders can be received"""
        order = TestDataFactory.create_order(user=self.user, status='pending', groups=[(4, [self.material])])
        result = update_delivery_status(order, True)
        self.assertFalse(result['updated'])
        self.assertEqual(result['status'], 'pending')
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('10.00'))

    def test_every_design_in_group_replenished(self):
        """Test group quantity goes to each design's material"""
        second = TestDataFactory.create_raw_material(quantity=Decimal('1.00'))
        third = TestDataFactory.create_raw_material(quantity=Decimal('0.00'))
        order = TestDataFactory.create_order(
            user=self.user, status='ordered', groups=[(2, [second, third]), (5, [third])]
        )
        result = update_delivery_status(order, True)
        self.assertEqual(len(result['replenished']), 3)
        second.refresh_from_db()
        third.refresh_from_db()
        self.assertEqual(second.quantity, Decimal('3.00'))
        self.assertEqual(third.quantity, Decimal('7.00'))

    def test_delivery_logs(self):
        """Test automation log entries for a delivery"""
        self.client.post(self.url, {'isDelivered': True}, format='json')
        actions = set(AutomationLog.objects.values_list('action', flat=True))
        self.assertEqual(actions, {'status_auto_update_delivered', 'inventory_auto_update', 'order_processed_received'})
        log = AutomationLog.objects.get(action='inventory_auto_update')
        self.assertEqual(log.table_name, 'raw_materials')
        self.assertEqual(log.record_id, str(self.material.id))

    def test_replenish_failure_rolls_back(self):
        """Test a failed increment leaves status, flag and stock unchanged"""
        second = TestDataFactory.create_raw_material(quantity=Decimal('1.00'))
        order = TestDataFactory.create_order(
            user=self.user, status='ordered', groups=[(3, [self.material, second])]
        )
        calls = []

        def flaky_add(material_id, amount):
            calls.append(material_id)
            if len(calls) > 1:
                raise NotFound(f"Raw material with ID {material_id} not found")
            return add_raw_material_stock(material_id, amount)

        with patch('capshop.purchasing.services.add_raw_material_stock', side_effect=flaky_add):
            with self.assertRaises(NotFound):
                update_delivery_status(order, True)

        order.refresh_from_db()
        self.material.refresh_from_db()
        self.assertEqual(order.status, 'ordered')
        self.assertFalse(order.inventory_processed)
        self.assertEqual(self.material.quantity, Decimal('10.00'))
        self.assertTrue(AutomationLog.objects.filter(action='order_processing_error').exists())

    def test_missing_is_delivered(self):
        """Test isDelivered is required"""
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProcessInventoryTests(TestCase):
    """Test replenishing manually received orders"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(quantity=Decimal('2.00'))

    def test_process_received_order(self):
        """Test processing a received order once"""
        order = TestDataFactory.create_order(user=self.user, status='received', groups=[(6, [self.material])])
        response = self.client.post(f'/api/v1/order-materials/{order.id}/process-inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['order']['inventory_processed'])
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('8.00'))

        response = self.client.post(f'/api/v1/order-materials/{order.id}/process-inventory/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid state')
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('8.00'))

    def test_process_order_not_received(self):
        """Test processing an ordered order is refused"""
        order = TestDataFactory.create_order(user=self.user, status='ordered', groups=[(6, [self.material])])
        with self.assertRaises(InvalidState):
            process_received_order(order)


class TrackingTests(TestCase):
    """Test carrier tracking clients and delivery detection"""

    def test_is_delivered(self):
        """Test delivery keywords"""
        self.assertTrue(is_delivered([{'description': 'Envío entregado', 'status': ''}]))
        self.assertTrue(is_delivered([{'description': 'In transit'}, {'status': 'delivered'}]))
        self.assertFalse(is_delivered([{'description': 'En tránsito', 'status': 'transit'}]))
        self.assertFalse(is_delivered([{'description': 'Shipment undelivered', 'status': ''}]))
        self.assertFalse(is_delivered([]))

    @override_settings(**TRACKING_SETTINGS)
    @patch('capshop.purchasing.tracking.requests.get')
    def test_estafeta_events(self, mock_get):
        """Test Estafeta feed is normalized"""
        mock_get.return_value = mock_json_response({
            'data': {'events': [{'description': 'Entregado', 'code': 'DL', 'date': '2025-01-10', 'location': 'CDMX'}]}
        })
        events = fetch_tracking_events('estafeta', '1234567890')
        self.assertEqual(events[0]['status'], 'DL')
        self.assertEqual(events[0]['location'], 'CDMX')
        self.assertEqual(mock_get.call_args[0][0], 'https://tracking.example.com/tracking/1234567890')

    @override_settings(**TRACKING_SETTINGS)
    @patch('capshop.purchasing.tracking.requests.get')
    def test_dhl_events(self, mock_get):
        """Test DHL feed is normalized and authenticated"""
        mock_get.return_value = mock_json_response({
            'shipments': [{'events': [{
                'description': 'Delivered',
                'statusCode': 'delivered',
                'timestamp': '2025-01-10T10:00:00',
                'location': {'address': {'addressLocality': 'Guadalajara'}},
            }]}]
        })
        events = fetch_tracking_events('dhl', 'JD0001')
        self.assertEqual(events[0]['location'], 'Guadalajara')
        self.assertEqual(mock_get.call_args[1]['headers'], {'DHL-API-Key': 'test-key'})
        self.assertEqual(mock_get.call_args[1]['params'], {'trackingNumber': 'JD0001'})

    @override_settings(**TRACKING_SETTINGS)
    @patch('capshop.purchasing.tracking.requests.get')
    def test_http_error(self, mock_get):
        """Test HTTP errors become TrackingError"""
        mock_get.return_value = mock_json_response({}, status_code=503)
        with self.assertRaises(TrackingError):
            fetch_tracking_events('estafeta', '123')

    @override_settings(**TRACKING_SETTINGS)
    @patch('capshop.purchasing.tracking.requests.get')
    def test_timeout(self, mock_get):
        """Test timeouts become TrackingError"""
        mock_get.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(TrackingError):
            fetch_tracking_events('dhl', '123')

    def test_unsupported_carrier(self):
        """Test unknown carriers"""
        with self.assertRaises(TrackingError):
            fetch_tracking_events('fedex', '123')


@override_settings(**TRACKING_SETTINGS)
class CheckDeliveryTests(TestCase):
    """Test delivery checks against carriers"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(quantity=Decimal('10.00'))
        self.order = TestDataFactory.create_order(
            user=self.user, status='ordered', groups=[(4, [self.material])],
            tracking_number='1234567890', carrier='estafeta',
        )
        self.delivered_payload = {'events': [{'description': 'Entregado', 'code': 'DL'}]}

    @patch('capshop.purchasing.tracking.requests.get')
    def test_check_without_apply(self, mock_get):
        """Test check reports delivery without changing the order"""
        mock_get.return_value = mock_json_response(self.delivered_payload)
        response = self.client.get(f'/api/v1/order-materials/{self.order.id}/check-delivery/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['isDelivered'])
        self.assertNotIn('update', response.data['data'])
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'ordered')

    @patch('capshop.purchasing.tracking.requests.get')
    def test_check_with_apply(self, mock_get):
        """Test check with apply receives the order"""
        mock_get.return_value = mock_json_response(self.delivered_payload)
        response = self.client.post(
            f'/api/v1/order-materials/{self.order.id}/check-delivery/', {'apply': True}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['update']['updated'])
        self.material.refresh_from_db()
        self.assertEqual(self.material.quantity, Decimal('14.00'))

    @patch('capshop.purchasing.tracking.requests.get')
    def test_check_tracking_failure(self, mock_get):
        """Test tracking failures are logged and reported"""
        mock_get.side_effect = requests.exceptions.ConnectionError('boom')
        with self.assertRaises(UpstreamFailure):
            check_delivery(self.order)
        self.assertTrue(AutomationLog.objects.filter(action='delivery_status_check_error').exists())

        response = self.client.get(f'/api/v1/order-materials/{self.order.id}/check-delivery/')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(response.data['success'])

    def test_check_without_tracking_number(self):
        """Test orders without tracking number"""
        order = TestDataFactory.create_order(user=self.user, status='ordered', carrier='dhl')
        response = self.client.get(f'/api/v1/order-materials/{order.id}/check-delivery/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('capshop.purchasing.tracking.requests.get')
    def test_check_deliveries_command(self, mock_get):
        """Test polling command receives delivered orders"""
        mock_get.return_value = mock_json_response(self.delivered_payload)
        out = StringIO()
        call_command('check_deliveries', stdout=out)
        self.assertIn('Received: 1', out.getvalue())
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'received')
        self.assertTrue(self.order.inventory_processed)

    @patch('capshop.purchasing.tracking.requests.get')
    def test_check_deliveries_command_continues_after_database_error(self, mock_get):
        """Test a database error on one order does not stop the run"""
        mock_get.return_value = mock_json_response(self.delivered_payload)
        broken = TestDataFactory.create_order(
            user=self.user, status='ordered', groups=[(1, [self.material])],
            tracking_number='BROKEN01', carrier='estafeta',
        )

        def failing_check(order, apply=False, request=None):
            if order.id == broken.id:
                raise DatabaseError('connection lost')
            return check_delivery(order, apply=apply, request=request)

        out = StringIO()
        with patch('capshop.purchasing.management.commands.check_deliveries.check_delivery', side_effect=failing_check):
            call_command('check_deliveries', stdout=out)
        self.assertIn('Received: 1', out.getvalue())
        self.assertIn('Failed lookups: 1', out.getvalue())
        self.order.refresh_from_db()
        broken.refresh_from_db()
        self.assertEqual(self.order.status, 'received')
        self.assertEqual(broken.status, 'ordered')

    @patch('capshop.purchasing.tracking.requests.get')
    def test_check_deliveries_command_dry_run(self, mock_get):
        """Test dry run leaves orders unchanged"""
        mock_get.return_value = mock_json_response(self.delivered_payload)
        out = StringIO()
        call_command('check_deliveries', '--dry-run', stdout=out)
        self.assertIn('dry run', out.getvalue())
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'ordered')
