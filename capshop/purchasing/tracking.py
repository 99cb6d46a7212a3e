"""
Carrier tracking lookups for material orders.

Each carrier client fetches the shipment's event feed over HTTP and
normalizes it into a list of ``{'description', 'status', 'timestamp', 'location'}``
dicts; ``is_delivered`` then decides whether the feed shows final delivery.
"""
import os
import requests
import logging
from typing import Any, Dict, List
from django.conf import settings

logger = logging.getLogger(__name__)

DELIVERED_KEYWORDS = ('delivered', 'entregado', 'entregada')
NOT_DELIVERED_KEYWORDS = ('undelivered', 'not delivered', 'no entregado', 'no entregada')


class TrackingError(Exception):
    """Tracking lookup could not be completed"""


def _setting(name, default=''):
    return getattr(settings, name, os.getenv(name, default))


def _get_json(url, headers=None, params=None) -> Dict[str, Any]:
    timeout = int(_setting('TRACKING_REQUEST_TIMEOUT', 10))
    try:
        response = requests.get(url, headers=headers, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout:
        raise TrackingError(f"Tracking request timed out after {timeout}s")
    except requests.exceptions.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else 'unknown'
        raise TrackingError(f"Tracking service returned HTTP {status_code}")
    except requests.exceptions.RequestException as e:
        raise TrackingError(f"Tracking service unreachable: {str(e)}")

    try:
        return response.json()
    except ValueError:
        raise TrackingError("Tracking service returned invalid JSON")


def fetch_estafeta_events(tracking_number: str) -> List[Dict[str, Any]]:
    """Events from the Estafeta tracking proxy (``GET {base}/tracking/{number}``)"""
    base_url = _setting('ESTAFETA_TRACKING_URL').rstrip('/')
    if not base_url:
        raise TrackingError('Estafeta tracking URL is not configured')

    payload = _get_json(f"{base_url}/tracking/{tracking_number.strip()}")
    if isinstance(payload, dict):
        payload = payload.get('data', payload)
    raw_events = payload.get('events', []) if isinstance(payload, dict) else payload

    events = []
    for event in raw_events or []:
        events.append({
            'description': event.get('description') or event.get('eventDescription') or '',
            'status': event.get('status') or event.get('code') or '',
            'timestamp': event.get('date') or event.get('timestamp'),
            'location': event.get('location') or '',
        })
    return events


def fetch_dhl_events(tracking_number: str) -> List[Dict[str, Any]]:
    """Events from the DHL shipment tracking API"""
    api_key = _setting('DHL_API_KEY')
    if not api_key:
        raise TrackingError('DHL API key is not configured')

    payload = _get_json(
        _setting('DHL_TRACKING_URL', 'https://api-eu.dhl.com/track/shipments'),
        headers={'DHL-API-Key': api_key},
        params={'trackingNumber': tracking_number.strip()},
    )

    events = []
    for shipment in payload.get('shipments', []):
        for event in shipment.get('events', []):
            location = (event.get('location') or {}).get('address', {}).get('addressLocality', '')
            events.append({
                'description': event.get('description') or '',
                'status': event.get('statusCode') or event.get('status') or '',
                'timestamp': event.get('timestamp'),
                'location': location,
            })
    return events


CARRIER_CLIENTS = {
    'estafeta': fetch_estafeta_events,
    'dhl': fetch_dhl_events,
}


def fetch_tracking_events(carrier: str, tracking_number: str) -> List[Dict[str, Any]]:
    """Look a tracking number up with the given carrier"""
    if not tracking_number or not tracking_number.strip():
        raise TrackingError('Order has no tracking number')
    client = CARRIER_CLIENTS.get((carrier or '').lower())
    if client is None:
        raise TrackingError(f"Unsupported carrier: {carrier or 'none'}")

    logger.info(f"Fetching {carrier} tracking for {tracking_number}")
    return client(tracking_number)


def is_delivered(events: List[Dict[str, Any]]) -> bool:
    """True when any event's description or status reports final delivery"""
    for event in events:
        text = f"{event.get('description', '')} {event.get('status', '')}".lower()
        if any(keyword in text for keyword in NOT_DELIVERED_KEYWORDS):
            continue
        if any(keyword in text for keyword in DELIVERED_KEYWORDS):
            return True
    return False
