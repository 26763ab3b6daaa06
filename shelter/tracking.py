"""
Client for the external device-tracking service (Traccar-compatible API)
"""
import logging

import requests
from flask import current_app

from shelter.errors import DependencyFailure

logger = logging.getLogger(__name__)


class TrackingClient:
    """Registers and renames animal tracking devices"""

    def __init__(self, base_url, token=None, timeout=10):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def _request(self, method, path, payload):
        if not self.base_url:
            raise DependencyFailure('Tracking service is not configured')
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Tracking service call {method} {url} failed: {e}")
            raise DependencyFailure('Failed to reach the tracking service') from e
        return response

    def register_device(self, name, unique_id):
        """Register a device and return the tracking service's id for it"""
        response = self._request('POST', '/api/devices', {'name': name, 'uniqueId': unique_id})
        try:
            return response.json()['id']
        except (ValueError, KeyError, TypeError) as e:
            raise DependencyFailure('Tracking service returned an unexpected response') from e

    def update_device(self, traccar_id, name, unique_id):
        self._request('PUT', f'/api/devices/{traccar_id}',
                      {'id': traccar_id, 'name': name, 'uniqueId': unique_id})


def get_tracking_client():
    client = current_app.extensions.get('tracking')
    if client is None:
        client = TrackingClient(current_app.config.get('TRACKING_URL'),
                                current_app.config.get('TRACKING_TOKEN'),
                                current_app.config.get('TRACKING_TIMEOUT', 10))
        current_app.extensions['tracking'] = client
    return client
