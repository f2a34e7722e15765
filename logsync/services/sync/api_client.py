"""
HTTP client for the companion web service (profile, friends, friend requests).

Failures never raise: they are logged and mapped to empty results so the
realtime pipeline keeps running.
"""
from typing import Any, Dict, List, Optional

import requests

from logsync.config import API_BASE_URL, API_TIMEOUT
from logsync.services.shared.observability import _logger


class ApiClient:
    def __init__(self, base_url: str = API_BASE_URL, token: Optional[str] = None,
                 timeout: float = API_TIMEOUT, session: Optional[requests.Session] = None):
        self._base_url = base_url.rstrip('/')
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self._token:
            headers['Authorization'] = f"Bearer {self._token}"
        return headers

    def _request(self, method: str, path: str) -> Optional[Any]:
        if not self._token:
            _logger.warning(f"Cannot call {path} - not authenticated")
            return None
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.request(method, url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as e:
            _logger.error(f"Error calling {path}: {e}")
            return None
        if resp.status_code != 200:
            _logger.error(f"Failed to call {path}: {resp.status_code}")
            return None
        try:
            return resp.json()
        except ValueError as e:
            _logger.error(f"Invalid JSON from {path}: {e}")
            return None

    def fetch_profile(self) -> Optional[Dict[str, Any]]:
        data = self._request('GET', '/api/user/getProfile')
        return data if isinstance(data, dict) else None

    def fetch_friends(self) -> List[Dict[str, Any]]:
        data = self._request('POST', '/api/friends/getFriends')
        return [f for f in data if isinstance(f, dict)] if isinstance(data, list) else []

    def fetch_friend_requests(self) -> List[Dict[str, Any]]:
        data = self._request('POST', '/api/friends/getPendingFriendRequests')
        return [r for r in data if isinstance(r, dict)] if isinstance(data, list) else []
