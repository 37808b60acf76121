"""
Authenticated client for the panel's REST API.

Every dashboard goes through ApiClient.call() so that auth headers, cache
busting, proactive token renewal and the retry-once-on-401 rule live in one
place.
"""
import json
import logging
from typing import Any, Optional
from urllib.parse import urlencode, urlparse

import requests

from travelops.auth.refresh_scheduler import REFRESH_PATH, TokenRefreshScheduler
from travelops.auth.session import SESSION_EXPIRED_MESSAGE, SessionContext

logger = logging.getLogger(__name__)

LOGIN_PATH = '/api/login'

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache'
}

FORBIDDEN_FALLBACK = 'Forbidden'
FORBIDDEN_MESSAGE = 'Akses ditolak'


class ApiError(RuntimeError):
    """Raised when an API call fails. Carries the HTTP status when there was one."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ForbiddenError(ApiError):
    """403: the session is fine but the user lacks permission."""
    pass


class SessionExpiredError(ApiError):
    """401 that survived a forced refresh; the session has been terminated."""
    pass


def is_auth_endpoint(path: str) -> bool:
    return REFRESH_PATH in path or LOGIN_PATH in path


def error_message(response: requests.Response, fallback: str, default: str) -> str:
    """
    Pull the `error` field out of a JSON error body.

    fallback is used when the body isn't JSON, default when it is JSON
    without a usable `error` field.
    """
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get('error'):
        return str(data['error'])
    return default


def parse_body(response: requests.Response) -> Any:
    """Parsed JSON body, or None for empty and non-JSON bodies."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class ApiClient:
    """
    Args:
        context: Shared session context
        scheduler: Refresh scheduler providing refresh_token_if_needed()
        cache: Optional ApiCache for GET responses
        use_cache: Default for the per-call use_cache flag
    """

    def __init__(self, context: SessionContext, scheduler: TokenRefreshScheduler,
                 cache=None, use_cache: bool = False):
        self.context = context
        self.scheduler = scheduler
        self.cache = cache
        self.use_cache = use_cache

    def call(self, path: str, method: str = 'GET', headers: Optional[dict] = None,
             body: Any = None, params: Optional[dict] = None,
             use_cache: Optional[bool] = None) -> Any:
        """
        Issue an API request and return the parsed JSON body.

        Args:
            path: Relative API path (/api/tours) or absolute URL
            method: HTTP verb
            headers: Extra headers; auth and cache-busting headers are merged in
            body: dict/list bodies are JSON-encoded when the content type is JSON
            params: Query string parameters
            use_cache: Serve/store GET responses from the response cache (as copies)

        Returns:
            Parsed JSON body, or None when the body is empty or not JSON

        Raises:
            SessionExpiredError: 401 that a forced refresh could not fix
            ForbiddenError: 403
            ApiError: Any other non-2xx status or a network failure
        """
        self.context.touch()
        method = method.upper()

        auth_endpoint = is_auth_endpoint(path)
        if not auth_endpoint:
            self.scheduler.refresh_token_if_needed()

        url = self.context.url(path)
        cache_url = f"{url}?{urlencode(sorted(params.items()), doseq=True)}" if params else url
        caching = self._caching_enabled(use_cache) and method == 'GET' and self.cache.is_cacheable(cache_url)

        if caching:
            cached = self.cache.get(cache_url)
            if cached is not None:
                logger.debug(f"Cache hit: {cache_url}")
                return cached
        elif method in ('POST', 'PUT', 'PATCH', 'DELETE') and self.cache is not None:
            self.cache.invalidate(urlparse(url).path)

        data = self._send(url, method, headers, body, params, retry_with_refresh=not auth_endpoint)

        if caching and data is not None:
            self.cache.set(cache_url, data)
        return data

    def get(self, path: str, **kwargs) -> Any:
        return self.call(path, method='GET', **kwargs)

    def post(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.call(path, method='POST', body=body, **kwargs)

    def put(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.call(path, method='PUT', body=body, **kwargs)

    def patch(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.call(path, method='PATCH', body=body, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.call(path, method='DELETE', **kwargs)

    def _caching_enabled(self, use_cache: Optional[bool]) -> bool:
        if self.cache is None:
            return False
        return self.use_cache if use_cache is None else use_cache

    def _build_headers(self, headers: Optional[dict], has_body: bool) -> dict:
        merged = dict(headers or {})
        merged.update(self.context.auth_headers())
        if has_body and not any(key.lower() == 'content-type' for key in merged):
            merged['Content-Type'] = 'application/json'
        merged.update(NO_CACHE_HEADERS)
        return merged

    @staticmethod
    def _encode_body(body: Any, headers: dict) -> Any:
        if body is None:
            return None
        content_type = next((value for key, value in headers.items() if key.lower() == 'content-type'), '')
        if isinstance(body, (dict, list)) and 'application/json' in content_type:
            return json.dumps(body)
        return body

    def _send(self, url: str, method: str, headers: Optional[dict], body: Any,
              params: Optional[dict], retry_with_refresh: bool) -> Any:
        request_headers = self._build_headers(headers, body is not None)
        payload = self._encode_body(body, request_headers)

        try:
            response = self.context.http.request(
                method,
                url,
                headers=request_headers,
                data=payload,
                params=params,
                timeout=self.context.request_timeout
            )
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(f"Network error: {e}")

        if response.status_code == 401:
            if retry_with_refresh:
                logger.warning(f"401 from {method} {url}, forcing token refresh")
                if self.scheduler.refresh_token_if_needed(force=True):
                    # Retry with the new token, no further refresh attempts
                    return self._send(url, method, headers, body, params, retry_with_refresh=False)

            self.context.terminate(SESSION_EXPIRED_MESSAGE)
            raise SessionExpiredError('Session expired', status=401)

        if response.status_code == 403:
            message = error_message(response, FORBIDDEN_FALLBACK, FORBIDDEN_MESSAGE)
            logger.warning(f"403 from {method} {url}: {message}")
            raise ForbiddenError(message, status=403)

        if not response.ok:
            message = response.text or f"HTTP {response.status_code}"
            logger.error(f"{method} {url} failed: HTTP {response.status_code}")
            raise ApiError(message, status=response.status_code)

        return parse_body(response)
