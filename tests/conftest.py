"""
Shared fixtures: a controllable clock, canned HTTP responses and a mocked
requests.Session so no test touches the network.
"""
import base64
import json
import time
from unittest.mock import MagicMock

import pytest
import requests

from travelops.auth.refresh_scheduler import TokenRefreshScheduler
from travelops.auth.session import SessionContext
from travelops.cache import ApiCache
from travelops.services.api_client import ApiClient

BASE_URL = 'http://panel.test'
START_TIME = 1_700_000_000.0

ADMIN_USER = {'username': 'admin', 'name': 'Admin Ops', 'type': 'admin'}
BASIC_USER = {'username': 'rina', 'name': 'Rina', 'type': 'basic'}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(status: int = 200, json_body=None, text: str = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    if json_body is not None:
        response._content = json.dumps(json_body).encode('utf-8')
    elif text is not None:
        response._content = text.encode('utf-8')
    else:
        response._content = b''
    response.encoding = 'utf-8'
    response.url = BASE_URL
    return response


def create_test_jwt(exp: int = None, iat: int = None, **extra_claims) -> str:
    """Fabricated, unsigned JWT for tests."""
    current_time = int(time.time())
    payload = {
        'exp': current_time + 3600 if exp is None else exp,
        'iat': current_time if iat is None else iat,
        'username': 'admin',
        **extra_claims
    }

    def b64url_encode(data: dict) -> str:
        raw = json.dumps(data, separators=(',', ':')).encode('utf-8')
        return base64.urlsafe_b64encode(raw).decode('utf-8').rstrip('=')

    return f"{b64url_encode({'alg': 'HS256', 'typ': 'JWT'})}.{b64url_encode(payload)}.fake_signature"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def navigate():
    return MagicMock()


@pytest.fixture
def context(http, clock, notify, navigate):
    return SessionContext(
        base_url=BASE_URL,
        http=http,
        clock=clock,
        notify=notify,
        navigate=navigate,
        redirect_delay=0,
        cache=ApiCache(clock=clock)
    )


@pytest.fixture
def signed_in(context):
    """Context holding a stored admin session with token 'old-token'."""
    context.store_session('old-token', dict(ADMIN_USER, token='old-token'))
    return context


@pytest.fixture
def scheduler(context):
    sched = TokenRefreshScheduler(context)
    yield sched
    sched.stop()


@pytest.fixture
def client(context, scheduler):
    return ApiClient(context, scheduler, cache=context.cache)
