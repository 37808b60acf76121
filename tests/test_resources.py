"""
Tests for the dashboard resource clients.
"""
import json

import pytest

from conftest import BASE_URL, BASIC_USER, make_response
from travelops.services.api_client import ForbiddenError
from travelops.services.resources import (
    ResourceClient,
    TicketRecapClient,
    TrackingClient,
    UserClient,
    metrics,
)


def _last_request(http):
    call = http.request.call_args
    method, url = call.args
    return method, url, call.kwargs


class TestResourceClient:

    def test_list(self, signed_in, client, http):
        http.request.return_value = make_response(200, [{'id': 1}, {'id': 2}])
        tours = ResourceClient(client, 'tours')

        assert tours.list(region='Jakarta') == [{'id': 1}, {'id': 2}]

        method, url, kwargs = _last_request(http)
        assert (method, url) == ('GET', f'{BASE_URL}/api/tours')
        assert kwargs['params'] == {'region': 'Jakarta'}

    def test_list_empty_body(self, signed_in, client, http):
        http.request.return_value = make_response(200)

        assert ResourceClient(client, 'sales').list() == []
        assert _last_request(http)[2]['params'] is None

    def test_crud_paths(self, signed_in, client, http):
        http.request.return_value = make_response(200, {'ok': True})
        documents = ResourceClient(client, '/documents/')

        documents.get(4)
        assert _last_request(http)[:2] == ('GET', f'{BASE_URL}/api/documents/4')

        documents.create({'name': 'Visa'})
        method, url, kwargs = _last_request(http)
        assert (method, url) == ('POST', f'{BASE_URL}/api/documents')
        assert json.loads(kwargs['data']) == {'name': 'Visa'}

        documents.update(4, {'name': 'Paspor'})
        assert _last_request(http)[:2] == ('PUT', f'{BASE_URL}/api/documents/4')

        documents.delete(4)
        assert _last_request(http)[:2] == ('DELETE', f'{BASE_URL}/api/documents/4')

    def test_repr(self, client):
        assert repr(ResourceClient(client, 'telecom')) == "ResourceClient('/api/telecom')"


class TestTicketRecapClient:

    def test_full_paths(self, signed_in, client, http):
        http.request.return_value = make_response(200, [])
        recaps = TicketRecapClient(client)

        recaps.list()
        assert _last_request(http)[:2] == ('GET', f'{BASE_URL}/api/ticket_recaps/full')

        recaps.create({'pnr': 'ABC123'})
        assert _last_request(http)[:2] == ('POST', f'{BASE_URL}/api/ticket_recaps/full')

        recaps.update(9, {'pnr': 'XYZ789'})
        assert _last_request(http)[:2] == ('PUT', f'{BASE_URL}/api/ticket_recaps/9/full')

        recaps.delete(9)
        assert _last_request(http)[:2] == ('DELETE', f'{BASE_URL}/api/ticket_recaps/9')


class TestUserClient:

    def test_reset_password_as_admin(self, signed_in, client, http):
        http.request.return_value = make_response(200, {'success': True})

        assert UserClient(client).reset_password('rina', 'rahasia1', 'rahasia1') == {'success': True}

        method, url, kwargs = _last_request(http)
        assert (method, url) == ('POST', f'{BASE_URL}/api/users/rina/reset')
        assert json.loads(kwargs['data']) == {'password': 'rahasia1'}

    @pytest.mark.parametrize('password, confirm, message', [
        ('abc', 'abc', 'Password minimal 6 karakter'),
        ('', '', 'Password minimal 6 karakter'),
        ('rahasia1', 'rahasia2', 'Password konfirmasi tidak sama'),
    ])
    def test_reset_password_validation(self, signed_in, client, http, password, confirm, message):
        with pytest.raises(ValueError, match=message):
            UserClient(client).reset_password('rina', password, confirm)
        http.request.assert_not_called()

    def test_reset_password_requires_admin(self, context, client, http, navigate):
        context.store_session('basic-token', BASIC_USER)

        with pytest.raises(ForbiddenError) as exc_info:
            UserClient(client).reset_password('admin', 'rahasia1', 'rahasia1')

        assert exc_info.value.status == 403
        http.request.assert_not_called()
        assert context.current_token() == 'basic-token'
        navigate.assert_not_called()


class TestTracking:

    def test_check_with_courier(self, signed_in, client, http):
        http.request.return_value = make_response(200, {'status': 'delivered'})

        result = TrackingClient(client, 'tracking/deliveries').check('JNE123', courier='jne')

        assert result == {'status': 'delivered'}
        assert _last_request(http)[:2] == ('GET', f'{BASE_URL}/api/tracking/check/jne/JNE123')

    def test_check_auto_detects_courier(self, signed_in, client, http):
        http.request.return_value = make_response(200, {})

        TrackingClient(client, 'tracking/receivings').check('000111')

        assert _last_request(http)[:2] == ('GET', f'{BASE_URL}/api/tracking/check/auto/000111')

    def test_tracking_collection(self, signed_in, client, http):
        http.request.return_value = make_response(200, [])

        TrackingClient(client, 'tracking/deliveries').list()

        assert _last_request(http)[:2] == ('GET', f'{BASE_URL}/api/tracking/deliveries')


def test_metrics(signed_in, client, http):
    http.request.return_value = make_response(200, {'sales': 12, 'tours': 3})

    assert metrics(client, month=5, year=2025) == {'sales': 12, 'tours': 3}

    method, url, kwargs = _last_request(http)
    assert (method, url) == ('GET', f'{BASE_URL}/api/metrics')
    assert kwargs['params'] == {'month': 5, 'year': 2025}
