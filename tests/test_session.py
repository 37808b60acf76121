"""
Tests for session state classification and the termination path.
"""
import json
import logging
import threading
import time
from unittest.mock import MagicMock

import pytest

from conftest import ADMIN_USER
from travelops.auth.session import (
    INACTIVITY_TIMEOUT,
    SESSION_EXPIRED_MESSAGE,
    GuardOutcome,
    SessionContext,
    SessionStatus,
    classify
)
from travelops.storage import TOKEN_KEY, USER_KEY

T = 1_700_000_000.0
MINUTE = 60


class TestClassify:

    def test_fresh(self):
        assert classify(T, T - 1 * MINUTE, T - 2 * MINUTE) is SessionStatus.FRESH

    def test_stale_token(self):
        assert classify(T, T - 1 * MINUTE, T - 10 * MINUTE) is SessionStatus.STALE_TOKEN

    def test_idle(self):
        assert classify(T, T - 5 * MINUTE, T) is SessionStatus.IDLE
        assert classify(T, T - 29 * MINUTE, T - 20 * MINUTE) is SessionStatus.IDLE

    def test_expired_only_after_timeout(self):
        assert classify(T, T - INACTIVITY_TIMEOUT, T) is SessionStatus.IDLE
        assert classify(T, T - INACTIVITY_TIMEOUT - 1, T) is SessionStatus.EXPIRED


class TestSessionContext:

    def test_url_building(self, context):
        assert context.url('/api/tours') == 'http://panel.test/api/tours'
        assert context.url('api/tours') == 'http://panel.test/api/tours'
        assert context.url('https://other.test/api/x') == 'https://other.test/api/x'

    def test_store_session(self, context, clock):
        clock.advance(90)
        context.store_session('tok', ADMIN_USER)

        assert context.current_token() == 'tok'
        assert json.loads(context.local_storage.get_item(USER_KEY)) == ADMIN_USER
        assert context.current_user() == ADMIN_USER
        assert context.state.last_activity == clock.now
        assert context.state.last_refresh == clock.now
        assert context.state.guard_outcome is GuardOutcome.VERIFIED

    def test_current_user_with_bad_json(self, context):
        context.local_storage.set_item(USER_KEY, '{oops')
        assert context.current_user() is None

    def test_replace_token(self, signed_in, clock):
        clock.advance(600)
        assert signed_in.replace_token('new') is True

        assert signed_in.current_token() == 'new'
        assert signed_in.state.last_refresh == clock.now
        assert signed_in.state.refresh_count == 1

    def test_replace_token_after_termination(self, signed_in):
        signed_in.terminate()

        assert signed_in.replace_token('new') is False
        assert signed_in.current_token() is None
        assert signed_in.state.refresh_count == 0

    def test_auth_headers(self, signed_in):
        assert signed_in.auth_headers() == {'Authorization': 'Bearer old-token'}
        signed_in.local_storage.clear()
        assert signed_in.auth_headers() == {}


class TestTermination:

    def test_terminate_clears_everything(self, signed_in, notify, navigate):
        signed_in.session_storage.set_item('draft', 'x')
        signed_in.cache.set('http://panel.test/api/tours', [])

        signed_in.terminate()

        assert len(signed_in.local_storage) == 0
        assert len(signed_in.session_storage) == 0
        assert len(signed_in.cache) == 0
        assert signed_in.state.terminated is True
        notify.assert_called_once_with(SESSION_EXPIRED_MESSAGE)
        navigate.assert_called_once_with('/login.html')

    def test_terminate_twice_is_harmless(self, signed_in, notify, navigate):
        signed_in.terminate()
        signed_in.local_storage.set_item(TOKEN_KEY, 'late-write')

        signed_in.terminate()

        assert len(signed_in.local_storage) == 0
        assert navigate.call_count == 1
        assert notify.call_count == 1

    def test_listeners_fire_once(self, signed_in):
        listener = MagicMock()
        signed_in.add_termination_listener(listener)

        signed_in.terminate()
        signed_in.terminate()

        listener.assert_called_once_with()

    def test_new_login_rearms_navigation(self, signed_in, navigate):
        signed_in.terminate()
        signed_in.store_session('again', ADMIN_USER)
        signed_in.terminate()

        assert navigate.call_count == 2

    def test_delayed_navigation(self, signed_in, navigate):
        signed_in.redirect_delay = 0.01
        signed_in.terminate()

        navigate.assert_not_called()
        # Timer thread fires shortly after
        for _ in range(200):
            if navigate.called:
                break
            time.sleep(0.01)
        navigate.assert_called_once_with('/login.html')

    def test_redirect_to_login_skips_message(self, context, notify, navigate):
        context.redirect_to_login()
        context.redirect_to_login()

        notify.assert_not_called()
        navigate.assert_called_once_with('/login.html')


@pytest.mark.parametrize('message', ['Sesi habis', SESSION_EXPIRED_MESSAGE])
def test_terminate_uses_given_message(signed_in, notify, message):
    signed_in.terminate(message)
    notify.assert_called_once_with(message)


def test_concurrent_termination(signed_in, navigate):
    threads = [threading.Thread(target=signed_in.terminate) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(2)

    assert len(signed_in.local_storage) == 0
    navigate.assert_called_once_with('/login.html')


def test_default_notify_logs_warning(caplog, capsys):
    context = SessionContext(base_url='http://panel.test', http=MagicMock(), navigate=MagicMock())

    with caplog.at_level(logging.WARNING, logger='travelops.auth.session'):
        context.notify(SESSION_EXPIRED_MESSAGE)

    assert SESSION_EXPIRED_MESSAGE in caplog.text
    assert f"[TravelOps] {SESSION_EXPIRED_MESSAGE}" in capsys.readouterr().out
