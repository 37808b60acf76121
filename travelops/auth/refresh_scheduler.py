"""
Background token renewal and inactivity logout.

Two timers run while a protected page is open:
- every 5 minutes: log out after 30 minutes of inactivity, otherwise renew the
  token unless the user has been idle for 5 minutes or more
- every minute: the inactivity check alone

refresh_token_if_needed() is the on-demand path the API client calls around
requests. All refreshes are serialized; a caller that waited while another
refresh completed reuses that result instead of calling the server again.
"""
import logging
import threading
from typing import Optional

import requests

from travelops.auth.session import (
    INACTIVITY_MESSAGE,
    INACTIVITY_TIMEOUT,
    REFRESH_THRESHOLD,
    GuardOutcome,
    SessionContext,
    SessionStatus,
    classify,
)
from travelops.utils.timers import RepeatingTimer

logger = logging.getLogger(__name__)

REFRESH_PATH = '/api/refresh'
REFRESH_INTERVAL = 5 * 60
INACTIVITY_CHECK_INTERVAL = 60

ACTIVITY_EVENTS = ('click', 'keydown', 'mousemove', 'scroll', 'touchstart')


class TokenRefreshScheduler:

    def __init__(self, context: SessionContext,
                 refresh_interval: float = REFRESH_INTERVAL,
                 inactivity_check_interval: float = INACTIVITY_CHECK_INTERVAL):
        self.context = context
        self.refresh_interval = refresh_interval
        self.inactivity_check_interval = inactivity_check_interval
        self._refresh_lock = threading.Lock()
        self._refresh_timer: Optional[RepeatingTimer] = None
        self._inactivity_timer: Optional[RepeatingTimer] = None

        # A terminated session has nothing left to keep alive
        context.add_termination_listener(self.stop)

    # --- Activity ---

    def on_user_event(self, event: str = 'click') -> None:
        """Interaction hook: every qualifying event moves the activity clock."""
        if event in ACTIVITY_EVENTS:
            self.context.touch()

    def status(self) -> SessionStatus:
        state = self.context.state
        return classify(self.context.clock(), state.last_activity, state.last_refresh)

    def check_inactivity(self) -> bool:
        """Terminate the session after INACTIVITY_TIMEOUT without activity. Returns True if terminated."""
        idle_time = self.context.clock() - self.context.state.last_activity
        if idle_time > INACTIVITY_TIMEOUT:
            logger.warning(f"No activity for {idle_time / 60:.0f} minutes, logging out")
            self.context.terminate(INACTIVITY_MESSAGE)
            return True
        return False

    # --- Timer callbacks ---

    def refresh_tick(self) -> None:
        if self.check_inactivity():
            return

        if self.status() is SessionStatus.IDLE:
            idle_minutes = int((self.context.clock() - self.context.state.last_activity) // 60)
            logger.warning(f"User idle for {idle_minutes}m, token refresh paused")
            return

        self._refresh(force=True, reason='scheduled')

    def inactivity_tick(self) -> None:
        self.check_inactivity()

    # --- Refresh ---

    def refresh_token_if_needed(self, force: bool = False) -> bool:
        """
        Renew the token when forced or when the last refresh is REFRESH_THRESHOLD old.

        Returns:
            True if the stored token was replaced, False otherwise. A 401/403
            from the refresh endpoint terminates the session.
        """
        return self._refresh(force=force, reason='forced' if force else 'proactive')

    def _refresh(self, force: bool, reason: str) -> bool:
        state = self.context.state
        seen_refreshes = state.refresh_count

        with self._refresh_lock:
            if state.refresh_count != seen_refreshes:
                # Someone else renewed the token while we waited
                return True

            token = self.context.current_token()
            if not token:
                return False

            if not force and self.context.clock() - state.last_refresh < REFRESH_THRESHOLD:
                return False

            return self._request_refresh(token, reason)

    def _request_refresh(self, token: str, reason: str) -> bool:
        try:
            response = self.context.http.post(
                self.context.url(REFRESH_PATH),
                headers=self.context.auth_headers(token),
                timeout=self.context.request_timeout
            )
        except requests.RequestException as e:
            logger.error(f"Token refresh ({reason}) failed: {e}")
            return False

        if response.status_code in (401, 403):
            logger.warning(f"Token refresh rejected (HTTP {response.status_code}), logging out")
            self.context.terminate()
            return False

        if not response.ok:
            logger.error(f"Token refresh ({reason}) failed: HTTP {response.status_code}")
            return False

        try:
            data = response.json()
        except ValueError:
            data = None

        new_token = data.get('token') if isinstance(data, dict) else None
        if not new_token:
            logger.error(f"Token refresh ({reason}) returned no token")
            return False

        if not self.context.replace_token(new_token):
            logger.warning(f"Session ended during token refresh ({reason}), discarding new token")
            return False

        logger.info(f"Token refreshed ({reason})")
        return True

    # --- Lifecycle ---

    def start(self) -> bool:
        """
        Start both timers, replacing any that are already running.

        Raises:
            RuntimeError: If the session guard has not run yet

        Returns:
            False without starting when the guard failed or the session ended.
        """
        outcome = self.context.state.guard_outcome
        if outcome is GuardOutcome.PENDING:
            raise RuntimeError("Session guard has not run; refusing to start token refresh")
        if outcome is GuardOutcome.FAILED or self.context.state.terminated:
            logger.warning("Not starting token refresh: no valid session")
            return False

        self.stop()
        self._refresh_timer = RepeatingTimer(self.refresh_interval, self.refresh_tick, name='token-refresh')
        self._inactivity_timer = RepeatingTimer(self.inactivity_check_interval, self.inactivity_tick,
                                                name='inactivity-check')
        self._refresh_timer.start()
        self._inactivity_timer.start()
        logger.info("Token refresh scheduler started")
        return True

    def stop(self) -> None:
        for timer in (self._refresh_timer, self._inactivity_timer):
            if timer is not None:
                timer.stop()
        self._refresh_timer = None
        self._inactivity_timer = None

    @property
    def is_running(self) -> bool:
        return any(timer is not None and timer.is_running
                   for timer in (self._refresh_timer, self._inactivity_timer))
