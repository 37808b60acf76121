"""
Page-load session check.

Before a protected page does anything, make sure a plausible session is stored
locally and that the server still accepts its token.
"""
import json
import logging
import threading
from typing import Callable, Iterable, Optional

import requests

from travelops.auth.session import GuardOutcome, SessionContext
from travelops.config import DEFAULT_LOGIN_PAGE, DEFAULT_LOGOUT_PAGE
from travelops.storage import USER_KEY

logger = logging.getLogger(__name__)

ME_PATH = '/api/me'

# Delay before verifying, so other page initialization reading the session runs first
GUARD_DELAY = 0.1

REQUIRED_USER_FIELDS = ('username', 'type')


def _page_path(page: str) -> str:
    return page.split('?', 1)[0].split('#', 1)[0].rstrip('/') or '/'


class SessionGuard:
    """Verifies the stored session once per page load."""

    def __init__(self, context: SessionContext, public_pages: Optional[Iterable[str]] = None):
        self.context = context
        pages = public_pages if public_pages is not None else (DEFAULT_LOGIN_PAGE, DEFAULT_LOGOUT_PAGE)
        self.public_pages = {_page_path(page) for page in pages}

    def is_public_page(self, page: str) -> bool:
        return _page_path(page) in self.public_pages

    def verify(self, page: Optional[str] = None) -> bool:
        """
        Check the stored session for the page being opened.

        Login/logout pages are skipped (returns True without any checks).
        Otherwise the stored token and user profile must be present and
        well-formed, and GET /api/me must succeed with the token.

        Returns:
            True when the page may proceed, False after clearing the session
            and redirecting to the login page.
        """
        state = self.context.state

        if page is not None and self.is_public_page(page):
            logger.debug(f"Skipping session verification on {page}")
            state.guard_outcome = GuardOutcome.SKIPPED
            return True

        token = self.context.current_token()
        raw_user = self.context.local_storage.get_item(USER_KEY)
        if not token or not raw_user:
            return self._fail("No authentication found")

        try:
            user = json.loads(raw_user)
        except ValueError as e:
            return self._fail(f"Invalid session data: {e}")

        if not isinstance(user, dict) or not all(user.get(field) for field in REQUIRED_USER_FIELDS):
            return self._fail("Invalid session data: user profile is missing username or type")

        try:
            response = self.context.http.get(
                self.context.url(ME_PATH),
                headers=self.context.auth_headers(token),
                timeout=self.context.request_timeout
            )
        except requests.RequestException as e:
            return self._fail(f"Identity check failed: {e}")

        if not response.ok:
            return self._fail(f"Server rejected session (HTTP {response.status_code})")

        state.guard_outcome = GuardOutcome.VERIFIED
        logger.info(f"Session verified for {user.get('username')}")
        return True

    def schedule(self, page: Optional[str] = None,
                 on_complete: Optional[Callable[[bool], None]] = None,
                 delay: float = GUARD_DELAY) -> threading.Timer:
        """Run verify(page) after delay on a background timer, then on_complete(result)."""
        def run():
            result = self.verify(page)
            if on_complete is not None:
                on_complete(result)

        timer = threading.Timer(delay, run)
        timer.daemon = True
        timer.start()
        return timer

    def _fail(self, reason: str) -> bool:
        logger.warning(f"Session guard failed: {reason}")
        self.context.state.guard_outcome = GuardOutcome.FAILED
        self.context.clear_local_state()
        self.context.redirect_to_login()
        return False
