"""
Login, logout and identity calls for the panel.
"""
import logging

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from travelops.auth.session import SessionContext
from travelops.services.api_client import LOGIN_PATH, ApiClient, ApiError, error_message

logger = logging.getLogger(__name__)

LOGOUT_PATH = '/api/logout'
ME_PATH = '/api/me'

LOGIN_FAILED_MESSAGE = 'Login gagal'
MISSING_CREDENTIALS_MESSAGE = 'Username dan password wajib diisi'

# Time the farewell message stays up before returning to the login page
LOGOUT_DELAY = 1.5


class LoginError(ApiError):
    """Raised when the server refuses the credentials or the login call fails."""
    pass


class AuthService:
    """Signs a user in and out of the panel."""

    def __init__(self, context: SessionContext, client: ApiClient, logout_delay: float = LOGOUT_DELAY):
        self.context = context
        self.client = client
        self.logout_delay = logout_delay

    def is_logged_in(self) -> bool:
        return bool(self.context.current_token())

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True
    )
    def _post_login(self, username: str, password: str) -> requests.Response:
        """POST the credentials, retrying once on connection problems."""
        return self.context.http.post(
            self.context.url(LOGIN_PATH),
            json={'username': username, 'password': password},
            headers={'Content-Type': 'application/json'},
            timeout=self.context.request_timeout
        )

    def login(self, username: str, password: str) -> dict:
        """
        Sign in and make the returned user the current session.

        Args:
            username: Account name (surrounding whitespace ignored)
            password: Account password (surrounding whitespace ignored)

        Returns:
            The user profile returned by the server (includes the token)

        Raises:
            LoginError: On missing credentials, a rejected login or a network failure
        """
        username = (username or '').strip()
        password = (password or '').strip()
        if not username or not password:
            raise LoginError(MISSING_CREDENTIALS_MESSAGE)

        try:
            response = self._post_login(username, password)
        except requests.RequestException as e:
            logger.error(f"Login request failed: {e}")
            raise LoginError(f"{LOGIN_FAILED_MESSAGE}: {e}")

        if not response.ok:
            message = error_message(response, LOGIN_FAILED_MESSAGE, LOGIN_FAILED_MESSAGE)
            logger.warning(f"Login rejected for {username}: HTTP {response.status_code}")
            raise LoginError(message, status=response.status_code)

        try:
            user = response.json()
        except ValueError:
            raise LoginError(f"{LOGIN_FAILED_MESSAGE}: invalid server response")

        if not isinstance(user, dict) or not user.get('token'):
            raise LoginError(f"{LOGIN_FAILED_MESSAGE}: no token in server response")

        self.context.store_session(user['token'], user)
        logger.info(f"Logged in as {user.get('username', username)} ({user.get('type', 'unknown')})")
        return user

    def logout(self) -> None:
        """Sign out: tell the server, clear local state and return to the login page."""
        user = self.context.current_user() or {}
        display_name = user.get('name') or user.get('username') or 'User'
        token = self.context.current_token()

        if token:
            try:
                self.context.http.post(
                    self.context.url(LOGOUT_PATH),
                    headers=self.context.auth_headers(token),
                    timeout=self.context.request_timeout
                )
            except requests.RequestException as e:
                # The local session is cleared regardless
                logger.warning(f"Logout call failed: {e}")

        logger.info(f"User {display_name} logging out")
        self.context.end_session(f"Sampai Jumpa, {display_name}!", delay=self.logout_delay)

    def me(self) -> dict:
        return self.client.get(ME_PATH)
