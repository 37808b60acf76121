"""
Shared session state for one signed-in client, and the termination path.

Every other piece (session guard, refresh scheduler, API client) holds a
reference to the same SessionContext instead of reaching for globals.
"""
import enum
import json
import logging
import threading
import time
from typing import Callable, List, Optional

import requests

from travelops.config import DEFAULT_LOGIN_PAGE
from travelops.storage import TOKEN_KEY, USER_KEY, MemoryStorage

logger = logging.getLogger(__name__)

# Timing constants (seconds)
INACTIVITY_TIMEOUT = 30 * 60
IDLE_THRESHOLD = 5 * 60
REFRESH_THRESHOLD = 10 * 60
TERMINATION_REDIRECT_DELAY = 1.5

SESSION_EXPIRED_MESSAGE = 'Sesi Anda telah berakhir. Silakan login kembali.'
INACTIVITY_MESSAGE = 'Sesi berakhir karena tidak ada aktivitas selama 30 menit. Silakan login kembali.'


class GuardOutcome(enum.Enum):
    PENDING = 'pending'
    VERIFIED = 'verified'
    SKIPPED = 'skipped'
    FAILED = 'failed'


class SessionStatus(enum.Enum):
    FRESH = 'fresh'
    STALE_TOKEN = 'stale_token'
    IDLE = 'idle'
    EXPIRED = 'expired'


def classify(now: float, last_activity: float, last_refresh: float) -> SessionStatus:
    """
    Classify a session from its activity clock.

    EXPIRED once inactivity exceeds INACTIVITY_TIMEOUT, IDLE once it reaches
    IDLE_THRESHOLD, STALE_TOKEN when the token is REFRESH_THRESHOLD old or
    older, FRESH otherwise.
    """
    idle_time = now - last_activity
    if idle_time > INACTIVITY_TIMEOUT:
        return SessionStatus.EXPIRED
    if idle_time >= IDLE_THRESHOLD:
        return SessionStatus.IDLE
    if now - last_refresh >= REFRESH_THRESHOLD:
        return SessionStatus.STALE_TOKEN
    return SessionStatus.FRESH


class SessionState:
    """Activity clock and lifecycle flags. Not persisted; reset with the client."""

    def __init__(self, now: float):
        self.last_activity = now
        self.last_refresh = now
        self.refresh_count = 0
        self.guard_outcome = GuardOutcome.PENDING
        self.terminated = False

    def __repr__(self):
        return (f"SessionState(last_activity={self.last_activity}, last_refresh={self.last_refresh}, "
                f"guard_outcome={self.guard_outcome.value}, terminated={self.terminated})")


def _default_notify(message: str) -> None:
    logger.warning(message)
    print(f"[TravelOps] {message}")


def _default_navigate(page: str) -> None:
    logger.info(f"Navigating to {page}")


class SessionContext:
    """
    Owner of the session's storages, activity clock and HTTP session.

    Args:
        base_url: Root of the REST API, e.g. http://localhost:3000
        local_storage: Persistent store holding `token` and `user`
        session_storage: Per-process store, cleared wholesale on logout/expiry
        http: requests.Session used for every call
        clock: Returns the current time in epoch seconds
        notify: Shows a message to the user
        navigate: Moves the user to another page
        cache: Optional response cache cleared together with the session
    """

    def __init__(self, base_url: str, local_storage=None, session_storage=None,
                 http: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.time,
                 notify: Optional[Callable[[str], None]] = None,
                 navigate: Optional[Callable[[str], None]] = None,
                 login_page: str = DEFAULT_LOGIN_PAGE,
                 request_timeout: Optional[float] = 30.0,
                 redirect_delay: float = TERMINATION_REDIRECT_DELAY,
                 cache=None):
        self.base_url = base_url.rstrip('/')
        self.local_storage = local_storage if local_storage is not None else MemoryStorage()
        self.session_storage = session_storage if session_storage is not None else MemoryStorage()
        self.http = http if http is not None else requests.Session()
        self.clock = clock
        self.notify = notify or _default_notify
        self.navigate = navigate or _default_navigate
        self.login_page = login_page
        self.request_timeout = request_timeout
        self.redirect_delay = redirect_delay
        self.cache = cache

        self.lock = threading.RLock()
        self.state = SessionState(clock())
        self._navigation_scheduled = False
        self._termination_listeners: List[Callable[[], None]] = []

    # --- URLs and credentials ---

    def url(self, path: str) -> str:
        if path.startswith('http://') or path.startswith('https://'):
            return path
        if not path.startswith('/'):
            path = '/' + path
        return self.base_url + path

    def current_token(self) -> Optional[str]:
        return self.local_storage.get_item(TOKEN_KEY)

    def current_user(self) -> Optional[dict]:
        raw = self.local_storage.get_item(USER_KEY)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            logger.warning("Stored user profile is not valid JSON")
            return None
        return user if isinstance(user, dict) else None

    def auth_headers(self, token: Optional[str] = None) -> dict:
        token = token if token is not None else self.current_token()
        return {'Authorization': f'Bearer {token}'} if token else {}

    # --- Mutations ---

    def store_session(self, token: str, user: dict) -> None:
        """Make token/user the current session and restart the activity clock."""
        with self.lock:
            self.local_storage.set_item(USER_KEY, json.dumps(user))
            self.local_storage.set_item(TOKEN_KEY, token)
            now = self.clock()
            self.state.last_activity = now
            self.state.last_refresh = now
            self.state.guard_outcome = GuardOutcome.VERIFIED
            self.state.terminated = False
            self._navigation_scheduled = False

    def replace_token(self, token: str) -> bool:
        """Store a renewed token. Returns False, storing nothing, once the session has ended."""
        with self.lock:
            if self.state.terminated:
                return False
            self.local_storage.set_item(TOKEN_KEY, token)
            self.state.last_refresh = self.clock()
            self.state.refresh_count += 1
            return True

    def touch(self) -> None:
        """Record user activity now."""
        self.state.last_activity = self.clock()

    def clear_local_state(self) -> None:
        self.local_storage.clear()
        self.session_storage.clear()
        if self.cache is not None:
            self.cache.clear()

    # --- Termination ---

    def add_termination_listener(self, listener: Callable[[], None]) -> None:
        self._termination_listeners.append(listener)

    def end_session(self, message: str, delay: Optional[float] = None) -> None:
        """
        Clear local state, tell the user, and go to the login page after delay.

        Safe to call repeatedly: storage is cleared on every call, but only the
        first call per session notifies, fires listeners and navigates.
        """
        self.clear_local_state()

        with self.lock:
            first_call = not self._navigation_scheduled
            self._navigation_scheduled = True
            self.state.terminated = True

        if not first_call:
            logger.debug("Session already ended; navigation pending")
            return

        self.notify(message)
        for listener in list(self._termination_listeners):
            listener()
        self.schedule_navigation(self.login_page, self.redirect_delay if delay is None else delay)

    def terminate(self, message: str = SESSION_EXPIRED_MESSAGE) -> None:
        logger.warning(f"Terminating session: {message}")
        self.end_session(message)

    def redirect_to_login(self) -> None:
        """Immediate redirect used when there is no session worth announcing."""
        with self.lock:
            if self._navigation_scheduled:
                return
            self._navigation_scheduled = True
        self.navigate(self.login_page)

    def schedule_navigation(self, page: str, delay: float) -> None:
        if delay <= 0:
            self.navigate(page)
            return
        timer = threading.Timer(delay, self.navigate, args=(page,))
        timer.daemon = True
        timer.start()
