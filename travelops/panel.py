"""
Wires one panel client together: storage, session context, guard, refresh
scheduler, API client and the dashboard resources.
"""
import logging
import time
from typing import Callable, Dict, Optional

from travelops.auth.refresh_scheduler import TokenRefreshScheduler
from travelops.auth.session import SessionContext
from travelops.auth.session_guard import GUARD_DELAY, SessionGuard
from travelops.auth.token_guard import get_token_info
from travelops.cache import ApiCache
from travelops.config import Config
from travelops.services.api_client import ApiClient
from travelops.services.auth_service import AuthService
from travelops.services.resources import ResourceClient, TicketRecapClient, TrackingClient, UserClient, metrics
from travelops.storage import FileStorage, MemoryStorage

logger = logging.getLogger(__name__)


class Panel:
    """
    One signed-in (or signing-in) back-office client.

    Args:
        config: Settings; read from the environment when omitted
        local_storage: Persistent store; a FileStorage at config.storage_file by default
        http: requests.Session to use (tests pass a mock)
        clock, notify, navigate: Passed through to the SessionContext
    """

    def __init__(self, config: Optional[Config] = None, local_storage=None, http=None,
                 clock: Callable[[], float] = time.time,
                 notify: Optional[Callable[[str], None]] = None,
                 navigate: Optional[Callable[[str], None]] = None):
        self.config = config or Config()
        self.cache = ApiCache(clock=clock)
        self.context = SessionContext(
            base_url=self.config.base_url,
            local_storage=local_storage if local_storage is not None else FileStorage(self.config.storage_file),
            session_storage=MemoryStorage(),
            http=http,
            clock=clock,
            notify=notify,
            navigate=navigate,
            login_page=self.config.login_page,
            request_timeout=self.config.request_timeout,
            cache=self.cache
        )
        self.guard = SessionGuard(self.context, public_pages=(self.config.login_page, self.config.logout_page))
        self.scheduler = TokenRefreshScheduler(self.context)
        self.client = ApiClient(self.context, self.scheduler, cache=self.cache, use_cache=self.config.use_cache)
        self.auth = AuthService(self.context, self.client)

        # Dashboards
        self.tours = ResourceClient(self.client, 'tours')
        self.sales = ResourceClient(self.client, 'sales')
        self.documents = ResourceClient(self.client, 'documents')
        self.telecom = ResourceClient(self.client, 'telecom')
        self.outstanding = ResourceClient(self.client, 'outstanding')
        self.ticket_recaps = TicketRecapClient(self.client)
        self.targets = ResourceClient(self.client, 'targets')
        self.deliveries = TrackingClient(self.client, 'tracking/deliveries')
        self.receivings = TrackingClient(self.client, 'tracking/receivings')
        self.users = UserClient(self.client)
        self.regions = ResourceClient(self.client, 'regions')

    @property
    def dashboards(self) -> Dict[str, ResourceClient]:
        return {
            'tours': self.tours,
            'sales': self.sales,
            'documents': self.documents,
            'telecom': self.telecom,
            'outstanding': self.outstanding,
            'ticket_recaps': self.ticket_recaps,
            'targets': self.targets,
            'deliveries': self.deliveries,
            'receivings': self.receivings,
        }

    def open_page(self, page: str) -> bool:
        """Run the session guard for page, then start the refresh scheduler."""
        if not self.guard.verify(page):
            return False
        self.scheduler.start()
        return True

    def open_page_later(self, page: str, delay: float = GUARD_DELAY):
        """Like open_page, with the guard deferred by delay seconds."""
        def on_complete(verified: bool) -> None:
            if verified:
                self.scheduler.start()

        return self.guard.schedule(page, on_complete=on_complete, delay=delay)

    def metrics(self, **filters):
        return metrics(self.client, **filters)

    def token_info(self) -> Optional[dict]:
        token = self.context.current_token()
        return get_token_info(token, now=self.context.clock()) if token else None

    def close(self) -> None:
        self.scheduler.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
