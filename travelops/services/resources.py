"""
CRUD clients for the panel's dashboards.

Each dashboard (tours, sales, documents, ...) is a thin consumer of
ApiClient over /api/<entity>[/<id>].
"""
import logging
from typing import Any, List, Optional

from travelops.services.api_client import ApiClient
from travelops.utils.auth_utils import ROLE_ADMIN, role_required

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class ResourceClient:
    """
    Args:
        client: API client used for every call
        entity: Path under /api, e.g. 'tours' or 'tracking/deliveries'
    """

    def __init__(self, client: ApiClient, entity: str):
        self.client = client
        self.context = client.context
        self.entity = entity.strip('/')
        self.base_path = f"/api/{self.entity}"

    def collection_path(self) -> str:
        return self.base_path

    def item_path(self, item_id) -> str:
        return f"{self.base_path}/{item_id}"

    def list(self, use_cache: Optional[bool] = None, **filters) -> List[Any]:
        data = self.client.get(self.collection_path(), params=filters or None, use_cache=use_cache)
        return data or []

    def get(self, item_id) -> Any:
        return self.client.get(self.item_path(item_id))

    def create(self, data: dict) -> Any:
        result = self.client.post(self.collection_path(), body=data)
        logger.info(f"Created {self.entity} record")
        return result

    def update(self, item_id, data: dict) -> Any:
        result = self.client.put(self.item_path(item_id), body=data)
        logger.info(f"Updated {self.entity} {item_id}")
        return result

    def delete(self, item_id) -> Any:
        result = self.client.delete(self.item_path(item_id))
        logger.info(f"Deleted {self.entity} {item_id}")
        return result

    def __repr__(self):
        return f"{type(self).__name__}({self.base_path!r})"


class TicketRecapClient(ResourceClient):
    """Ticket recaps are listed and written through their /full variants."""

    def __init__(self, client: ApiClient):
        super().__init__(client, 'ticket_recaps')

    def collection_path(self) -> str:
        return f"{self.base_path}/full"

    def update(self, item_id, data: dict) -> Any:
        return self.client.put(f"{self.item_path(item_id)}/full", body=data)


class UserClient(ResourceClient):

    def __init__(self, client: ApiClient):
        super().__init__(client, 'users')

    @role_required(ROLE_ADMIN)
    def reset_password(self, username: str, password: str, password_confirm: str) -> Any:
        """
        Reset another user's password (admins only).

        Raises:
            ValueError: If the password is too short or the confirmation differs
            ForbiddenError: If the signed-in user is not an admin
        """
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password minimal {MIN_PASSWORD_LENGTH} karakter")
        if password != password_confirm:
            raise ValueError('Password konfirmasi tidak sama')

        return self.client.post(f"{self.item_path(username)}/reset", body={'password': password})


class TrackingClient(ResourceClient):
    """Shipment tracking: deliveries or receivings, plus courier lookups."""

    def check(self, tracking_no: str, courier: Optional[str] = None) -> Any:
        return self.client.get(f"/api/tracking/check/{courier or 'auto'}/{tracking_no}")


def metrics(client: ApiClient, **filters) -> Any:
    """Dashboard summary figures from /api/metrics."""
    return client.get('/api/metrics', params=filters or None)
