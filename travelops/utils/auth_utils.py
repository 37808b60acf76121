"""
Role helpers for the signed-in user.

Users carry a `type` of admin, semiadmin or basic.
"""
import json
import logging
from functools import wraps
from typing import Optional

from travelops.services.api_client import FORBIDDEN_MESSAGE, ForbiddenError
from travelops.storage import USER_KEY

logger = logging.getLogger(__name__)

ROLE_ADMIN = 'admin'
ROLE_SEMIADMIN = 'semiadmin'
ROLE_BASIC = 'basic'

EDITOR_ROLES = (ROLE_ADMIN, ROLE_SEMIADMIN)


def get_user(storage) -> dict:
    """Stored user profile, or {} when there is none or it can't be parsed."""
    raw = storage.get_item(USER_KEY) or '{}'
    try:
        user = json.loads(raw)
    except ValueError:
        return {}
    return user if isinstance(user, dict) else {}


def user_role(user: Optional[dict]) -> Optional[str]:
    return (user or {}).get('type')


def is_admin(user: Optional[dict]) -> bool:
    return user_role(user) == ROLE_ADMIN


def can_edit(user: Optional[dict]) -> bool:
    return user_role(user) in EDITOR_ROLES


def role_required(*roles):
    """
    Decorator for methods of objects with a `context` attribute: the current
    user's type must be one of roles, otherwise ForbiddenError is raised.
    The session itself is left alone.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(self, *args, **kwargs):
            user = get_user(self.context.local_storage)
            if user_role(user) not in roles:
                logger.warning(f"{f.__name__} denied for {user.get('username', 'anonymous')} "
                               f"(type: {user_role(user)})")
                raise ForbiddenError(FORBIDDEN_MESSAGE, status=403)
            return f(self, *args, **kwargs)
        return decorated_function
    return decorator
