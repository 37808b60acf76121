"""
Session handling package: token inspection, page-load guard and token refresh.
"""
from travelops.auth.token_guard import (
    decode_token_payload,
    token_exp_soon,
    get_token_info
)
from travelops.auth.session import (
    SessionContext,
    SessionStatus,
    GuardOutcome,
    classify
)
from travelops.auth.session_guard import SessionGuard
from travelops.auth.refresh_scheduler import TokenRefreshScheduler

__all__ = [
    'decode_token_payload',
    'token_exp_soon',
    'get_token_info',
    'SessionContext',
    'SessionStatus',
    'GuardOutcome',
    'classify',
    'SessionGuard',
    'TokenRefreshScheduler'
]
