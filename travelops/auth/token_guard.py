"""
Helpers for inspecting session tokens.

The panel's tokens are JWTs. The client never verifies signatures (the server
does that); it only reads the payload to report expiry.
"""
import base64
import json
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)


def decode_token_payload(token: str) -> dict:
    """
    Decode a JWT payload without signature verification.

    Args:
        token: JWT string (header.payload.signature)

    Returns:
        Decoded payload as dictionary

    Raises:
        ValueError: If the token is not a JWT or its payload can't be decoded
    """
    if not token or not isinstance(token, str):
        raise ValueError("Invalid JWT token: empty value")

    parts = token.split('.')
    if len(parts) != 3:
        raise ValueError("Invalid JWT format: expected 3 parts separated by dots")

    payload_b64 = parts[1]
    # base64 requires a length that is a multiple of 4
    payload_b64 += '=' * (-len(payload_b64) % 4)

    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64.encode('ascii')))
    except (ValueError, UnicodeError) as e:
        logger.debug(f"Failed to decode JWT payload: {e}")
        raise ValueError(f"Invalid JWT token: {e}")

    if not isinstance(payload, dict):
        raise ValueError("Invalid JWT token: payload is not an object")

    return payload


def token_expires_at(token: str) -> Optional[float]:
    """Return the token's `exp` claim, or None when it is missing or unreadable."""
    try:
        exp = decode_token_payload(token).get('exp')
    except ValueError:
        return None
    return float(exp) if isinstance(exp, (int, float)) else None


def token_exp_soon(token: str, skew_sec: int = 120, now: Optional[float] = None) -> bool:
    """
    Check if a token expires within skew_sec seconds.

    Missing `exp` claims and malformed tokens count as expiring.
    """
    exp = token_expires_at(token)
    if exp is None:
        return True

    current_time = time.time() if now is None else now
    time_until_exp = exp - current_time
    if time_until_exp <= skew_sec:
        logger.debug(f"Token expires in {time_until_exp:.1f}s (skew: {skew_sec}s)")
        return True
    return False


def get_token_info(token: str, now: Optional[float] = None) -> dict:
    """
    Summarize a token's lifetime.

    Returns:
        Dictionary with exp, iat, remaining_seconds and is_expired. Malformed
        tokens are reported as expired with an extra 'error' key.
    """
    current_time = time.time() if now is None else now
    try:
        payload = decode_token_payload(token)
    except ValueError as e:
        return {
            'exp': None,
            'iat': None,
            'remaining_seconds': None,
            'is_expired': True,
            'error': str(e)
        }

    exp = payload.get('exp')
    return {
        'exp': exp,
        'iat': payload.get('iat'),
        'remaining_seconds': exp - current_time if exp else None,
        'is_expired': exp < current_time if exp else True
    }
