"""
Access Token Revocation using Redis.

Access tokens are stateless JWTs, so logging out only revokes the stored
refresh token. To make logout effective immediately, the access token's
`jti` is blacklisted here until the token would have expired anyway.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from backend.app.core import redis_client as redis_store

logger = logging.getLogger(__name__)

# Redis key prefix for blacklisted access tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:jti:"


def _remaining_ttl_seconds(payload: Dict[str, Any]) -> int:
    exp = payload.get("exp")
    if exp is None:
        return 0
    remaining = int(exp - datetime.now(timezone.utc).timestamp())
    return max(remaining, 0)


async def revoke_access_token(payload: Dict[str, Any]) -> bool:
    """
    Blacklist a decoded access token by its jti.

    Args:
        payload: Decoded access token claims (must include jti and exp)

    Returns:
        True if the token is revoked (or already expired), False if Redis failed
    """
    jti = payload.get("jti")
    ttl_seconds = _remaining_ttl_seconds(payload)
    if not jti or ttl_seconds == 0:
        return True

    try:
        await redis_store.redis_client.setex(
            f"{TOKEN_BLACKLIST_PREFIX}{jti}",
            ttl_seconds,
            str(payload.get("user_id", ""))  # Store user_id for troubleshooting
        )
        return True
    except Exception:
        logger.warning("Could not blacklist access token jti=%s", jti, exc_info=True)
        return False


async def is_token_revoked(jti: str) -> bool:
    """
    Check if an access token has been revoked.

    Args:
        jti: Token identifier claim

    Returns:
        True if token is revoked, False otherwise
    """
    if not jti:
        return False
    try:
        exists = await redis_store.redis_client.exists(f"{TOKEN_BLACKLIST_PREFIX}{jti}")
        return exists > 0
    except Exception:
        # Fail-open: a Redis outage must not lock every user out
        logger.warning("Token revocation check unavailable", exc_info=True)
        return False
