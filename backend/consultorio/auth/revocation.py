"""JWT token revocation using a Redis blacklist.

Tokens are revoked on logout and stay blacklisted until their natural
expiry. A user-wide flag revokes every token of a user at once (password
change, deactivation).
"""

import logging
import time

import redis.asyncio as redis

from consultorio.utils.redis import get_redis

logger = logging.getLogger(__name__)


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    async def revoke_token(self, token: str, expires_at: float) -> bool:
        """Add token to revocation list.

        Args:
            token: JWT token to revoke
            expires_at: Unix timestamp when token naturally expires

        Returns:
            True if successfully revoked
        """
        # No need to store after natural expiry
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            return True

        try:
            await self._redis.setex(f"revoked:{token}", ttl, str(int(time.time())))
            return True
        except redis.RedisError:
            logger.exception("Failed to revoke token")
            return False

    async def is_revoked(self, token: str) -> bool:
        try:
            return await self._redis.exists(f"revoked:{token}") > 0
        except redis.RedisError:
            logger.exception("Failed to check token revocation")
            # Fail closed for security
            return True

    async def revoke_all_user_tokens(self, user_id: str, duration: int = 86400) -> bool:
        """Revoke every token issued to `user_id` before now.

        Args:
            user_id: User ID to revoke tokens for
            duration: How long to keep the flag (should cover the token lifetime)
        """
        try:
            await self._redis.setex(f"revoked:user:{user_id}", duration, repr(time.time()))
            return True
        except redis.RedisError:
            logger.exception("Failed to revoke user tokens")
            return False

    async def is_user_revoked(self, user_id: str, issued_at: float | None = None) -> bool:
        """Whether tokens of `user_id` were revoked wholesale.

        With `issued_at`, only tokens issued before the revocation count.
        Both sides carry sub-second precision.
        """
        try:
            revoked_at = await self._redis.get(f"revoked:user:{user_id}")
        except redis.RedisError:
            logger.exception("Failed to check user revocation")
            return True
        if revoked_at is None:
            return False
        if issued_at is None:
            return True
        return issued_at < float(revoked_at)


async def get_token_revocation() -> TokenRevocation:
    """FastAPI dependency."""
    return TokenRevocation(await get_redis())
