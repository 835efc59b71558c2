"""
OAuth State Repository
======================

Anti-CSRF states for the Netlify OAuth flow. A state has the form
`<random-id>_<userID>` and is stored under itself as both key and value.
"""

from typing import Optional

from redis.asyncio import Redis

from netlify_bridge.config.constants import OAUTH_STATE_RANDOM_LENGTH, OAUTH_STATE_SEPARATOR
from netlify_bridge.utils.encryption import generate_state_id

from .kv_repository import KVRepository


class OAuthStateRepository(KVRepository):
    """Single-use OAuth states"""

    def __init__(self, redis_client: Redis, ttl_seconds: int, key_prefix: str = ""):
        super().__init__(redis_client, key_prefix=key_prefix, default_ttl=ttl_seconds)

    async def create_state(self, user_id: str) -> str:
        """Generate and store a new state bound to user_id."""
        state = f"{generate_state_id(OAUTH_STATE_RANDOM_LENGTH)}{OAUTH_STATE_SEPARATOR}{user_id}"
        await self.set_value(state, state)
        return state

    async def consume_state(self, state: str) -> Optional[str]:
        """
        Fetch and delete a stored state

        Returns:
            The stored value, or None if the state was never issued,
            already used or expired
        """
        if not state:
            return None
        return await self.consume_value(state)

    @staticmethod
    def user_id_from_state(state: str) -> Optional[str]:
        """The user id a state was issued for."""
        _, separator, user_id = state.partition(OAUTH_STATE_SEPARATOR)
        if not separator or not user_id:
            return None
        return user_id
