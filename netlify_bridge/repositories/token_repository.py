"""
Access Token Repository
=======================

Stores each Mattermost user's Netlify access token under
`<userID>_netlifyToken`, encrypted at rest when a cipher is provided.
"""

from typing import Optional

from redis.asyncio import Redis

from netlify_bridge.config.constants import NETLIFY_AUTH_TOKEN_KV_IDENTIFIER
from netlify_bridge.utils.encryption import EncryptionError, TokenCipher

from .exceptions import SerializationError
from .kv_repository import KVRepository


class TokenRepository(KVRepository):
    """Per-user Netlify access tokens"""

    def __init__(self, redis_client: Redis, cipher: Optional[TokenCipher] = None, key_prefix: str = ""):
        super().__init__(redis_client, key_prefix=key_prefix)
        self.cipher = cipher

    @staticmethod
    def token_key(user_id: str) -> str:
        return f"{user_id}{NETLIFY_AUTH_TOKEN_KV_IDENTIFIER}"

    async def save_token(self, user_id: str, access_token: str) -> None:
        """
        Store a user's access token

        Raises:
            SerializationError: If the token cannot be encrypted
        """
        value = access_token
        if self.cipher is not None:
            try:
                value = self.cipher.encrypt(access_token)
            except EncryptionError as e:
                raise SerializationError("Failed to encrypt access token", key=self.token_key(user_id), original_error=e) from e

        await self.set_value(self.token_key(user_id), value)
        self.logger.info("Stored Netlify access token", user_id=user_id, encrypted=self.cipher is not None)

    async def get_token(self, user_id: str) -> Optional[str]:
        """
        Fetch a user's access token

        Returns:
            The decrypted token, or None if the user is not connected

        Raises:
            SerializationError: If the stored token cannot be decrypted
        """
        value = await self.get_value(self.token_key(user_id))
        if not value:
            return None

        if self.cipher is None:
            return value

        try:
            return self.cipher.decrypt(value)
        except EncryptionError as e:
            raise SerializationError(str(e), key=self.token_key(user_id), original_error=e) from e

    async def delete_token(self, user_id: str) -> bool:
        deleted = await self.delete_value(self.token_key(user_id))
        self.logger.info("Deleted Netlify access token", user_id=user_id, existed=deleted)
        return deleted
