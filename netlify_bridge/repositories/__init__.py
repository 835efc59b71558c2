"""
Repository layer for Netlify Bridge.

Key-value records kept in Redis: user access tokens, OAuth states and
channel subscriptions per site.
"""

from .exceptions import RepositoryError, ConnectionError, SerializationError
from .kv_repository import KVRepository
from .token_repository import TokenRepository
from .oauth_state_repository import OAuthStateRepository
from .subscription_repository import SubscriptionRepository, remove_duplicates

__all__ = [
    "RepositoryError",
    "ConnectionError",
    "SerializationError",
    "KVRepository",
    "TokenRepository",
    "OAuthStateRepository",
    "SubscriptionRepository",
    "remove_duplicates",
]
