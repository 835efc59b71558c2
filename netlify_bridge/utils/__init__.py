"""
Utilities package for Netlify Bridge.

Logging setup, encryption helpers, message formatting and metrics.
"""

from netlify_bridge.utils.logger import setup_logging, get_logger, bind_context
from netlify_bridge.utils.encryption import (
    TokenCipher,
    EncryptionError,
    constant_time_compare,
    hmac_signature,
    verify_hmac_signature,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "TokenCipher",
    "EncryptionError",
    "constant_time_compare",
    "hmac_signature",
    "verify_hmac_signature",
]
