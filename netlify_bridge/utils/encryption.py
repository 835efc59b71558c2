"""
Encryption and cryptographic utilities.

This module provides access-token encryption for the key-value store,
HMAC signing of connect links, constant-time secret comparison and
verification of Netlify's signed webhook requests.
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional

import jwt
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from netlify_bridge.config.constants import NETLIFY_SIGNATURE_ISSUER
from netlify_bridge.utils.logger import get_logger

logger = get_logger(__name__)

KEY_DERIVATION_SALT = b"netlify_bridge_token_encryption"
KEY_DERIVATION_ITERATIONS = 100000


class EncryptionError(Exception):
    """Custom exception for encryption-related errors."""
    pass


class TokenCipher:
    """
    Symmetric encryption of access tokens at rest.

    The Fernet key is derived from the configured encryption key with
    PBKDF2 so any sufficiently random string can be configured.
    """

    def __init__(self, encryption_key: str):
        """
        Initialize the cipher.

        Args:
            encryption_key: Secret configured for the service

        Raises:
            EncryptionError: If no key is configured
        """
        if not encryption_key:
            raise EncryptionError("Encryption key is not configured")

        self._fernet = Fernet(self._derive_key(encryption_key))

    @staticmethod
    def _derive_key(encryption_key: str) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=KEY_DERIVATION_SALT,
            iterations=KEY_DERIVATION_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(encryption_key.encode("utf-8")))

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt text data.

        Args:
            plaintext: Text to encrypt

        Returns:
            URL-safe ciphertext

        Raises:
            EncryptionError: If encryption fails
        """
        if not plaintext:
            raise EncryptionError("Cannot encrypt empty text")

        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt text data.

        Raises:
            EncryptionError: If the ciphertext is corrupt or the key is wrong
        """
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except (InvalidToken, ValueError) as e:
            logger.error("Text decryption failed", error_type=type(e).__name__)
            raise EncryptionError(
                "Decryption failed. This could happen when an incorrect encryption key is used"
            ) from e


def hmac_signature(data: str, secret: str) -> str:
    """
    Generate HMAC signature for data.

    Args:
        data: Data to sign
        secret: Secret key for signing

    Returns:
        Hex encoded HMAC-SHA256 signature
    """
    return hmac.new(
        secret.encode("utf-8"),
        data.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_hmac_signature(data: str, signature: Optional[str], secret: str) -> bool:
    """Check a signature produced by hmac_signature."""
    if not signature or not secret:
        return False
    return constant_time_compare(hmac_signature(data, secret), signature)


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.

    Empty or missing values never match.
    """
    if not a or not b:
        return False
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def generate_state_id(length: int) -> str:
    """Random hexadecimal identifier of the given length."""
    return secrets.token_hex((length + 1) // 2)[:length]


def verify_netlify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify the JWS Netlify attaches to signed outgoing webhooks.

    The token is HS256 signed with the hook secret, issued by "netlify"
    and carries the hex SHA-256 digest of the request body.

    Args:
        body: Raw request body
        signature: Value of the signature header
        secret: Secret configured on the hook

    Returns:
        True when the signature is valid for this body
    """
    if not signature:
        return False

    try:
        claims = jwt.decode(
            signature,
            secret,
            algorithms=["HS256"],
            issuer=NETLIFY_SIGNATURE_ISSUER,
        )
    except jwt.InvalidTokenError as e:
        logger.warning("Webhook signature rejected", reason=str(e))
        return False

    return constant_time_compare(claims.get("sha256"), hashlib.sha256(body).hexdigest())


__all__ = [
    "TokenCipher",
    "EncryptionError",
    "hmac_signature",
    "verify_hmac_signature",
    "constant_time_compare",
    "generate_state_id",
    "verify_netlify_signature",
]
