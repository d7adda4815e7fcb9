"""
Credential encryption and password hashing helpers.

Vendor API keys are stored Fernet-encrypted and only decrypted when a
capability grant is built. Passwords are stored as PBKDF2-HMAC-SHA256
digests with a per-password random salt.
"""

import base64
import hmac
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import settings


PASSWORD_SCHEME = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 390000


def _get_fernet() -> Fernet:
    """Get Fernet instance from encryption key."""
    key = settings.ENCRYPTION_KEY

    # If key is not 32 bytes, derive a key using PBKDF2
    if len(key) != 32:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=b"officer_portal_credential_salt",
            iterations=100000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(key.encode()))
    else:
        key = base64.urlsafe_b64encode(key.encode())

    return Fernet(key)


def encrypt_secret(secret: str) -> str:
    """
    Encrypt a vendor credential for storage.

    Args:
        secret: Plain text credential

    Returns:
        Base64-encoded encrypted credential
    """
    fernet = _get_fernet()
    return fernet.encrypt(secret.encode()).decode()


def decrypt_secret(encrypted_secret: Optional[str]) -> Optional[str]:
    """
    Decrypt a stored vendor credential.

    Returns None when nothing is stored or the ciphertext was written with a
    different ENCRYPTION_KEY.
    """
    if not encrypted_secret:
        return None
    fernet = _get_fernet()
    try:
        return fernet.decrypt(encrypted_secret.encode()).decode()
    except InvalidToken:
        return None


def mask_secret(secret: Optional[str]) -> str:
    """Render a credential for listings without revealing it."""
    if not secret:
        return ""
    if len(secret) <= 6:
        return "*" * len(secret)
    return f"{secret[:3]}{'*' * (len(secret) - 6)}{secret[-3:]}"


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode())


def hash_password(password: str) -> str:
    """Hash a password as ``scheme$iterations$salt$digest``."""
    salt = os.urandom(16)
    digest = _derive(password, salt, PASSWORD_ITERATIONS)
    return "$".join(
        [
            PASSWORD_SCHEME,
            str(PASSWORD_ITERATIONS),
            base64.urlsafe_b64encode(salt).decode(),
            base64.urlsafe_b64encode(digest).decode(),
        ]
    )


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a password against a stored hash in constant time."""
    try:
        scheme, iterations, salt_b64, digest_b64 = str(password_hash or "").split("$")
    except ValueError:
        return False
    if scheme != PASSWORD_SCHEME:
        return False
    try:
        salt = base64.urlsafe_b64decode(salt_b64.encode())
        expected = base64.urlsafe_b64decode(digest_b64.encode())
        actual = _derive(password, salt, int(iterations))
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(actual, expected)
