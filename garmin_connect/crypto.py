"""Password encryption for stored Garmin credentials, using Fernet."""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from garmin_connect.config import Config

logger = logging.getLogger(__name__)


def get_or_create_key() -> bytes:
    """Get encryption key from environment or generate a new one."""
    key = Config.ENCRYPTION_KEY

    if key:
        return key.encode() if isinstance(key, str) else key

    # Generate new key
    key = Fernet.generate_key()
    logger.warning(
        "GARMIN_ENCRYPTION_KEY not set. A new key has been generated.\n"
        "Please save this key to your environment variables:\n"
        f"GARMIN_ENCRYPTION_KEY={key.decode()}"
    )
    return key


def get_fernet(create_key: bool = False) -> Fernet:
    """Get Fernet instance with the encryption key."""
    if create_key:
        key = get_or_create_key()
    else:
        key = Config.ENCRYPTION_KEY
        if not key:
            raise ValueError("GARMIN_ENCRYPTION_KEY is not set")
        key = key.encode() if isinstance(key, str) else key
    return Fernet(key)


def encrypt_password(password: str) -> Optional[str]:
    """Encrypt a password string."""
    if not password:
        return None

    f = get_fernet(create_key=True)
    encrypted = f.encrypt(password.encode())
    return encrypted.decode()


def decrypt_password(encrypted_password: str) -> Optional[str]:
    """Decrypt an encrypted password string."""
    if not encrypted_password:
        return None

    f = get_fernet()
    try:
        decrypted = f.decrypt(encrypted_password.encode())
    except InvalidToken as e:
        logger.error("Failed to decrypt password")
        raise ValueError("Invalid encryption key or corrupted data") from e
    return decrypted.decode()
