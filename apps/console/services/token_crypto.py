"""Шифрование секретов в system_settings (Fernet)."""
import base64
import logging
import re
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

# Fernet tokens always start with the version byte 0x80
_FERNET_PREFIX = "gAAAAA"
# mask_token output
_MASKED_RE = re.compile(r"^\*{4}.{0,4}$")


def _get_fernet(secret: str) -> Fernet:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"misan_settings",
        iterations=100000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
    return Fernet(key)


def is_encrypted(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(_FERNET_PREFIX)


def encrypt_secret(plain: str, encryption_key: str) -> str:
    if not plain:
        return ""
    f = _get_fernet(encryption_key)
    return f.encrypt(plain.encode()).decode()


def decrypt_secret(cipher: Optional[str], encryption_key: str) -> str:
    """Plaintext of a stored secret. Values saved before encryption are returned unchanged."""
    if not cipher:
        return ""
    if not is_encrypted(cipher):
        return cipher
    try:
        return _get_fernet(encryption_key).decrypt(cipher.encode()).decode()
    except InvalidToken:
        logger.warning("Stored secret cannot be decrypted with the current key")
        return ""


def mask_token(token: Optional[str]) -> str:
    if not token or len(token) < 4:
        return "****"
    return "****" + token[-4:]


def is_masked(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(_MASKED_RE.match(value))
