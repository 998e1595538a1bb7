"""
Encrypted tokens for invitation and password reset links

The link token is AES-256-GCM over a small JSON payload, packed as
"iv:tag:ciphertext" (hex) and then base64url encoded. A separate random
token is stored in the database so a link can be revoked or used once.
"""

import base64
import binascii
import hashlib
import json
import secrets
import time
from datetime import datetime, timedelta
from typing import Optional, TypedDict

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vendors_manager.core.config import settings

IV_LENGTH = 16
TAG_LENGTH = 16


class TokenData(TypedDict):
    email: str
    user_id: int
    type: str  # invitation | reset
    created_at: int  # epoch milliseconds


class TokenDecryptionError(Exception):
    """Token is malformed or was not produced with our key"""


def get_token_expiry_hours(token_type: str) -> int:
    if token_type == "invitation":
        return settings.INVITATION_TOKEN_EXPIRY_HOURS
    return settings.RESET_TOKEN_EXPIRY_HOURS


def _derive_key(secret: Optional[str] = None) -> bytes:
    return hashlib.sha256((secret or settings.TOKEN_ENCRYPTION_KEY).encode()).digest()


def encrypt_token(data: TokenData, secret: Optional[str] = None) -> str:
    iv = secrets.token_bytes(IV_LENGTH)
    sealed = AESGCM(_derive_key(secret)).encrypt(iv, json.dumps(data).encode(), None)
    # AESGCM appends the tag to the ciphertext
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    packed = f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"
    return base64.urlsafe_b64encode(packed.encode()).decode().rstrip("=")


def decrypt_token(token: str, secret: Optional[str] = None) -> TokenData:
    if not token:
        raise TokenDecryptionError("Token is empty")
    try:
        padded = token + "=" * (-len(token) % 4)
        packed = base64.urlsafe_b64decode(padded.encode()).decode()
        iv_hex, tag_hex, data_hex = packed.split(":")
        iv, tag, ciphertext = bytes.fromhex(iv_hex), bytes.fromhex(tag_hex), bytes.fromhex(data_hex)
        plaintext = AESGCM(_derive_key(secret)).decrypt(iv, ciphertext + tag, None)
        payload = json.loads(plaintext)
    except (ValueError, binascii.Error, UnicodeDecodeError, InvalidTag) as e:
        raise TokenDecryptionError("Invalid or tampered token") from e

    if not isinstance(payload, dict) or not {"email", "user_id", "type", "created_at"}.issubset(payload):
        raise TokenDecryptionError("Token payload is incomplete")
    return payload


def is_token_expired(data: TokenData, now_ms: Optional[int] = None) -> bool:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    max_age_ms = get_token_expiry_hours(data["type"]) * 60 * 60 * 1000
    return now_ms - int(data["created_at"]) > max_age_ms


def generate_random_token() -> str:
    """32 random bytes as hex, stored in the database"""
    return secrets.token_hex(32)


def get_token_expiration_date(token_type: str, now: Optional[datetime] = None) -> datetime:
    return (now or datetime.utcnow()) + timedelta(hours=get_token_expiry_hours(token_type))


def build_token_data(email: str, user_id: int, token_type: str) -> TokenData:
    return TokenData(
        email=email,
        user_id=user_id,
        type=token_type,
        created_at=int(time.time() * 1000),
    )
