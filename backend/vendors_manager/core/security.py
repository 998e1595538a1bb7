"""
Password hashing, password rules and access tokens
"""
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import bcrypt
import jwt as pyjwt

from vendors_manager.core.config import settings

JWT_ALGORITHM = "HS256"

PASSWORD_MIN_LENGTH = 8
SPECIAL_CHARS_REGEX = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


class InvalidAccessToken(Exception):
    """Raised when a bearer token cannot be trusted"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ============================================================
# Password hashing
# ============================================================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Not a bcrypt hash
        return False


def validate_password_strength(password: str) -> List[str]:
    """Return the unmet password rules, empty when the password is acceptable"""
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not SPECIAL_CHARS_REGEX.search(password):
        errors.append("Password must contain at least one special character")
    return errors


# ============================================================
# JWT
# ============================================================

def create_access_token(user_id: int, email: str, expires_minutes: Optional[int] = None) -> str:
    now = datetime.utcnow()
    expire = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": expire,
    }
    return pyjwt.encode(payload, settings.SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return pyjwt.decode(token, settings.SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except pyjwt.ExpiredSignatureError:
        raise InvalidAccessToken("Token expired")
    except pyjwt.InvalidTokenError:
        raise InvalidAccessToken("Invalid token")
