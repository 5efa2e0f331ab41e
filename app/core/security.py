from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import os
import hashlib
import binascii
from jose import jwt
from app.core.config import settings, SERVER_INSTANCE_ID

# PBKDF2 configuration
PBKDF2_ITERATIONS = 100000
SALT_LENGTH = 32
HASH_LENGTH = 64


def _encode_token(subject: str, expire: datetime, secret_key: str, token_type: str) -> str:
    to_encode = {
        "exp": int(expire.timestamp()),
        "sub": str(subject),
        "type": token_type,
        "instance_id": SERVER_INSTANCE_ID,
    }
    return jwt.encode(to_encode, secret_key, algorithm=settings.ALGORITHM)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return _encode_token(subject, expire, settings.SECRET_KEY, "access")


def create_refresh_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )
    return _encode_token(subject, expire, settings.REFRESH_SECRET_KEY, "refresh")


def verify_token(token: str, is_refresh: bool = False) -> Optional[dict]:
    """
    Decode a JWT and return its payload, or None when it is invalid,
    expired, or was issued by another server instance.
    """
    secret_key = settings.REFRESH_SECRET_KEY if is_refresh else settings.SECRET_KEY
    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.JWTError:
        return None

    if payload.get("instance_id") != SERVER_INSTANCE_ID:
        return None
    return payload


def hash_password(password: str, salt: Optional[bytes] = None) -> Tuple[bytes, bytes]:
    """Hash a password using PBKDF2 with SHA-256. Returns (hash, salt)."""
    if salt is None:
        salt = os.urandom(SALT_LENGTH)
    dk = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt,
        PBKDF2_ITERATIONS,
        dklen=HASH_LENGTH
    )
    return dk, salt


def get_password_hash(password: str) -> str:
    """Return "salt:hash" with both parts hex-encoded."""
    hashed, salt = hash_password(password)
    return f"{salt.hex()}:{hashed.hex()}"


def verify_password(plain_password: str, stored_hash: str) -> bool:
    try:
        salt_hex, hash_hex = stored_hash.split(':')
        salt = binascii.unhexlify(salt_hex)
        expected = binascii.unhexlify(hash_hex)
    except (ValueError, binascii.Error):
        return False
    new_hash, _ = hash_password(plain_password, salt)
    return new_hash == expected
