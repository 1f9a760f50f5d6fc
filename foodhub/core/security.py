"""
Password Hashing and Bearer Tokens

Passwords are hashed with bcrypt through passlib. Bearer tokens are signed,
timestamped payloads ({"id", "userType"}) produced by itsdangerous; their
lifetime is enforced on decode through ``max_age``.
"""

import logging
from functools import lru_cache
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext

from foodhub.core.config import get_settings
from foodhub.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_SALT = "foodhub-access-token"


@lru_cache()
def _password_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.bcrypt_rounds,
    )


def hash_password(password: str) -> str:
    return _password_context().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_context().verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be identified")
        return False


def _token_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().secret_key, salt=TOKEN_SALT)


def create_access_token(user_id: int, user_type: Any) -> str:
    """Issue a signed bearer token for a user id and role."""
    role = getattr(user_type, "value", user_type)
    return _token_serializer().dumps({"id": user_id, "userType": role})


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a bearer token and return its payload.

    Raises:
        AuthenticationError: If the token is expired, tampered with or malformed
    """
    settings = get_settings()
    try:
        payload = _token_serializer().loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired:
        raise AuthenticationError("Not authorized, token expired")
    except BadSignature as e:
        logger.info(f"Token verification failed: {e}")
        raise AuthenticationError("Not authorized, token failed")

    if not isinstance(payload, dict) or "id" not in payload:
        raise AuthenticationError("Not authorized, token failed")
    return payload
