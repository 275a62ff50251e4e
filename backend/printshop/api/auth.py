"""Bearer-token authentication.

Tokens are HS256 JWTs whose ``sub`` is a ``users.id``. Routes declare
``user: User = Depends(get_current_user)`` and hand the user on to the
services as the acting principal.
"""
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from printshop.db.session import get_session
from printshop.models.party import User
from printshop.services.errors import Unauthorized

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_MINUTES = int(os.getenv("JWT_EXPIRY_MINUTES", "480"))

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or JWT_EXPIRY_MINUTES),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[str]:
    """Return the user id carried by ``token`` or None if it does not verify."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token: %s", e)
        return None
    return payload.get("sub")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    if credentials is None:
        raise Unauthorized()
    user_id = decode_token(credentials.credentials)
    if not user_id:
        raise Unauthorized()

    session = get_session()
    try:
        user = session.get(User, user_id)
    finally:
        session.close()
    if user is None:
        logger.warning("Token subject has no user row user_id=%s", user_id)
        raise Unauthorized()
    return user
