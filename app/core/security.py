import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_TOKEN_EXPIRE_MINUTES = 60 * 24


def create_access_token(data: dict, expires_minutes: int = ADMIN_TOKEN_EXPIRE_MINUTES) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_admin_token(token: str) -> dict | None:
    """Decode an admin session token; None unless it is valid and carries the admin role"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning("Rejected admin token: %s", e)
        return None

    if payload.get("role") != "admin":
        return None
    return payload
