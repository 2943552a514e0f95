from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt
from passlib.context import CryptContext

from ..config import get_settings
from .constants import EMAIL_VERIFICATION_TTL

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
ALGORITHM = "HS256"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def _verification_secret() -> str:
    settings = get_settings()
    return settings.auth_secret or settings.jwt_secret


def create_verification_token(email: str, user_id: int) -> str:
    expire = datetime.now(timezone.utc) + EMAIL_VERIFICATION_TTL
    payload = {"email": email, "userId": user_id, "exp": expire}
    return jwt.encode(payload, _verification_secret(), algorithm=ALGORITHM)


def decode_verification_token(token: str) -> Dict[str, Any]:
    """Raises ``jose.JWTError`` for bad signatures and expired tokens."""
    return jwt.decode(token, _verification_secret(), algorithms=[ALGORITHM])
