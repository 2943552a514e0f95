import hmac
from typing import Annotated
from fastapi import Depends, Header, Request, Response
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from ..config import get_settings
from ..db.session import get_db
from ..db.models import UserProfile, UserRole
from ..core.errors import AuthError, ConfigurationError, ForbiddenError, RateLimitError
from ..core.rate_limit import (
    RATE_LIMITS,
    client_identifier,
    get_rate_limiter,
    rate_limit_headers,
    set_rate_headers,
)
from ..core.security import ALGORITHM


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_current_profile(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> UserProfile:
    settings = get_settings()
    if not token:
        raise AuthError("Authentication required")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise AuthError("Could not validate credentials") from exc
    user_id = payload.get("sub")
    if user_id is None:
        raise AuthError("Could not validate credentials")
    profile = db.query(UserProfile).filter_by(user_id=int(user_id)).first()
    if profile is None:
        raise AuthError("Could not validate credentials")
    return profile


def require_roles(*roles: str):
    def dependency(profile: Annotated[UserProfile, Depends(get_current_profile)]) -> UserProfile:
        if profile.role not in roles:
            raise ForbiddenError("Insufficient permissions", "FORBIDDEN")
        return profile

    return dependency


def is_staff(profile: UserProfile) -> bool:
    return profile.role in (UserRole.admin, UserRole.instructor)


def ensure_self_or_staff(profile: UserProfile, student_profile_id: int) -> None:
    if profile.id != student_profile_id and not is_staff(profile):
        raise ForbiddenError("You can only access your own records", "FORBIDDEN")


def verify_cron_secret(authorization: Annotated[str | None, Header()] = None) -> None:
    secret = get_settings().cron_secret
    if not secret:
        raise ConfigurationError("Cron secret is not configured", "CRON_NOT_CONFIGURED")
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {secret}"):
        raise AuthError("Unauthorized", "UNAUTHORIZED")


def rate_limit(bucket: str):
    config = RATE_LIMITS[bucket]

    def dependency(request: Request, response: Response) -> None:
        key = f"{bucket}:{client_identifier(request)}"
        decision = get_rate_limiter().hit(key, config)
        if not decision.allowed:
            raise RateLimitError(
                "Too many requests, please try again later",
                "RATE_LIMITED",
                headers=rate_limit_headers(decision),
            )
        set_rate_headers(response, decision)

    return dependency
