from datetime import timedelta
from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from ...core import security
from ...core.auth import authenticate_user
from ...core.errors import AuthError
from ...core.timeutils import utc_now
from ...db.session import get_db
from ...db import models, schemas
from ...config import get_settings
from ...services import admin as admin_service
from ...services import verification_service
from .. import deps


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=schemas.TokenResponse,
    dependencies=[Depends(deps.rate_limit("LOGIN"))],
)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user or user.profile is None:
        raise AuthError("Invalid credentials", "INVALID_CREDENTIALS")
    settings = get_settings()
    token = security.create_access_token(
        {"sub": str(user.id), "role": user.profile.role.value},
        timedelta(minutes=settings.jwt_expire_min),
    )
    user.last_login_at = utc_now()
    db.commit()
    return schemas.TokenResponse(access_token=token, user=user.profile)


@router.post(
    "/register",
    response_model=schemas.UserProfile,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(deps.rate_limit("REGISTER"))],
)
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    profile = admin_service.register_student(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        phone=payload.phone,
    )
    verification_service.send_verification(db, profile.email)
    return profile


@router.get("/me", response_model=schemas.UserProfile)
def me(current: models.UserProfile = Depends(deps.get_current_profile)):
    return current


@router.patch("/me", response_model=schemas.UserProfile)
def update_me(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    values = payload.model_dump(exclude_unset=True)
    if "name" in values:
        current.user.name = values.pop("name")
    for field, value in values.items():
        setattr(current, field, value)
    db.commit()
    db.refresh(current)
    return current


@router.post(
    "/send-verification",
    response_model=schemas.SendVerificationResponse,
    response_model_exclude_none=True,
)
def send_verification(payload: schemas.SendVerificationRequest, db: Session = Depends(get_db)):
    return verification_service.send_verification(db, payload.email)


@router.get("/verify-email-custom")
def verify_email(token: str | None = None, db: Session = Depends(get_db)):
    return RedirectResponse(verification_service.verify(db, token), status_code=status.HTTP_302_FOUND)
