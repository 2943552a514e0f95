from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...config import get_settings

router = APIRouter(prefix="/studio-info", tags=["studio-info"])


def _get_or_create(db: Session) -> models.StudioInfo:
    info = db.query(models.StudioInfo).order_by(models.StudioInfo.id).first()
    if info is None:
        info = models.StudioInfo(
            cancellation_window_hours=get_settings().cancellation_window_hours,
        )
        db.add(info)
        db.commit()
        db.refresh(info)
    return info


@router.get("", response_model=schemas.StudioInfo)
def get_studio_info(db: Session = Depends(get_db)):
    return _get_or_create(db)


@router.put("", response_model=schemas.StudioInfo)
def update_studio_info(
    payload: schemas.StudioInfoUpdate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    info = _get_or_create(db)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(info, field, value)
    db.commit()
    db.refresh(info)
    return info
