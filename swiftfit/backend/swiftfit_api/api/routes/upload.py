from fastapi import APIRouter, Depends, File, Form, UploadFile
from ...api import deps
from ...core.constants import UPLOAD_DEFAULT_FOLDER
from ...core.errors import ForbiddenError
from ...db import models
from ...services import storage

router = APIRouter(prefix="/upload", tags=["upload"])


def require_admin(
    current: models.UserProfile = Depends(deps.get_current_profile),
) -> models.UserProfile:
    if current.role != models.UserRole.admin:
        raise ForbiddenError("Admin access required", "ADMIN_REQUIRED")
    return current


@router.post("")
async def upload_file(
    file: UploadFile | None = File(default=None),
    folder: str = Form(default=UPLOAD_DEFAULT_FOLDER),
    _: models.UserProfile = Depends(require_admin),
):
    content = await file.read() if file is not None else None
    return storage.save_upload(
        content,
        content_type=file.content_type if file is not None else None,
        original_name=file.filename if file is not None else None,
        folder=folder,
    )


@router.delete("")
def delete_file(
    url: str | None = None,
    _: models.UserProfile = Depends(require_admin),
):
    storage.remove_media_file(url)
    return {"success": True}
