"""Profile and account routes."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from campusknot.api.deps import get_current_user, get_db
from campusknot.models.user import ProfileUpdate, SelfProfile, UserStats
from campusknot.services import user_service
from campusknot.utils.database import UserDB
from campusknot.utils.errors import ValidationError

router = APIRouter(tags=["profile"])


@router.put("/profile")
def update_profile(
    body: ProfileUpdate, user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)
) -> Dict[str, SelfProfile]:
    """Partially update the caller's profile."""
    return {"user": user_service.update_profile(session, user, body)}


@router.post("/profile/photo")
async def upload_photo(
    photo: Optional[UploadFile] = File(default=None),
    user: UserDB = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> Dict[str, str]:
    """Replace the caller's profile photo."""
    if photo is None:
        raise ValidationError("No file uploaded")
    content = await photo.read()
    url = user_service.upload_photo(session, user, content, photo.filename, photo.content_type)
    return {"photo": url}


@router.get("/stats", response_model=UserStats)
def stats(user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)) -> UserStats:
    return user_service.get_stats(session, user)


@router.post("/account/deactivate")
def deactivate(user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)) -> Dict[str, object]:
    """Hide the caller's account until they log in again."""
    user_service.deactivate_account(session, user)
    return {"success": True, "message": "Account deactivated"}


@router.delete("/account")
def delete_account(user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)) -> Dict[str, object]:
    """Permanently delete the caller's account and everything attached to it."""
    user_service.delete_account(session, user)
    return {"success": True, "message": "Account deleted permanently"}
