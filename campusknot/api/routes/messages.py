"""Conversation routes."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from campusknot.api.deps import get_current_user, get_db, get_hub
from campusknot.live.hub import ConnectionHub
from campusknot.models.conversation import Conversation, Message
from campusknot.services import conversation_service
from campusknot.services.matching_service import require_membership
from campusknot.utils import media
from campusknot.utils.database import UserDB
from campusknot.utils.errors import ValidationError

router = APIRouter(prefix="/messages", tags=["messages"])


def _parse_reply_to(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip() or value.strip().lower() in {"null", "undefined"}:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValidationError("Invalid reply target") from e


def _present(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


@router.get("/{match_id}", response_model=Conversation)
def list_messages(
    match_id: int, user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)
) -> Conversation:
    """Get a match and its messages, oldest first."""
    return conversation_service.list_messages(session, match_id, user.id)


@router.post("/{match_id}", status_code=status.HTTP_201_CREATED)
async def send_message(
    match_id: int,
    text: Optional[str] = Form(default=None),
    reply_to_id: Optional[str] = Form(default=None, alias="replyToId"),
    image: Optional[UploadFile] = File(default=None),
    audio: Optional[UploadFile] = File(default=None),
    user: UserDB = Depends(get_current_user),
    session: Session = Depends(get_db),
    hub: ConnectionHub = Depends(get_hub),
) -> Dict[str, Message]:
    """Send a text, image or voice message (multipart form)."""
    has_image = _present(image)
    has_audio = _present(audio)
    conversation_service.validate_content(text, "pending" if has_image else None, "pending" if has_audio else None)
    require_membership(session, match_id, user.id)
    reply_to = _parse_reply_to(reply_to_id)

    image_url = None
    if has_image:
        if not media.is_allowed_image(image.filename, image.content_type):
            raise ValidationError("Only image files allowed")
        image_url = media.save_image(await image.read(), user.id)

    voice_url = None
    if has_audio:
        if not media.is_allowed_audio(audio.filename, audio.content_type):
            raise ValidationError("Only audio files allowed")
        voice_url = media.save_audio(await audio.read(), user.id, audio.filename)

    message = await conversation_service.send_message(
        session, hub, match_id, user.id, text=text, image_url=image_url, voice_url=voice_url, reply_to_id=reply_to
    )
    return {"message": message}


@router.delete("/item/{message_id}")
async def delete_message(
    message_id: int,
    user: UserDB = Depends(get_current_user),
    session: Session = Depends(get_db),
    hub: ConnectionHub = Depends(get_hub),
) -> Dict[str, object]:
    await conversation_service.delete_message(session, hub, message_id, user.id)
    return {"success": True}


@router.post("/{match_id}/read")
async def mark_read(
    match_id: int,
    user: UserDB = Depends(get_current_user),
    session: Session = Depends(get_db),
    hub: ConnectionHub = Depends(get_hub),
) -> Dict[str, object]:
    """Mark the other member's messages in a match as read."""
    count = await conversation_service.mark_read(session, hub, match_id, user.id)
    return {"success": True, "changes": count}
