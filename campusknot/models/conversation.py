"""Message models for CampusKnot."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from campusknot.models.match import Match


class Message(BaseModel):
    """
    Message record with sender and reply preview fields joined in.

    This is both the REST representation and the live-channel payload for
    ``new_message`` / ``message_sent``.
    """

    id: int
    match_id: int
    sender_id: int
    text: str = ""
    image_url: Optional[str] = None
    voice_url: Optional[str] = None
    reply_to_id: Optional[int] = None
    is_read: bool = False
    created_at: datetime
    sender_name: Optional[str] = None
    sender_photo: Optional[str] = None
    reply_to_text: Optional[str] = None
    reply_to_sender: Optional[str] = None


class Conversation(BaseModel):
    """All messages of one match, oldest first."""

    match: Match
    messages: List[Message]
