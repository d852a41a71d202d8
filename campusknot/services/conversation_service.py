"""Conversation store for CampusKnot."""

from typing import Any, Optional

import sentry_sdk
from sqlalchemy import select, update
from sqlalchemy.orm import Session, aliased

from campusknot.config import settings
from campusknot.live.hub import ConnectionHub, Event
from campusknot.models.conversation import Conversation, Message
from campusknot.models.match import Match
from campusknot.services.matching_service import require_membership
from campusknot.utils.database import MatchDB, MessageDB, UserDB
from campusknot.utils.errors import ForbiddenError, NotFoundError, ValidationError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)


def _message_query():
    sender = aliased(UserDB)
    reply = aliased(MessageDB)
    reply_sender = aliased(UserDB)
    return (
        select(MessageDB, sender.name, sender.photo, reply.text, reply_sender.name)
        .join(sender, MessageDB.sender_id == sender.id)
        .outerjoin(reply, MessageDB.reply_to_id == reply.id)
        .outerjoin(reply_sender, reply.sender_id == reply_sender.id)
    )


def _to_message(row: Any) -> Message:
    message, sender_name, sender_photo, reply_to_text, reply_to_sender = row
    return Message(
        id=message.id,
        match_id=message.match_id,
        sender_id=message.sender_id,
        text=message.text or "",
        image_url=message.image_url,
        voice_url=message.voice_url,
        reply_to_id=message.reply_to_id,
        is_read=message.is_read,
        created_at=message.created_at,
        sender_name=sender_name,
        sender_photo=sender_photo,
        reply_to_text=reply_to_text,
        reply_to_sender=reply_to_sender,
    )


def get_message(session: Session, message_id: int) -> Message:
    """
    Get one message with sender and reply fields joined in.

    Raises:
        NotFoundError: If the message does not exist
    """
    row = session.execute(_message_query().where(MessageDB.id == message_id)).first()
    if row is None:
        raise NotFoundError("Message not found")
    return _to_message(row)


def list_messages(session: Session, match_id: int, caller_id: int) -> Conversation:
    """
    Get a match and all its messages, oldest first.

    Raises:
        ForbiddenError: If the caller is not a member of the match
    """
    match = require_membership(session, match_id, caller_id)
    rows = session.execute(
        _message_query().where(MessageDB.match_id == match_id).order_by(MessageDB.created_at, MessageDB.id)
    ).all()
    return Conversation(match=Match.model_validate(match), messages=[_to_message(row) for row in rows])


def validate_content(text: Optional[str], image_url: Optional[str], voice_url: Optional[str]) -> str:
    """
    Check a message has content and the text is within bounds.

    Returns:
        The stripped text.

    Raises:
        ValidationError: If the message is empty or the text is too long
    """
    text = (text or "").strip()
    if not text and not image_url and not voice_url:
        raise ValidationError("Message cannot be empty")
    if len(text) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message too long (max {settings.MESSAGE_MAX_LENGTH} characters)")
    return text


async def send_message(
    session: Session,
    hub: ConnectionHub,
    match_id: int,
    sender_id: int,
    text: Optional[str] = None,
    image_url: Optional[str] = None,
    voice_url: Optional[str] = None,
    reply_to_id: Optional[int] = None,
) -> Message:
    """
    Send a message in a match.

    The other member gets ``new_message`` and every session of the sender
    gets ``message_sent``.

    Args:
        session: Database session
        hub: Live channel used for notifications
        match_id: Match the message belongs to
        sender_id: Sending user
        text: Message text (stripped)
        image_url: Stored image reference
        voice_url: Stored voice note reference
        reply_to_id: Message being replied to, in the same match

    Returns:
        Message: The stored message

    Raises:
        ValidationError: If the message is empty, too long or replies to a
            message of another match
        ForbiddenError: If the sender is not a member of the match
    """
    with sentry_sdk.start_span(op="conversation.send", name=str(match_id)) as span:
        text = validate_content(text, image_url, voice_url)
        match = require_membership(session, match_id, sender_id)

        if reply_to_id is not None:
            replied = session.get(MessageDB, reply_to_id)
            if replied is None or replied.match_id != match_id:
                raise ValidationError("Reply target is not part of this conversation")

        record = MessageDB(
            match_id=match_id,
            sender_id=sender_id,
            text=text,
            image_url=image_url,
            voice_url=voice_url,
            reply_to_id=reply_to_id,
        )
        session.add(record)
        session.commit()

        message = get_message(session, record.id)
        span.set_data("message_id", message.id)
        logger.info(
            "Message sent",
            match_id=match_id,
            message_id=message.id,
            sender_id=sender_id,
            has_image=bool(image_url),
            has_voice=bool(voice_url),
        )

        await hub.send_to_user(match.other_member(sender_id), Event.NEW_MESSAGE, message)
        await hub.send_to_user(sender_id, Event.MESSAGE_SENT, message)
        return message


async def mark_read(session: Session, hub: ConnectionHub, match_id: int, caller_id: int) -> int:
    """
    Mark every unread message the other member sent in a match as read.

    Returns:
        int: Number of messages marked read

    Raises:
        ForbiddenError: If the caller is not a member of the match
    """
    match = require_membership(session, match_id, caller_id)
    result = session.execute(
        update(MessageDB)
        .where(
            MessageDB.match_id == match_id,
            MessageDB.sender_id != caller_id,
            MessageDB.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    session.commit()

    count = result.rowcount or 0
    if count:
        logger.debug("Messages marked read", match_id=match_id, user_id=caller_id, count=count)
        await hub.send_to_user(
            match.other_member(caller_id), Event.MESSAGES_READ, {"matchId": match_id, "readBy": caller_id}
        )
    return count


async def delete_message(session: Session, hub: ConnectionHub, message_id: int, caller_id: int) -> None:
    """
    Delete one of the caller's own messages.

    Both members of the match get ``message_deleted``.

    Raises:
        NotFoundError: If the message does not exist
        ForbiddenError: If the caller did not send it
    """
    message = session.get(MessageDB, message_id)
    if message is None:
        raise NotFoundError("Message not found")
    if message.sender_id != caller_id:
        raise ForbiddenError("Can only delete your own messages")

    match_id = message.match_id
    match = session.get(MatchDB, match_id)
    session.delete(message)
    session.commit()
    logger.info("Message deleted", message_id=message_id, match_id=match_id, user_id=caller_id)

    if match is not None:
        await hub.send_to_users(
            (match.user1_id, match.user2_id),
            Event.MESSAGE_DELETED,
            {"messageId": message_id, "matchId": match_id},
        )
