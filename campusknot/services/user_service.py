"""User service for CampusKnot."""

from typing import Optional

import sentry_sdk
from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from campusknot.models.match import SwipeAction
from campusknot.models.user import Profile, ProfileUpdate, SelfProfile, UserStats
from campusknot.utils import media
from campusknot.utils.database import MatchDB, MessageDB, ReportDB, SwipeDB, UserDB
from campusknot.utils.errors import NotFoundError, ValidationError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

_TEXT_FIELDS = ("name", "bio", "branch", "year")
_LIST_FIELDS = ("interests", "green_flags", "red_flags")


def to_profile(user: UserDB) -> Profile:
    """Sanitized view of a user for other users."""
    return Profile.model_validate(user)


def to_self_profile(user: UserDB) -> SelfProfile:
    """Sanitized view of a user for that same user."""
    return SelfProfile.model_validate(user)


def get_user(session: Session, user_id: int) -> UserDB:
    """Get a user by ID.

    Raises:
        NotFoundError: If user not found
    """
    user = session.get(UserDB, user_id)
    if user is None:
        logger.warning("User not found", user_id=user_id)
        raise NotFoundError("User not found")
    return user


def get_active_user(session: Session, user_id: int) -> UserDB:
    """Get a user that has not deactivated their account.

    Raises:
        NotFoundError: If the user does not exist or is deactivated
    """
    user = get_user(session, user_id)
    if not user.is_active:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(session: Session, email: str) -> Optional[UserDB]:
    return session.scalar(select(UserDB).where(UserDB.email == email))


def update_profile(session: Session, user: UserDB, update: ProfileUpdate) -> SelfProfile:
    """Apply a partial profile edit.

    Empty or missing text fields keep their current value. List fields are
    replaced whenever they are sent, including with an empty list.

    Args:
        session: Database session
        user: User being edited
        update: Fields to change

    Returns:
        The updated profile
    """
    with sentry_sdk.start_span(op="user.update", name=str(user.id)) as span:
        changed = []
        for field in _TEXT_FIELDS:
            value = getattr(update, field)
            if value is not None and value.strip():
                setattr(user, field, value.strip())
                changed.append(field)

        if update.show_me is not None:
            user.show_me = update.show_me.value
            changed.append("show_me")

        for field in _LIST_FIELDS:
            value = getattr(update, field)
            if value is not None:
                setattr(user, field, value)
                changed.append(field)

        span.set_data("fields", changed)
        session.commit()
        logger.info("Profile updated", user_id=user.id, fields=changed)
        return to_self_profile(user)


def upload_photo(
    session: Session, user: UserDB, content: bytes, filename: Optional[str], content_type: Optional[str]
) -> str:
    """Store a new profile photo and point the profile at it.

    Returns:
        The stored photo reference

    Raises:
        ValidationError: If the upload is not an accepted image
    """
    if not media.is_allowed_image(filename, content_type):
        raise ValidationError("No file uploaded")

    photo_url = media.save_image(content, user.id)
    user.photo = photo_url
    session.commit()
    logger.info("Profile photo updated", user_id=user.id, photo=photo_url)
    return photo_url


def deactivate_account(session: Session, user: UserDB) -> None:
    """Hide the account until its owner logs in again."""
    user.is_active = False
    session.commit()
    logger.info("Account deactivated", user_id=user.id)


def delete_account(session: Session, user: UserDB) -> None:
    """Delete a user and everything that references them.

    Order matters: swipes and reports, then messages of the user's matches,
    then the matches, then the user.
    """
    with sentry_sdk.start_span(op="user.delete", name=str(user.id)):
        user_id = user.id

        session.execute(delete(SwipeDB).where(or_(SwipeDB.user_id == user_id, SwipeDB.target_id == user_id)))
        session.execute(
            delete(ReportDB).where(or_(ReportDB.reporter_id == user_id, ReportDB.reported_id == user_id))
        )

        match_ids = list(
            session.scalars(select(MatchDB.id).where(or_(MatchDB.user1_id == user_id, MatchDB.user2_id == user_id)))
        )
        if match_ids:
            session.execute(delete(MessageDB).where(MessageDB.match_id.in_(match_ids)))
            session.execute(delete(MatchDB).where(MatchDB.id.in_(match_ids)))

        session.execute(delete(UserDB).where(UserDB.id == user_id))
        session.commit()
        session.expunge_all()

        media.delete_user_media(user_id)
        logger.info("Account deleted", user_id=user_id, matches_removed=len(match_ids))


def get_stats(session: Session, user: UserDB) -> UserStats:
    """Count the user's matches, likes given and likes received."""
    matches = session.scalar(
        select(func.count())
        .select_from(MatchDB)
        .where(or_(MatchDB.user1_id == user.id, MatchDB.user2_id == user.id))
    )
    likes_given = session.scalar(
        select(func.count())
        .select_from(SwipeDB)
        .where(SwipeDB.user_id == user.id, SwipeDB.action == SwipeAction.LIKE.value)
    )
    likes_received = session.scalar(
        select(func.count())
        .select_from(SwipeDB)
        .where(SwipeDB.target_id == user.id, SwipeDB.action == SwipeAction.LIKE.value)
    )
    return UserStats(matches=matches or 0, likes_given=likes_given or 0, likes_received=likes_received or 0)
