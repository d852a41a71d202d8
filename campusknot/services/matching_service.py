"""Swipe ledger and match engine for CampusKnot."""

from typing import List, Optional, Tuple

import sentry_sdk
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campusknot.live.hub import ConnectionHub, Event
from campusknot.models.match import MatchSummary, ReceivedLike, SwipeAction, SwipeDecision, SwipeOutcome
from campusknot.services.discovery_service import matched_partner_ids
from campusknot.services.user_service import to_profile
from campusknot.utils.database import MatchDB, MessageDB, SwipeDB, UserDB
from campusknot.utils.errors import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)


def canonical_pair(user_a: int, user_b: int) -> Tuple[int, int]:
    """Order a pair of user ids so the lower id comes first."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def _find_swipe(session: Session, user_id: int, target_id: int) -> Optional[SwipeDB]:
    return session.scalar(select(SwipeDB).where(SwipeDB.user_id == user_id, SwipeDB.target_id == target_id))


def get_match_between(session: Session, user_a: int, user_b: int) -> Optional[MatchDB]:
    low, high = canonical_pair(user_a, user_b)
    return session.scalar(select(MatchDB).where(MatchDB.user1_id == low, MatchDB.user2_id == high))


def create_match(session: Session, user_a: int, user_b: int) -> Tuple[MatchDB, bool]:
    """
    Insert the match for a pair unless it already exists.

    The unique pair constraint decides races: when the insert loses, the
    existing row is returned instead.

    Returns:
        Tuple[MatchDB, bool]: The match and whether this call created it.

    Raises:
        DatabaseError: If the insert failed and no match exists either.
    """
    low, high = canonical_pair(user_a, user_b)
    match = MatchDB(user1_id=low, user2_id=high)
    session.add(match)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        existing = get_match_between(session, low, high)
        if existing is None:
            raise DatabaseError("Failed to create match", details={"users": [low, high]}) from e
        logger.info("Match already existed", match_id=existing.id, user1_id=low, user2_id=high)
        return existing, False

    logger.info("Match created", match_id=match.id, user1_id=low, user2_id=high)
    return match, True


def require_membership(session: Session, match_id: int, user_id: int) -> MatchDB:
    """
    Get a match the user belongs to.

    Raises:
        ForbiddenError: If the match does not exist or the user is not a member.
    """
    match = session.get(MatchDB, match_id)
    if match is None or not match.has_member(user_id):
        raise ForbiddenError("Not your match")
    return match


async def record_swipe(
    session: Session, hub: ConnectionHub, actor: UserDB, target_id: int, decision: SwipeDecision
) -> SwipeOutcome:
    """
    Record a like, pass or super-like and create a match on reciprocity.

    The first decision for a (actor, target) pair is final: later swipes
    on the same target are reported as already recorded and change nothing.

    Args:
        session: Database session
        hub: Live channel used for notifications
        actor: User swiping
        target_id: User being swiped on
        decision: The decision

    Returns:
        SwipeOutcome: Whether a match resulted, with the match and the other
        user's profile when it did.

    Raises:
        ValidationError: If the user swipes on themselves
        NotFoundError: If the target does not exist or is deactivated
    """
    with sentry_sdk.start_span(op="match.swipe", name=f"{actor.id} -> {target_id}") as span:
        if target_id == actor.id:
            raise ValidationError("You cannot swipe on yourself")

        target = session.get(UserDB, target_id)
        if target is None or not target.is_active:
            raise NotFoundError("User not found")

        if _find_swipe(session, actor.id, target_id) is not None:
            return SwipeOutcome(recorded=False, message="Already swiped")

        action = decision.stored_action
        session.add(
            SwipeDB(user_id=actor.id, target_id=target_id, action=action.value, is_super_like=decision.is_super_like)
        )
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            if _find_swipe(session, actor.id, target_id) is not None:
                return SwipeOutcome(recorded=False, message="Already swiped")
            raise DatabaseError("Failed to record swipe", details={"user_id": actor.id, "target_id": target_id}) from e

        span.set_data("action", decision.value)
        logger.info("Swipe recorded", user_id=actor.id, target_id=target_id, decision=decision.value)

        if action is SwipeAction.PASS:
            return SwipeOutcome()

        reciprocal = session.scalar(
            select(SwipeDB.id).where(
                SwipeDB.user_id == target_id,
                SwipeDB.target_id == actor.id,
                SwipeDB.action == SwipeAction.LIKE.value,
            )
        )
        if reciprocal is None:
            if decision.is_super_like:
                await hub.send_to_user(
                    target_id,
                    Event.SUPER_LIKE_RECEIVED,
                    {"fromUserId": actor.id, "name": actor.name, "photo": actor.photo},
                )
            return SwipeOutcome()

        match, created = create_match(session, actor.id, target_id)
        actor_profile = to_profile(actor)
        target_profile = to_profile(target)
        if created:
            await hub.send_to_user(
                actor.id,
                Event.MATCH_FOUND,
                {"matchId": match.id, "otherProfile": target_profile.model_dump(mode="json")},
            )
            await hub.send_to_user(
                target_id,
                Event.MATCH_FOUND,
                {"matchId": match.id, "otherProfile": actor_profile.model_dump(mode="json")},
            )

        span.set_data("match_id", match.id)
        return SwipeOutcome(matched=True, match_id=match.id, matched_user=target_profile)


def get_received_likes(session: Session, user: UserDB) -> List[ReceivedLike]:
    """
    Get active users who liked the user and are not matched with them yet.

    Super-likes come first, then most recent first.
    """
    stmt = (
        select(UserDB, SwipeDB.is_super_like, SwipeDB.created_at)
        .join(SwipeDB, SwipeDB.user_id == UserDB.id)
        .where(
            SwipeDB.target_id == user.id,
            SwipeDB.action == SwipeAction.LIKE.value,
            UserDB.is_active.is_(True),
            UserDB.id.not_in(matched_partner_ids(user.id)),
        )
        .order_by(SwipeDB.is_super_like.desc(), SwipeDB.created_at.desc(), SwipeDB.id.desc())
    )
    return [
        ReceivedLike(**to_profile(liker).model_dump(), is_super_like=is_super_like, liked_at=liked_at)
        for liker, is_super_like, liked_at in session.execute(stmt).all()
    ]


def list_matches(session: Session, user: UserDB) -> List[MatchSummary]:
    """
    Get the user's matches with the other member's profile, the last message
    and the user's unread count, most recently active first.
    """
    with sentry_sdk.start_span(op="match.list", name=str(user.id)):
        matches = session.scalars(
            select(MatchDB).where(or_(MatchDB.user1_id == user.id, MatchDB.user2_id == user.id))
        ).all()
        if not matches:
            return []

        partner_ids = {match.other_member(user.id) for match in matches}
        partners = {
            partner.id: partner for partner in session.scalars(select(UserDB).where(UserDB.id.in_(partner_ids)))
        }

        summaries = []
        for match in matches:
            partner = partners.get(match.other_member(user.id))
            if partner is None:
                continue

            last = session.scalar(
                select(MessageDB)
                .where(MessageDB.match_id == match.id)
                .order_by(MessageDB.created_at.desc(), MessageDB.id.desc())
                .limit(1)
            )
            unread = session.scalar(
                select(func.count())
                .select_from(MessageDB)
                .where(
                    MessageDB.match_id == match.id,
                    MessageDB.sender_id != user.id,
                    MessageDB.is_read.is_(False),
                )
            )
            summaries.append(
                MatchSummary(
                    match_id=match.id,
                    matched_at=match.created_at,
                    user_id=partner.id,
                    name=partner.name,
                    photo=partner.photo or "",
                    branch=partner.branch or "",
                    year=partner.year or "",
                    bio=partner.bio or "",
                    age=partner.age,
                    gender=partner.gender,
                    interests=partner.interests or [],
                    green_flags=partner.green_flags or [],
                    red_flags=partner.red_flags or [],
                    last_message=last.text if last else None,
                    last_message_time=last.created_at if last else None,
                    last_message_mine=bool(last and last.sender_id == user.id),
                    unread_count=unread or 0,
                )
            )

        summaries.sort(key=lambda summary: summary.last_activity, reverse=True)
        return summaries


def unmatch(session: Session, user: UserDB, match_id: int) -> None:
    """
    Remove a match and its conversation.

    Raises:
        NotFoundError: If the match does not exist or the user is not a member.
    """
    match = session.get(MatchDB, match_id)
    if match is None or not match.has_member(user.id):
        raise NotFoundError("Match not found")

    session.execute(delete(MessageDB).where(MessageDB.match_id == match_id))
    session.execute(delete(MatchDB).where(MatchDB.id == match_id))
    session.commit()
    session.expire_all()
    logger.info("Unmatched", match_id=match_id, user_id=user.id)
