"""Discovery feed for CampusKnot."""

import math
import random
from typing import List, Optional, Sequence, Tuple

import sentry_sdk
from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from campusknot.config import settings
from campusknot.models.user import Candidate, ShowMe
from campusknot.services.user_service import to_profile
from campusknot.utils.database import MatchDB, SwipeDB, UserDB
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

MAX_MATCH_PERCENT = 99
BASE_MATCH_PERCENT = 40
RANDOM_MATCH_PERCENT_RANGE = (60, 90)


def compute_match_percent(
    own_interests: Sequence[str], their_interests: Sequence[str], rng: Optional[random.Random] = None
) -> Tuple[int, List[str]]:
    """
    Compute the displayed affinity between a viewer and a candidate.

    The score is cosmetic and never used to filter or order candidates.

    Args:
        own_interests: The viewer's interests.
        their_interests: The candidate's interests.
        rng: Random source used when the viewer has no interests.

    Returns:
        Tuple[int, List[str]]: The percentage and the candidate's interests
        the viewer shares.
    """
    own = set(own_interests)
    shared = [interest for interest in their_interests if interest in own]
    if not own_interests:
        low, high = RANDOM_MATCH_PERCENT_RANGE
        return (rng or random).randrange(low, high), shared

    raw = len(shared) / len(own_interests) * 100 + BASE_MATCH_PERCENT
    # Round half up
    return min(MAX_MATCH_PERCENT, math.floor(raw + 0.5)), shared


def matched_partner_ids(user_id: int):
    """Select the ids of everyone the user is matched with."""
    return select(case((MatchDB.user1_id == user_id, MatchDB.user2_id), else_=MatchDB.user1_id)).where(
        or_(MatchDB.user1_id == user_id, MatchDB.user2_id == user_id)
    )


def get_candidates(
    session: Session, user: UserDB, limit: Optional[int] = None, rng: Optional[random.Random] = None
) -> List[Candidate]:
    """
    Get a random batch of profiles the user has not acted on yet.

    Excludes the user, deactivated accounts, anyone the user already swiped
    (either way) and anyone already matched with the user. The user's
    ``show_me`` preference filters on gender.

    Args:
        session: Database session
        user: The viewer
        limit: Maximum number of candidates (defaults to DISCOVER_LIMIT)
        rng: Random source for the affinity score

    Returns:
        List[Candidate]: Candidates in random order
    """
    if limit is None:
        limit = settings.DISCOVER_LIMIT
    with sentry_sdk.start_span(op="discovery.candidates", name=str(user.id)) as span:
        swiped = select(SwipeDB.target_id).where(SwipeDB.user_id == user.id)

        stmt = select(UserDB).where(
            UserDB.id != user.id,
            UserDB.is_active.is_(True),
            UserDB.id.not_in(swiped),
            UserDB.id.not_in(matched_partner_ids(user.id)),
        )
        if user.show_me in (ShowMe.MALE.value, ShowMe.FEMALE.value):
            stmt = stmt.where(UserDB.gender == user.show_me)

        stmt = stmt.order_by(func.random()).limit(limit)
        rows = session.scalars(stmt).all()

        own_interests = user.interests or []
        candidates = []
        for row in rows:
            percent, shared = compute_match_percent(own_interests, row.interests or [], rng)
            candidates.append(
                Candidate(**to_profile(row).model_dump(), match_percent=percent, shared_interests=shared)
            )

        span.set_data("count", len(candidates))
        logger.debug("Discovery feed built", user_id=user.id, count=len(candidates))
        return candidates
