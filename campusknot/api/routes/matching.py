"""Discovery, swipe, likes and match routes."""

from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campusknot.api.deps import get_current_user, get_db, get_hub
from campusknot.live.hub import ConnectionHub
from campusknot.models.match import MatchSummary, ReceivedLike, SwipeOutcome, SwipeRequest
from campusknot.models.user import Candidate
from campusknot.services import discovery_service, matching_service
from campusknot.utils.database import UserDB
from campusknot.utils.errors import ValidationError

router = APIRouter(tags=["matching"])


@router.get("/discover")
def discover(
    user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)
) -> Dict[str, List[Candidate]]:
    """Get a random batch of profiles to swipe on."""
    return {"profiles": discovery_service.get_candidates(session, user)}


@router.post("/swipe", response_model=SwipeOutcome)
async def swipe(
    body: SwipeRequest,
    user: UserDB = Depends(get_current_user),
    session: Session = Depends(get_db),
    hub: ConnectionHub = Depends(get_hub),
) -> SwipeOutcome:
    """Like, pass or super-like a profile."""
    if body.target_id is None or body.action is None:
        raise ValidationError("Invalid swipe")
    return await matching_service.record_swipe(session, hub, user, body.target_id, body.action)


@router.get("/likes/received", response_model=List[ReceivedLike])
def received_likes(user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)) -> List[ReceivedLike]:
    return matching_service.get_received_likes(session, user)


@router.get("/matches")
def matches(
    user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)
) -> Dict[str, List[MatchSummary]]:
    """List the caller's matches, most recently active first."""
    return {"matches": matching_service.list_matches(session, user)}


@router.delete("/matches/{match_id}")
def unmatch(
    match_id: int, user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)
) -> Dict[str, object]:
    matching_service.unmatch(session, user, match_id)
    return {"success": True, "message": "Unmatched successfully"}
