"""Swipe and match models for CampusKnot."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from campusknot.models.user import Profile


class SwipeDecision(str, Enum):
    """
    Decision submitted by a client.

    A super-like is stored as a like with an emphasis flag.
    """

    LIKE = "like"
    PASS = "pass"
    SUPER_LIKE = "super_like"

    @property
    def stored_action(self) -> "SwipeAction":
        return SwipeAction.PASS if self is SwipeDecision.PASS else SwipeAction.LIKE

    @property
    def is_super_like(self) -> bool:
        return self is SwipeDecision.SUPER_LIKE


class SwipeAction(str, Enum):
    """Decision as persisted in the swipe ledger."""

    LIKE = "like"
    PASS = "pass"


class SwipeRequest(BaseModel):
    target_id: Optional[int] = None
    action: Optional[SwipeDecision] = None


class SwipeOutcome(BaseModel):
    """
    Result of a swipe.

    ``recorded`` is false when the pair had already been swiped, in which
    case nothing else happened.
    """

    recorded: bool = True
    matched: bool = False
    match_id: Optional[int] = None
    matched_user: Optional[Profile] = None
    message: Optional[str] = None


class Match(BaseModel):
    """A reciprocal match. ``user1_id`` is the lower id of the pair."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user1_id: int
    user2_id: int
    created_at: datetime


class ReceivedLike(Profile):
    """Someone who liked the caller and is not matched with them yet."""

    is_super_like: bool = False
    liked_at: Optional[datetime] = None


class MatchSummary(BaseModel):
    """
    Match list entry.

    Carries the other member's profile fields, a preview of the last message
    and the caller's unread count.
    """

    match_id: int
    matched_at: datetime
    user_id: int
    name: str
    photo: str = ""
    branch: str = ""
    year: str = ""
    bio: str = ""
    age: Optional[int] = None
    gender: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    green_flags: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    last_message_mine: bool = False
    unread_count: int = 0

    @property
    def last_activity(self) -> datetime:
        return self.last_message_time or self.matched_at
