"""Models package for CampusKnot."""

from campusknot.models.conversation import Conversation, Message
from campusknot.models.match import (
    Match,
    MatchSummary,
    ReceivedLike,
    SwipeAction,
    SwipeDecision,
    SwipeOutcome,
)
from campusknot.models.report import Report
from campusknot.models.user import Candidate, Gender, Profile, SelfProfile, ShowMe, UserStats

__all__ = [
    "Candidate",
    "Conversation",
    "Gender",
    "Match",
    "MatchSummary",
    "Message",
    "Profile",
    "ReceivedLike",
    "Report",
    "SelfProfile",
    "ShowMe",
    "SwipeAction",
    "SwipeDecision",
    "SwipeOutcome",
    "UserStats",
]
