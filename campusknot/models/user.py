"""User models for CampusKnot."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Gender(str, Enum):
    """
    Gender enumeration.

    Represents the gender a user registered with.
    """

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ShowMe(str, Enum):
    """
    Visibility preference.

    Which genders the discovery feed surfaces to a user.
    """

    MALE = "male"
    FEMALE = "female"
    ALL = "all"


def _clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    """Trim tags and drop empty ones and duplicates, preserving order."""
    if v is None:
        return None
    cleaned: List[str] = []
    for tag in v:
        tag = str(tag).strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class Profile(BaseModel):
    """
    Sanitized profile.

    A user record without credential material and with list fields decoded.
    Safe to show to other users.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    age: int
    gender: str
    branch: str
    year: str
    bio: str = ""
    photo: str = ""
    show_me: str = ShowMe.ALL.value
    interests: List[str] = Field(default_factory=list)
    green_flags: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    is_verified: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None


class SelfProfile(Profile):
    """The caller's own profile, which also carries the account email."""

    email: str


class Candidate(Profile):
    """A discovery feed entry."""

    match_percent: int
    shared_interests: List[str] = Field(default_factory=list)


class RegistrationRequest(BaseModel):
    """Registration payload. Presence and ranges are checked by the auth service."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None
    branch: Optional[str] = None
    year: Optional[str] = None
    bio: Optional[str] = None
    show_me: Optional[ShowMe] = None
    interests: List[str] = Field(default_factory=list)
    green_flags: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)

    @field_validator("interests", "green_flags", "red_flags")
    @classmethod
    def clean_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class ProfileUpdate(BaseModel):
    """Partial profile edit. Fields left unset (or empty) keep their current value."""

    name: Optional[str] = None
    bio: Optional[str] = None
    branch: Optional[str] = None
    year: Optional[str] = None
    show_me: Optional[ShowMe] = None
    interests: Optional[List[str]] = None
    green_flags: Optional[List[str]] = None
    red_flags: Optional[List[str]] = None

    @field_validator("interests", "green_flags", "red_flags")
    @classmethod
    def clean_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class EmailRequest(BaseModel):
    email: Optional[str] = None


class VerifyCodeRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    """Token plus the caller's profile, returned by register and login."""

    token: str
    user: SelfProfile


class UserStats(BaseModel):
    matches: int = 0
    likes_given: int = 0
    likes_received: int = 0
