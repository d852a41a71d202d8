"""FastAPI dependencies shared by the CampusKnot routes."""

from typing import Iterator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from campusknot.live.hub import ConnectionHub
from campusknot.services.auth_service import authenticate
from campusknot.services.email_service import EmailSender
from campusknot.utils.database import UserDB, session_scope
from campusknot.utils.rate_limiter import RateLimiter
from campusknot.utils.verification import VerificationCodeStore

BEARER_PREFIX = "bearer "


def get_db() -> Iterator[Session]:
    """Yield a database session for the duration of one request."""
    with session_scope() as session:
        yield session


def get_hub(request: Request) -> ConnectionHub:
    return request.app.state.hub


def get_code_store(request: Request) -> VerificationCodeStore:
    return request.app.state.code_store


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    if authorization.lower().startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX) :].strip() or None
    return None


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    session: Session = Depends(get_db),
) -> UserDB:
    """Resolve the bearer token to the calling user."""
    return authenticate(session, extract_bearer_token(authorization))


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _limit(action_type: str, message: str):
    def dependency(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        limiter.enforce(client_key(request), action_type, message)

    dependency.__name__ = f"limit_{action_type}"
    return dependency


limit_api = _limit("api", "Too many requests, please slow down")
limit_auth = _limit("auth", "Too many auth attempts, try again later")
limit_otp = _limit("otp", "Too many OTP requests, try again later")
