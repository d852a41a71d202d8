"""Authentication routes."""

from typing import Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from campusknot.api.deps import (
    get_code_store,
    get_current_user,
    get_db,
    get_email_sender,
    limit_auth,
    limit_otp,
)
from campusknot.models.user import (
    AuthResponse,
    EmailRequest,
    LoginRequest,
    RegistrationRequest,
    SelfProfile,
    VerifyCodeRequest,
)
from campusknot.services import auth_service
from campusknot.services.email_service import EmailSender
from campusknot.utils.database import UserDB
from campusknot.utils.verification import VerificationCodeStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/send-otp", dependencies=[Depends(limit_otp)])
async def send_otp(
    body: EmailRequest,
    session: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_code_store),
    sender: EmailSender = Depends(get_email_sender),
) -> Dict[str, object]:
    """Email a verification code to an institutional address."""
    await auth_service.request_verification_code(session, store, sender, body.email)
    return {"success": True, "message": "OTP sent to your email"}


@router.post("/verify-otp", dependencies=[Depends(limit_auth)])
def verify_otp(body: VerifyCodeRequest, store: VerificationCodeStore = Depends(get_code_store)) -> Dict[str, object]:
    """Confirm a verification code."""
    auth_service.confirm_code(store, body.email, body.otp)
    return {"success": True, "verified": True}


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_auth)],
)
def register(
    body: RegistrationRequest,
    session: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_code_store),
) -> AuthResponse:
    """Create an account for a verified email."""
    return auth_service.register(session, store, body)


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(limit_auth)])
def login(body: LoginRequest, session: Session = Depends(get_db)) -> AuthResponse:
    return auth_service.login(session, body.email, body.password)


@router.post("/forgot-password", dependencies=[Depends(limit_otp)])
async def forgot_password(
    body: EmailRequest,
    session: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
) -> Dict[str, object]:
    """Email a temporary password."""
    await auth_service.reset_password(session, sender, body.email)
    return {"success": True, "message": "A temporary password has been sent to your email"}


@router.get("/me")
def me(user: UserDB = Depends(get_current_user)) -> Dict[str, SelfProfile]:
    return {"user": auth_service.get_self(user)}
