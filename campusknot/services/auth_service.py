"""Authentication service for CampusKnot.

Covers the email verification flow, registration, login, password reset and
token authentication. Only addresses under the institutional domain may
take part.
"""

from typing import Optional

import sentry_sdk
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campusknot.config import settings
from campusknot.models.user import AuthResponse, RegistrationRequest, SelfProfile, ShowMe
from campusknot.services.email_service import EmailSender, verification_email_html
from campusknot.services.user_service import get_user_by_email, to_self_profile
from campusknot.utils.database import UserDB
from campusknot.utils.errors import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from campusknot.utils.logging import get_logger
from campusknot.utils.security import (
    create_access_token,
    decode_access_token,
    generate_temporary_password,
    hash_password,
    verify_password,
)
from campusknot.utils.verification import VerificationCodeStore

logger = get_logger(__name__)

_REQUIRED_REGISTRATION_FIELDS = ("name", "email", "password", "age", "gender", "branch", "year")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def require_institutional_email(email: Optional[str]) -> str:
    """
    Normalize an email and check it belongs to the institutional domain.

    Raises:
        ValidationError: If the email is missing or outside the domain.
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("Email is required")
    if not normalized.endswith(settings.ALLOWED_EMAIL_DOMAIN):
        raise ValidationError(f"Only {settings.ALLOWED_EMAIL_DOMAIN} emails are allowed")
    return normalized


async def _deliver_secret(sender: EmailSender, to_email: str, subject: str, html: str, **secret: str) -> None:
    """
    Email a one-time secret.

    Outside production a failed delivery is not fatal: the secret is logged
    so the flow can be completed locally.
    """
    try:
        await sender.send(to_email, subject, html)
    except ExternalServiceError as e:
        if settings.is_production:
            logger.error("Email delivery failed", email=to_email, service=e.details.get("service"))
            raise
        logger.warning("Email delivery failed, secret disclosed in log", email=to_email, **secret)


async def request_verification_code(
    session: Session, store: VerificationCodeStore, sender: EmailSender, email: Optional[str]
) -> None:
    """
    Issue and email a verification code.

    A new request replaces any earlier pending code for the same email.

    Raises:
        ValidationError: If the email is missing or outside the domain.
        ConflictError: If the email is already registered.
        ExternalServiceError: If delivery fails in production.
    """
    with sentry_sdk.start_span(op="auth.send_code", name=normalize_email(email)):
        normalized = require_institutional_email(email)
        if get_user_by_email(session, normalized) is not None:
            raise ConflictError("Email already registered. Please login.")

        record = store.issue(normalized)
        minutes = max(store.ttl_seconds // 60, 1)
        html = verification_email_html(
            settings.APP_NAME,
            f"Your verification code is:<br><strong style=\"font-size:32px;letter-spacing:6px;\">{record.code}</strong>"
            f"<br><span style=\"font-size:14px;color:#888;\">It expires in {minutes} minutes.</span>",
        )
        await _deliver_secret(sender, normalized, f"Your {settings.APP_NAME} verification code", html, code=record.code)
        logger.info("Verification code issued", email=normalized)


def confirm_code(store: VerificationCodeStore, email: Optional[str], code: Optional[str]) -> None:
    """
    Mark a pending verification as confirmed.

    Raises:
        ValidationError: If inputs are missing, no code is pending, the code
            expired (the pending record is dropped) or the code is wrong.
    """
    normalized = normalize_email(email)
    if not normalized or not code:
        raise ValidationError("Email and OTP are required")

    record = store.get(normalized)
    if record is None:
        raise ValidationError("No OTP found. Request a new one.")
    if record.is_expired():
        store.discard(normalized)
        raise ValidationError("OTP expired. Request a new one.")
    if record.code != str(code).strip():
        raise ValidationError("Invalid OTP")

    record.verified = True
    store.save(normalized, record)
    logger.info("Email verified", email=normalized)


def register(session: Session, store: VerificationCodeStore, payload: RegistrationRequest) -> AuthResponse:
    """
    Create an account for a verified institutional email.

    Raises:
        ValidationError: On missing fields, bad domain, short password or age
            out of range.
        ForbiddenError: If the email has not been verified.
        ConflictError: If the email is already registered.
    """
    with sentry_sdk.start_span(op="auth.register") as span:
        for field in _REQUIRED_REGISTRATION_FIELDS:
            value = getattr(payload, field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError("All fields are required", details={"field": field})

        email = require_institutional_email(payload.email)

        pending = store.get(email)
        if pending is None or not pending.verified:
            raise ForbiddenError("Email not verified")

        password = payload.password or ""
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")

        age = payload.age or 0
        if age < settings.MIN_AGE or age > settings.MAX_AGE:
            raise ValidationError(f"Age must be between {settings.MIN_AGE} and {settings.MAX_AGE}")

        if get_user_by_email(session, email) is not None:
            raise ConflictError("Email already registered")

        bio = (payload.bio or "").strip() or settings.default_bio
        user = UserDB(
            name=(payload.name or "").strip(),
            email=email,
            password_hash=hash_password(password),
            age=age,
            gender=payload.gender.value if payload.gender else "",
            branch=(payload.branch or "").strip(),
            year=(payload.year or "").strip(),
            bio=bio,
            show_me=(payload.show_me or ShowMe.ALL).value,
            interests=payload.interests,
            green_flags=payload.green_flags,
            red_flags=payload.red_flags,
            is_verified=True,
            is_active=True,
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise ConflictError("Email already registered") from e

        store.discard(email)
        span.set_data("user_id", user.id)
        logger.info("User registered", user_id=user.id, email=email)
        return AuthResponse(token=create_access_token(user.id), user=to_self_profile(user))


def login(session: Session, email: Optional[str], password: Optional[str]) -> AuthResponse:
    """
    Exchange credentials for a token.

    Logging in reactivates a deactivated account.

    Raises:
        ValidationError: If either credential is missing.
        AuthenticationError: If the credentials do not match an account.
    """
    normalized = normalize_email(email)
    if not normalized or not password:
        raise ValidationError("Email and password are required")

    user = get_user_by_email(session, normalized)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt", email=normalized)
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        user.is_active = True
        session.commit()
        logger.info("Account reactivated on login", user_id=user.id)

    logger.info("User logged in", user_id=user.id)
    return AuthResponse(token=create_access_token(user.id), user=to_self_profile(user))


async def reset_password(session: Session, sender: EmailSender, email: Optional[str]) -> None:
    """
    Replace a forgotten password with a temporary one and email it.

    The stored password only changes once the temporary one has been
    delivered (or, outside production, logged).

    Raises:
        ValidationError: If the email is missing.
        NotFoundError: If no account uses the email.
        ExternalServiceError: If delivery fails in production.
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("Email is required")

    user = get_user_by_email(session, normalized)
    if user is None:
        raise NotFoundError("No account found with this email")

    temporary = generate_temporary_password()
    html = verification_email_html(
        settings.APP_NAME,
        f"Your temporary password is:<br><strong style=\"font-size:28px;letter-spacing:4px;\">{temporary}</strong>"
        "<br><span style=\"font-size:14px;color:#888;\">Log in and change it from your profile.</span>",
    )
    await _deliver_secret(
        sender, normalized, f"{settings.APP_NAME} password reset", html, temporary_password=temporary
    )

    user.password_hash = hash_password(temporary)
    session.commit()
    logger.info("Password reset", user_id=user.id)


def authenticate(session: Session, token: Optional[str]) -> UserDB:
    """
    Resolve an access token to an active user.

    Raises:
        AuthenticationError: If the token is missing or invalid, or the user
            no longer exists or has deactivated their account.
    """
    if not token:
        raise AuthenticationError("No token provided")

    user_id = decode_access_token(token)
    user = session.get(UserDB, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid token")
    return user


def get_self(user: UserDB) -> SelfProfile:
    return to_self_profile(user)
