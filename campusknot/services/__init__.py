"""Services package for CampusKnot."""

from campusknot.services.auth_service import (
    authenticate,
    confirm_code,
    login,
    register,
    request_verification_code,
    reset_password,
)
from campusknot.services.conversation_service import delete_message, list_messages, mark_read, send_message
from campusknot.services.discovery_service import compute_match_percent, get_candidates
from campusknot.services.email_service import EmailSender
from campusknot.services.matching_service import (
    create_match,
    get_received_likes,
    list_matches,
    record_swipe,
    unmatch,
)
from campusknot.services.report_service import submit_report
from campusknot.services.user_service import (
    deactivate_account,
    delete_account,
    get_stats,
    get_user,
    update_profile,
    upload_photo,
)

__all__ = [
    "EmailSender",
    "authenticate",
    "compute_match_percent",
    "confirm_code",
    "create_match",
    "deactivate_account",
    "delete_account",
    "delete_message",
    "get_candidates",
    "get_received_likes",
    "get_stats",
    "get_user",
    "list_matches",
    "list_messages",
    "login",
    "mark_read",
    "record_swipe",
    "register",
    "request_verification_code",
    "reset_password",
    "send_message",
    "submit_report",
    "unmatch",
    "update_profile",
    "upload_photo",
]
