"""Report service for CampusKnot."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from campusknot.models.report import Report
from campusknot.services.user_service import get_user
from campusknot.utils.database import ReportDB, UserDB
from campusknot.utils.errors import ValidationError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

MAX_REASON_LENGTH = 100


def submit_report(
    session: Session, reporter: UserDB, reported_id: Optional[int], reason: Optional[str], details: Optional[str] = None
) -> Report:
    """
    Record a report against another user.

    Reports are append-only and have no effect on the reported account.

    Raises:
        ValidationError: If the reported user or reason is missing, the reason
            is too long or the user reports themselves
        NotFoundError: If the reported user does not exist
    """
    reason = (reason or "").strip()
    if not reported_id or not reason:
        raise ValidationError("Missing fields")
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters")
    if reported_id == reporter.id:
        raise ValidationError("You cannot report yourself")

    get_user(session, reported_id)

    report = ReportDB(reporter_id=reporter.id, reported_id=reported_id, reason=reason, details=(details or "").strip())
    session.add(report)
    session.commit()
    logger.info("User reported", report_id=report.id, reporter_id=reporter.id, reported_id=reported_id, reason=reason)
    return Report.model_validate(report)


def get_reports_against(session: Session, user_id: int) -> List[Report]:
    """Get every report filed against a user, newest first."""
    rows = session.scalars(
        select(ReportDB).where(ReportDB.reported_id == user_id).order_by(ReportDB.created_at.desc(), ReportDB.id.desc())
    )
    return [Report.model_validate(row) for row in rows]
