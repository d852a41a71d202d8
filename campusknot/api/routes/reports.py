"""Report routes."""

from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campusknot.api.deps import get_current_user, get_db
from campusknot.models.report import ReportRequest
from campusknot.services import report_service
from campusknot.utils.database import UserDB

router = APIRouter(tags=["reports"])


@router.post("/report")
def report_user(
    body: ReportRequest, user: UserDB = Depends(get_current_user), session: Session = Depends(get_db)
) -> Dict[str, object]:
    """File a report against another user."""
    report = report_service.submit_report(session, user, body.reported_id, body.reason, body.details)
    return {"success": True, "message": "Report submitted. We'll review it soon.", "report_id": report.id}
