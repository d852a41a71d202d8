from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ReportRequest(BaseModel):
    reported_id: Optional[int] = None
    reason: Optional[str] = None
    details: Optional[str] = None


class Report(BaseModel):
    """Represents a user report record."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "reporter_id": 12,
                "reported_id": 34,
                "reason": "fake_profile",
                "details": "Photos belong to someone else",
                "created_at": "2025-10-27T10:00:00Z",
            }
        },
    )

    id: int
    reporter_id: int
    reported_id: int
    reason: str
    details: str = ""
    created_at: datetime
