"""
Pydantic models for API request/response schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Union
from datetime import datetime

from src.errors import ScanFailureReason
from src.scan import ScanSession, ScanState

Number = Union[int, float]


class ScanInfo(BaseModel):
    """Scan session status"""
    session_id: str
    state: ScanState
    progress: int = Field(0, ge=0, le=100, description="Recognition progress in percent")
    created_at: datetime
    reference_value: Optional[Number] = Field(None, description="Previously recorded odometer value")

    # Reading resolution (available once recognition finished)
    best_candidate: Optional[Number] = None
    alternatives: List[Number] = Field(default_factory=list, description="Other readings the user may pick")

    # Failure info
    failure_reason: Optional[ScanFailureReason] = None
    user_action: Optional[str] = Field(None, description="'recapture' or 'manual_entry'")

    confirmed_value: Optional[Number] = None

    @classmethod
    def from_session(cls, session: ScanSession) -> "ScanInfo":
        resolution = session.resolution
        reason = session.failure_reason
        return cls(
            session_id=session.session_id,
            state=session.state,
            progress=session.progress,
            created_at=session.created_at,
            reference_value=session.reference_value,
            best_candidate=resolution.best_candidate if resolution else None,
            alternatives=list(resolution.alternatives) if resolution else [],
            failure_reason=reason,
            user_action=reason.user_action if reason else None,
            confirmed_value=session.confirmed_value,
        )


class AcceptRequest(BaseModel):
    """Request to confirm a reading"""
    value: Number = Field(..., description="Best candidate or one of the alternatives")
