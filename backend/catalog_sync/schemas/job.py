"""Pipeline job schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class JobAcceptedResponse(BaseModel):
    """Returned by endpoints that enqueue work."""

    status: str = "accepted"
    job_id: str
    kind: str


class JobStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: str
    status: str
    params: Dict[str, Any] = {}
    result: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[Decimal] = None
    error_message: Optional[str] = None
