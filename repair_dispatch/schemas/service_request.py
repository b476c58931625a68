from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SubmitRequestResponse(BaseModel):
    success: bool = True
    request_id: str
    status: str
    notified: int = 0


class ServiceRequestOut(BaseModel):
    # the client phone goes only to the accepting specialist
    id: str
    service_type: str
    address: str
    description: str
    common_problem: str
    photo: Optional[str] = None
    status: str
    created_at: datetime
    accepted_at: Optional[datetime] = None
