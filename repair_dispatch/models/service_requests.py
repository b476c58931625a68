from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from repair_dispatch.core.enums import RequestStatus, ServiceType
from repair_dispatch.models.common import DispatchBaseModel, PyObjectId


class Timestamps(DispatchBaseModel):
    created_at: datetime
    accepted_at: Optional[datetime] = None
    updated_at: datetime


class ServiceRequestCreate(DispatchBaseModel):
    service_type: ServiceType
    address: str = Field(..., min_length=1)
    description: str = ""
    common_problem: str = ""
    phone: str = Field(..., min_length=1)
    photo: Optional[str] = None


class ServiceRequest(ServiceRequestCreate):
    id: PyObjectId = Field(..., alias="_id")
    status: RequestStatus = RequestStatus.new
    specialist_id: Optional[PyObjectId] = None
    timestamps: Timestamps

    @model_validator(mode="after")
    def _owner_matches_status(self):
        # specialist_id is set iff the request has been accepted
        accepted = self.status == RequestStatus.accepted
        if accepted != (self.specialist_id is not None):
            raise ValueError("specialist_id must be set exactly when status is accepted")
        return self

    @property
    def request_id(self) -> str:
        return str(self.id)
