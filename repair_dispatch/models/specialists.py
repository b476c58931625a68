from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from repair_dispatch.core.enums import ServiceType
from repair_dispatch.models.common import DispatchBaseModel, PyObjectId


class SpecialistCreate(DispatchBaseModel):
    telegram_id: str = Field(..., min_length=1)
    name: str
    specialization: ServiceType
    districts: List[str] = Field(default_factory=list)
    phone: str
    active: bool = True


class Specialist(SpecialistCreate):
    id: PyObjectId = Field(..., alias="_id")
    created_at: Optional[datetime] = None
