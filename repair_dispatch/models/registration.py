from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from repair_dispatch.core.enums import RegistrationStep, ServiceType
from repair_dispatch.models.common import DispatchBaseModel


class DialogueState(DispatchBaseModel):
    """Transient answers collected so far for one identity's registration."""

    identity: str
    step: RegistrationStep = RegistrationStep.name
    name: Optional[str] = None
    specialization: Optional[ServiceType] = None
    districts: List[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
