from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from repair_dispatch.core.enums import RequestStatus
from repair_dispatch.core.errors import NotFound
from repair_dispatch.models.common import parse_oid
from repair_dispatch.models.service_requests import ServiceRequest, ServiceRequestCreate
from repair_dispatch.services.workflow import apply_transition_updates, validate_transition


class ServiceRequestRepository:
    def __init__(self, col):
        self.col = col

    async def create(self, data: ServiceRequestCreate) -> ObjectId:
        now = datetime.utcnow()
        doc: Dict[str, Any] = data.model_dump(mode="json")
        doc.update(
            {
                "status": RequestStatus.new.value,
                "specialist_id": None,
                "timestamps": {
                    "created_at": now,
                    "accepted_at": None,
                    "updated_at": now,
                },
            }
        )
        res = await self.col.insert_one(doc)
        return res.inserted_id

    async def find(self, request_id: str | ObjectId) -> Optional[ServiceRequest]:
        oid = parse_oid(request_id)
        if oid is None:
            return None
        doc = await self.col.find_one({"_id": oid})
        return ServiceRequest(**doc) if doc else None

    async def get(self, request_id: str | ObjectId) -> ServiceRequest:
        request = await self.find(request_id)
        if request is None:
            raise NotFound("Request", request_id)
        return request

    async def atomic_conditional_update(
        self,
        request_id: str | ObjectId,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        specialist_id: Optional[ObjectId],
    ) -> bool:
        """
        Move a request from ``expected_status`` to ``new_status`` in one
        ``update_one``. The status condition lives in the filter, so under
        concurrent callers at most one of them matches. Returns whether the
        update applied.
        """
        validate_transition(expected_status, new_status, specialist_id)
        oid = parse_oid(request_id)
        if oid is None:
            return False

        res = await self.col.update_one(
            {"_id": oid, "status": RequestStatus(expected_status).value},
            apply_transition_updates(new_status, specialist_id),
        )
        return res.matched_count == 1
