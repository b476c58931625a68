from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId

from repair_dispatch.core.enums import RequestStatus


ALLOWED_TRANSITIONS = {
    RequestStatus.new: [RequestStatus.accepted],
    RequestStatus.accepted: [],
}


def get_allowed_next(state: RequestStatus) -> List[RequestStatus]:
    return ALLOWED_TRANSITIONS.get(RequestStatus(state), [])


def validate_transition(
    current_state: RequestStatus,
    target_state: RequestStatus,
    specialist_id: Optional[ObjectId],
) -> None:
    if RequestStatus(target_state) not in get_allowed_next(current_state):
        raise ValueError(f"Invalid transition from {current_state} to {target_state}")
    if target_state == RequestStatus.accepted and specialist_id is None:
        raise ValueError("specialist_id is required for accepted state")


def apply_transition_updates(
    target_state: RequestStatus, specialist_id: Optional[ObjectId]
) -> Dict[str, Dict[str, Any]]:
    now = datetime.utcnow()
    updates: Dict[str, Dict[str, Any]] = {
        "$set": {
            "status": RequestStatus(target_state).value,
            "timestamps.updated_at": now,
        }
    }
    if target_state == RequestStatus.accepted:
        updates["$set"]["specialist_id"] = specialist_id
        updates["$set"]["timestamps.accepted_at"] = now
    return updates
