from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from repair_dispatch.models.registration import DialogueState


class RegistrationSessionRepository:
    """
    Per-identity registration dialogue state.

    Documents expire through a TTL index on ``updated_at``; the TTL monitor
    only runs periodically, so reads also treat stale sessions as absent.
    """

    def __init__(self, col, ttl_seconds: int):
        self.col = col
        self.ttl = timedelta(seconds=ttl_seconds)

    async def get(self, identity: str) -> Optional[DialogueState]:
        doc = await self.col.find_one({"identity": str(identity)})
        if not doc:
            return None
        doc.pop("_id", None)
        state = DialogueState(**doc)
        if datetime.utcnow() - state.updated_at > self.ttl:
            await self.delete(identity)
            return None
        return state

    async def save(self, state: DialogueState) -> DialogueState:
        state.updated_at = datetime.utcnow()
        doc = state.model_dump(mode="python")
        if doc.get("specialization") is not None:
            doc["specialization"] = state.specialization.value
        doc["step"] = state.step.value
        await self.col.update_one(
            {"identity": state.identity},
            {"$set": doc},
            upsert=True,
        )
        return state

    async def delete(self, identity: str) -> None:
        await self.col.delete_one({"identity": str(identity)})
