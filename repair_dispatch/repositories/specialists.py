from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from repair_dispatch.core.enums import ServiceType
from repair_dispatch.core.errors import DuplicateRegistration, UnknownSpecialist
from repair_dispatch.models.specialists import Specialist, SpecialistCreate


class SpecialistRepository:
    def __init__(self, col):
        self.col = col

    async def find_by_identity(self, identity: str) -> Specialist:
        doc = await self.col.find_one({"telegram_id": str(identity)})
        if not doc:
            raise UnknownSpecialist(identity)
        return Specialist(**doc)

    async def exists(self, identity: str) -> bool:
        return await self.col.count_documents({"telegram_id": str(identity)}) > 0

    async def find_active_by_specialization(
        self, tag: ServiceType | str, exclude_identity: Optional[str] = None
    ) -> List[Specialist]:
        filt: Dict[str, Any] = {
            "specialization": ServiceType(tag).value,
            "active": True,
        }
        if exclude_identity is not None:
            filt["telegram_id"] = {"$ne": str(exclude_identity)}
        return [Specialist(**doc) async for doc in self.col.find(filt)]

    async def create(self, data: SpecialistCreate) -> ObjectId:
        doc = data.model_dump(mode="json")
        if await self.exists(doc["telegram_id"]):
            raise DuplicateRegistration(doc["telegram_id"])

        doc["created_at"] = datetime.utcnow()
        try:
            res = await self.col.insert_one(doc)
        except DuplicateKeyError as exc:
            # lost a race against a concurrent registration for the same identity
            raise DuplicateRegistration(doc["telegram_id"]) from exc
        return res.inserted_id
