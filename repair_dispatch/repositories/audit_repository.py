from bson import ObjectId
from fastapi.encoders import jsonable_encoder


class AuditRepository:
    def __init__(self, collection):
        self.collection = collection

    async def list(self, limit: int = 200):
        out = []
        async for doc in self.collection.find().sort("time", -1).limit(limit):
            doc["id"] = str(doc.pop("_id"))
            out.append(doc)

        return jsonable_encoder(out, custom_encoder={ObjectId: str})

    async def create(self, event: dict):
        await self.collection.insert_one(event)
