from datetime import datetime
from typing import Any, Dict, Optional

from repair_dispatch.repositories.audit_repository import AuditRepository


class AuditService:
    def __init__(self, repo: AuditRepository):
        self.repo = repo

    async def list_logs(self, limit: int = 200):
        return await self.repo.list(limit)

    async def log_event(
        self,
        type: str,
        actor: Dict[str, Any],
        entity: Dict[str, Any],
        message: str,
        meta: Optional[Dict[str, Any]] = None,
    ):
        await self.repo.create({
            "time": datetime.utcnow(),
            "type": type,
            "actor": actor,
            "entity": entity,
            "message": message,
            "meta": meta or {},
        })
