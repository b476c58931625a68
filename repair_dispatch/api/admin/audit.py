from fastapi import APIRouter, Depends, Query

from repair_dispatch.api.deps import get_audit_service
from repair_dispatch.services.audit_service import AuditService

router = APIRouter(prefix="/admin/audit", tags=["Admin - Audit"])


@router.get("")
async def list_audit_logs(
    limit: int = Query(200, ge=1, le=1000),
    service: AuditService = Depends(get_audit_service),
):
    return await service.list_logs(limit)
