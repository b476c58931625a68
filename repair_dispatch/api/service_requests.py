# repair_dispatch/api/service_requests.py
import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from repair_dispatch.api.deps import get_coordinator, get_request_repository
from repair_dispatch.core.config import Settings, get_settings
from repair_dispatch.core.errors import NotFound
from repair_dispatch.models.service_requests import ServiceRequest, ServiceRequestCreate
from repair_dispatch.repositories.requests import ServiceRequestRepository
from repair_dispatch.schemas.service_request import ServiceRequestOut, SubmitRequestResponse
from repair_dispatch.services.coordinator import AssignmentCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Service Requests"])

ALLOWED = {"image/jpeg", "image/png", "image/jpg", "image/webp"}


def _out(request: ServiceRequest) -> ServiceRequestOut:
    return ServiceRequestOut(
        id=request.request_id,
        service_type=request.service_type.value,
        address=request.address,
        description=request.description,
        common_problem=request.common_problem,
        photo=request.photo,
        status=request.status.value,
        created_at=request.timestamps.created_at,
        accepted_at=request.timestamps.accepted_at,
    )


async def _store_photo(photo: UploadFile, upload_dir: str) -> str:
    if photo.content_type not in ALLOWED:
        raise HTTPException(400, f"Unsupported file type: {photo.content_type}")

    ext = ".jpg"
    if photo.content_type == "image/png":
        ext = ".png"
    elif photo.content_type == "image/webp":
        ext = ".webp"

    out_dir = Path(upload_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{uuid.uuid4().hex}{ext}"
    out_path.write_bytes(await photo.read())
    logger.info("Stored photo %s (%d bytes)", out_path, out_path.stat().st_size)
    return str(out_path)


# =========================
# Submit Request
# =========================
@router.post("/submit-request", response_model=SubmitRequestResponse)
async def submit_request(
    service_type: str = Form(..., alias="serviceType"),
    address: str = Form(...),
    description: str = Form(""),
    common_problem: str = Form("", alias="commonProblem"),
    phone: str = Form(...),
    photo: UploadFile | None = File(None),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
    settings: Settings = Depends(get_settings),
):
    try:
        data = ServiceRequestCreate(
            service_type=service_type,
            address=address.strip(),
            description=description.strip(),
            common_problem=common_problem.strip(),
            phone=phone.strip(),
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    if photo is not None and photo.filename:
        data.photo = await _store_photo(photo, settings.upload_dir)

    request, report = await coordinator.submit(data)
    return SubmitRequestResponse(
        request_id=request.request_id,
        status=request.status.value,
        notified=len(report.notified),
    )


# =========================
# Get Request
# =========================
@router.get("/requests/{request_id}", response_model=ServiceRequestOut)
async def get_service_request(
    request_id: str,
    requests: ServiceRequestRepository = Depends(get_request_repository),
):
    try:
        request = await requests.get(request_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Request not found")
    return _out(request)
