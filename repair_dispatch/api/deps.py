from fastapi import Depends, Request

from repair_dispatch.core.config import Settings, get_settings
from repair_dispatch.db.mongo import (
    AUDIT_LOGS,
    REGISTRATION_SESSIONS,
    SERVICE_REQUESTS,
    SPECIALISTS,
    get_db,
)
from repair_dispatch.repositories.audit_repository import AuditRepository
from repair_dispatch.repositories.registration_sessions import RegistrationSessionRepository
from repair_dispatch.repositories.requests import ServiceRequestRepository
from repair_dispatch.repositories.specialists import SpecialistRepository
from repair_dispatch.services.audit_service import AuditService
from repair_dispatch.services.coordinator import AssignmentCoordinator
from repair_dispatch.services.gateway import NotificationGateway
from repair_dispatch.services.registration import RegistrationDialogue


def get_gateway(request: Request) -> NotificationGateway:
    return request.app.state.gateway


def get_request_repository(db=Depends(get_db)) -> ServiceRequestRepository:
    return ServiceRequestRepository(db[SERVICE_REQUESTS])


def get_specialist_repository(db=Depends(get_db)) -> SpecialistRepository:
    return SpecialistRepository(db[SPECIALISTS])


def get_audit_service(db=Depends(get_db)) -> AuditService:
    return AuditService(AuditRepository(db[AUDIT_LOGS]))


def get_coordinator(
    requests: ServiceRequestRepository = Depends(get_request_repository),
    specialists: SpecialistRepository = Depends(get_specialist_repository),
    gateway: NotificationGateway = Depends(get_gateway),
    audit: AuditService = Depends(get_audit_service),
) -> AssignmentCoordinator:
    return AssignmentCoordinator(requests, specialists, gateway, audit)


def get_registration(
    db=Depends(get_db),
    settings: Settings = Depends(get_settings),
    specialists: SpecialistRepository = Depends(get_specialist_repository),
    audit: AuditService = Depends(get_audit_service),
) -> RegistrationDialogue:
    sessions = RegistrationSessionRepository(
        db[REGISTRATION_SESSIONS], settings.registration_session_ttl_seconds
    )
    return RegistrationDialogue(sessions, specialists, audit)
