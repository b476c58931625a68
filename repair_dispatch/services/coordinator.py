"""
Assignment coordinator.

Fans a new request out to every eligible specialist and settles competing
accept actions. The coordinator keeps no state and takes no locks: exclusive
ownership of a request is decided solely by the store's conditional update.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from bson import ObjectId

from repair_dispatch.core.enums import ClaimOutcome, RequestStatus
from repair_dispatch.core.errors import GatewayDeliveryFailure
from repair_dispatch.models.service_requests import ServiceRequest, ServiceRequestCreate
from repair_dispatch.models.specialists import Specialist
from repair_dispatch.repositories.requests import ServiceRequestRepository
from repair_dispatch.repositories.specialists import SpecialistRepository
from repair_dispatch.services import messages
from repair_dispatch.services.audit_service import AuditService
from repair_dispatch.services.gateway import NotificationGateway

logger = logging.getLogger(__name__)


@dataclass
class BroadcastReport:
    request_id: str
    notified: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


@dataclass
class ClaimResult:
    outcome: ClaimOutcome
    request_id: str
    request: Optional[ServiceRequest] = None
    specialist: Optional[Specialist] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == ClaimOutcome.accepted


class AssignmentCoordinator:
    def __init__(
        self,
        requests: ServiceRequestRepository,
        specialists: SpecialistRepository,
        gateway: NotificationGateway,
        audit: Optional[AuditService] = None,
    ):
        self.requests = requests
        self.specialists = specialists
        self.gateway = gateway
        self.audit = audit

    # ------------------------------------------------------------------
    # Submission + broadcast
    # ------------------------------------------------------------------
    async def submit(self, data: ServiceRequestCreate) -> Tuple[ServiceRequest, BroadcastReport]:
        request_id = await self.requests.create(data)
        request = await self.requests.get(request_id)
        logger.info("Request %s created (%s)", request.request_id, request.service_type.value)

        await self._audit(
            "request.create",
            {"role": "client"},
            request.request_id,
            "Service request created",
            {"service_type": request.service_type.value, "address": request.address},
        )

        report = await self.broadcast(request)
        return request, report

    async def broadcast(self, request: ServiceRequest) -> BroadcastReport:
        recipients = await self.specialists.find_active_by_specialization(request.service_type)
        report = BroadcastReport(request_id=request.request_id)
        if not recipients:
            logger.info(
                "No active %s specialists for request %s",
                request.service_type.value,
                request.request_id,
            )
            return report

        text = messages.new_request_text(request)
        markup = messages.accept_keyboard(request.request_id)

        async def notify(recipient: str) -> None:
            await self.gateway.send_message(recipient, text, reply_markup=markup)
            if request.photo:
                await self.gateway.send_photo(recipient, request.photo)

        report.notified, report.failed = await self._fan_out(
            [s.telegram_id for s in recipients], notify, request.request_id
        )
        logger.info(
            "Request %s broadcast: %d notified, %d failed",
            request.request_id,
            len(report.notified),
            len(report.failed),
        )
        return report

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------
    async def claim(self, request_id: str | ObjectId, identity: str) -> ClaimResult:
        identity = str(identity)
        # raises UnknownSpecialist; the request is left untouched
        specialist = await self.specialists.find_by_identity(identity)

        won = await self.requests.atomic_conditional_update(
            request_id, RequestStatus.new, RequestStatus.accepted, specialist.id
        )
        if not won:
            existing = await self.requests.find(request_id)
            outcome = ClaimOutcome.not_found if existing is None else ClaimOutcome.already_claimed
            logger.info("Claim of %s by %s rejected: %s", request_id, identity, outcome.value)
            await self._deliver(identity, self.gateway.send_message(identity, messages.NO_LONGER_AVAILABLE))
            return ClaimResult(outcome, str(request_id))

        request = await self.requests.get(request_id)
        logger.info("Request %s accepted by %s", request.request_id, identity)
        await self._audit(
            "request.accepted",
            {"role": "specialist", "telegram_id": identity},
            request.request_id,
            "Request accepted",
            {"specialist_id": specialist.id},
        )

        await self._deliver(identity, self.gateway.send_message(identity, messages.accepted_text(request)))

        others = await self.specialists.find_active_by_specialization(
            request.service_type, exclude_identity=identity
        )
        taken = messages.taken_text(request)
        await self._fan_out(
            [s.telegram_id for s in others],
            lambda recipient: self.gateway.send_message(recipient, taken),
            request.request_id,
        )
        return ClaimResult(ClaimOutcome.accepted, request.request_id, request, specialist)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _fan_out(
        self,
        recipients: Sequence[str],
        send: Callable[[str], Awaitable[None]],
        request_id: str,
    ) -> Tuple[List[str], List[str]]:
        results = await asyncio.gather(*(send(r) for r in recipients), return_exceptions=True)
        delivered: List[str] = []
        failed: List[str] = []
        for recipient, result in zip(recipients, results):
            if isinstance(result, BaseException):
                self._log_failure(recipient, request_id, result)
                failed.append(recipient)
            else:
                delivered.append(recipient)
        return delivered, failed

    async def _deliver(self, recipient: str, send: Awaitable[None]) -> bool:
        try:
            await send
        except Exception as exc:
            self._log_failure(recipient, None, exc)
            return False
        return True

    @staticmethod
    def _log_failure(recipient: str, request_id: Optional[str], exc: BaseException) -> None:
        if isinstance(exc, GatewayDeliveryFailure):
            logger.warning("Notification to %s (request %s) failed: %s", recipient, request_id, exc.reason)
        else:
            logger.error(
                "Unexpected error notifying %s (request %s)",
                recipient,
                request_id,
                exc_info=exc,
            )

    async def _audit(self, type: str, actor: dict, request_id: str, message: str, meta: dict) -> None:
        if self.audit is None:
            return
        try:
            await self.audit.log_event(
                type, actor, {"type": "service_request", "id": request_id}, message, meta
            )
        except Exception:
            logger.exception("Failed to write audit event %s for %s", type, request_id)
