from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from repair_dispatch.core.enums import RegistrationStep
from repair_dispatch.core.errors import DuplicateRegistration
from repair_dispatch.models.registration import DialogueState
from repair_dispatch.models.specialists import SpecialistCreate
from repair_dispatch.repositories.registration_sessions import RegistrationSessionRepository
from repair_dispatch.repositories.specialists import SpecialistRepository
from repair_dispatch.services import messages
from repair_dispatch.services.audit_service import AuditService

logger = logging.getLogger(__name__)


@dataclass
class Reply:
    text: str
    reply_markup: Optional[dict] = None


PROMPTS = {
    RegistrationStep.name: Reply(messages.ASK_NAME),
    RegistrationStep.specialization: Reply(
        messages.ASK_SPECIALIZATION, messages.specialization_keyboard()
    ),
    RegistrationStep.districts: Reply(messages.ASK_DISTRICTS),
    RegistrationStep.phone: Reply(messages.ASK_PHONE),
}


class RegistrationDialogue:
    """
    Four-step registration conversation: name, specialization, districts,
    phone. Each identity has its own session; the phone answer persists the
    specialist and discards the session.
    """

    def __init__(
        self,
        sessions: RegistrationSessionRepository,
        specialists: SpecialistRepository,
        audit: Optional[AuditService] = None,
    ):
        self.sessions = sessions
        self.specialists = specialists
        self.audit = audit

    async def start(self, identity: str) -> Reply:
        identity = str(identity)
        if await self.specialists.exists(identity):
            raise DuplicateRegistration(identity)

        await self.sessions.save(DialogueState(identity=identity))
        return PROMPTS[RegistrationStep.name]

    async def in_progress(self, identity: str) -> bool:
        return await self.sessions.get(str(identity)) is not None

    async def answer(self, identity: str, text: str) -> Optional[Reply]:
        """Apply one answer. Returns None when the identity has no open dialogue."""
        state = await self.sessions.get(str(identity))
        if state is None:
            return None

        text = (text or "").strip()
        if not text:
            return PROMPTS[state.step]

        if state.step == RegistrationStep.name:
            state.name = text
            state.step = RegistrationStep.specialization

        elif state.step == RegistrationStep.specialization:
            specialization = messages.parse_service_type(text)
            if specialization is None:
                return PROMPTS[RegistrationStep.specialization]
            state.specialization = specialization
            state.step = RegistrationStep.districts

        elif state.step == RegistrationStep.districts:
            state.districts = [d.strip() for d in text.split(",") if d.strip()]
            state.step = RegistrationStep.phone

        elif state.step == RegistrationStep.phone:
            return await self._complete(state, text)

        await self.sessions.save(state)
        return PROMPTS[state.step]

    async def _complete(self, state: DialogueState, phone: str) -> Reply:
        state.step = RegistrationStep.done
        data = SpecialistCreate(
            telegram_id=state.identity,
            name=state.name,
            specialization=state.specialization,
            districts=state.districts,
            phone=phone,
        )
        try:
            specialist_id = await self.specialists.create(data)
        finally:
            await self.sessions.delete(state.identity)

        logger.info("Specialist %s registered (%s)", state.identity, data.specialization.value)
        await self._audit(state.identity, specialist_id, data)
        return Reply(messages.REGISTRATION_DONE, messages.keyboard([[messages.BTN_PROFILE]]))

    async def _audit(self, identity: str, specialist_id, data: SpecialistCreate) -> None:
        if self.audit is None:
            return
        try:
            await self.audit.log_event(
                "specialist.register",
                {"role": "specialist", "telegram_id": identity},
                {"type": "specialist", "id": specialist_id},
                "Specialist registered",
                {"specialization": data.specialization.value, "districts": data.districts},
            )
        except Exception:
            logger.exception("Failed to write audit event specialist.register for %s", identity)
