# repair_dispatch/api/telegram.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from repair_dispatch.api.deps import (
    get_coordinator,
    get_gateway,
    get_registration,
    get_specialist_repository,
)
from repair_dispatch.core.config import Settings, get_settings
from repair_dispatch.core.errors import (
    DuplicateRegistration,
    GatewayDeliveryFailure,
    UnknownSpecialist,
)
from repair_dispatch.repositories.specialists import SpecialistRepository
from repair_dispatch.schemas.telegram import CallbackQuery, Message, Update
from repair_dispatch.services import messages
from repair_dispatch.services.coordinator import AssignmentCoordinator
from repair_dispatch.services.gateway import NotificationGateway
from repair_dispatch.services.registration import RegistrationDialogue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["Telegram"])


async def _send(
    gateway: NotificationGateway, chat_id: str, text: str, reply_markup: Optional[dict] = None
) -> None:
    try:
        await gateway.send_message(chat_id, text, reply_markup=reply_markup)
    except GatewayDeliveryFailure as exc:
        logger.warning("Reply to %s failed: %s", chat_id, exc.reason)


# -------------------------
# Accept button
# -------------------------
async def handle_callback(
    query: CallbackQuery,
    gateway: NotificationGateway,
    coordinator: AssignmentCoordinator,
) -> None:
    identity = str(query.from_user.id)
    request_id = messages.parse_accept_token(query.data)
    try:
        if request_id is None:
            return
        try:
            await coordinator.claim(request_id, identity)
        except UnknownSpecialist:
            logger.warning("Accept of %s by unregistered user %s", request_id, identity)
            await _send(gateway, identity, messages.NOT_REGISTERED)
    finally:
        try:
            await gateway.answer_callback(query.id)
        except GatewayDeliveryFailure as exc:
            logger.warning("answerCallbackQuery %s failed: %s", query.id, exc.reason)


# -------------------------
# Text messages
# -------------------------
async def handle_message(
    message: Message,
    gateway: NotificationGateway,
    registration: RegistrationDialogue,
    specialists: SpecialistRepository,
) -> None:
    if message.from_user is None or message.text is None:
        return

    identity = str(message.from_user.id)
    chat_id = str(message.chat.id)
    text = message.text.strip()

    if text == "/start":
        await _send(gateway, chat_id, messages.WELCOME, messages.main_keyboard())
        return

    if text == messages.BTN_REGISTER:
        try:
            reply = await registration.start(identity)
        except DuplicateRegistration:
            await _send(gateway, chat_id, messages.ALREADY_REGISTERED)
            return
        await _send(gateway, chat_id, reply.text, reply.reply_markup)
        return

    if text == messages.BTN_PROFILE and not await registration.in_progress(identity):
        try:
            specialist = await specialists.find_by_identity(identity)
        except UnknownSpecialist:
            await _send(gateway, chat_id, messages.NOT_REGISTERED, messages.main_keyboard())
            return
        await _send(gateway, chat_id, messages.profile_text(specialist))
        return

    try:
        reply = await registration.answer(identity, text)
    except DuplicateRegistration:
        await _send(gateway, chat_id, messages.ALREADY_REGISTERED)
        return
    if reply is not None:
        await _send(gateway, chat_id, reply.text, reply.reply_markup)


@router.post("/webhook")
async def telegram_webhook(
    update: Update,
    secret_token: str | None = Header(default=None, alias="X-Telegram-Bot-Api-Secret-Token"),
    settings: Settings = Depends(get_settings),
    gateway: NotificationGateway = Depends(get_gateway),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
    registration: RegistrationDialogue = Depends(get_registration),
    specialists: SpecialistRepository = Depends(get_specialist_repository),
):
    if settings.telegram_webhook_secret and secret_token != settings.telegram_webhook_secret:
        logger.warning("Rejected webhook call with a bad secret token")
        raise HTTPException(403, "Invalid secret token")

    # always 200 once authenticated, otherwise Telegram redelivers the update
    try:
        if update.callback_query is not None:
            await handle_callback(update.callback_query, gateway, coordinator)
        elif update.message is not None:
            await handle_message(update.message, gateway, registration, specialists)
    except Exception:
        logger.exception("Failed to handle update %s", update.update_id)
    return {"ok": True}
