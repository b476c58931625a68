"""
Notification gateway.

Outbound messages to specialists go through the Telegram Bot API. Every call
is bounded by the client's timeout; any transport or API failure surfaces as
``GatewayDeliveryFailure`` so callers can contain it per recipient.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import httpx

from repair_dispatch.core.errors import GatewayDeliveryFailure

logger = logging.getLogger(__name__)


class NotificationGateway(Protocol):
    async def send_message(
        self, recipient: str, text: str, reply_markup: Optional[dict] = None
    ) -> None: ...

    async def send_photo(self, recipient: str, photo: str) -> None: ...

    async def answer_callback(self, callback_id: str, text: Optional[str] = None) -> None: ...


class TelegramGateway:
    def __init__(self, client: httpx.AsyncClient, token: str, api_base: str):
        self.client = client
        self.base_url = f"{api_base.rstrip('/')}/bot{token}"

    async def _call(
        self,
        recipient: str,
        method: str,
        data: Dict[str, Any],
        files: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{method}"
        try:
            if files:
                r = await self.client.post(url, data=data, files=files)
            else:
                r = await self.client.post(url, json=data)
        except httpx.HTTPError as exc:
            raise GatewayDeliveryFailure(recipient, f"{method}: {exc!r}") from exc

        try:
            body = r.json()
        except ValueError:
            body = {}
        if r.status_code != 200 or not body.get("ok"):
            reason = body.get("description") or f"HTTP {r.status_code}"
            raise GatewayDeliveryFailure(recipient, f"{method}: {reason}")
        return body

    async def send_message(
        self, recipient: str, text: str, reply_markup: Optional[dict] = None
    ) -> None:
        payload: Dict[str, Any] = {"chat_id": recipient, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call(recipient, "sendMessage", payload)

    async def send_photo(self, recipient: str, photo: str) -> None:
        path = Path(photo)
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise GatewayDeliveryFailure(recipient, f"sendPhoto: {exc}") from exc
        await self._call(
            recipient,
            "sendPhoto",
            {"chat_id": recipient},
            files={"photo": (path.name, content)},
        )

    async def answer_callback(self, callback_id: str, text: Optional[str] = None) -> None:
        payload: Dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
        await self._call(callback_id, "answerCallbackQuery", payload)

    async def set_webhook(self, url: str, secret: Optional[str] = None) -> None:
        payload: Dict[str, Any] = {"url": url, "allowed_updates": ["message", "callback_query"]}
        if secret:
            payload["secret_token"] = secret
        await self._call("webhook", "setWebhook", payload)
        logger.info("Telegram webhook registered at %s", url)
