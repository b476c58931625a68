import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from repair_dispatch.api.admin.audit import router as audit_router
from repair_dispatch.api.service_requests import router as service_requests_router
from repair_dispatch.api.telegram import router as telegram_router
from repair_dispatch.core.config import get_settings
from repair_dispatch.core.errors import GatewayDeliveryFailure
from repair_dispatch.db.mongo import ensure_indexes, mongo
from repair_dispatch.services.gateway import TelegramGateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    mongo.connect(settings)
    await ensure_indexes(mongo.db, settings.registration_session_ttl_seconds)

    client = httpx.AsyncClient(timeout=settings.gateway_timeout_seconds)
    gateway = TelegramGateway(client, settings.bot_token, settings.telegram_api_base)
    app.state.gateway = gateway

    if settings.telegram_webhook_url:
        try:
            await gateway.set_webhook(
                settings.telegram_webhook_url, settings.telegram_webhook_secret
            )
        except GatewayDeliveryFailure as exc:
            logger.warning("Could not register Telegram webhook: %s", exc.reason)

    logger.info("%s started", settings.app_name)
    try:
        yield
    finally:
        await client.aclose()
        mongo.close()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(service_requests_router)
    app.include_router(telegram_router)
    app.include_router(audit_router)

    # uploaded request photos
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    @app.get("/")
    def root():
        return {"ok": True, "docs": "/docs"}

    return app


app = create_app()
