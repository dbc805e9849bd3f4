import os
import logging
from typing import Literal, Optional

import openai
from fastapi import FastAPI, Depends, Request, HTTPException, Query, Response
from logging.config import fileConfig
from alembic.config import Config
from alembic import command
from pydantic import BaseModel
from sqlalchemy.orm import Session

from . import ai, whatsapp
from .conversation import handle_payload
from .deps import get_db, reservation_or_404
from .models import Reservation

app = FastAPI()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

VERIFY_TOKEN = os.getenv("VERIFY_TOKEN", "")


@app.on_event("startup")
def startup():
    # === 1) Прогоняем Alembic-миграции ===
    if os.getenv("RUN_MIGRATIONS", "1") == "1":
        logger.info(">>> STARTUP: running Alembic migrations")
        here = os.path.dirname(__file__)
        cfg_path = os.path.join(here, "alembic.ini")
        alembic_cfg = Config(cfg_path)
        fileConfig(alembic_cfg.config_file_name, disable_existing_loggers=False)
        command.upgrade(alembic_cfg, "head")
        logger.info(">>> STARTUP: migrations complete")

    # === 2) seed арендатора из ENV (одиночная установка) ===
    from .db import SessionLocal
    from .models import Tenant

    phone = os.getenv("WH_PHONE_ID")
    token = os.getenv("WH_TOKEN")
    if not (phone and token):
        return
    db = SessionLocal()
    try:
        exists = db.query(Tenant).filter_by(phone_id=phone).first()
        if not exists:
            logger.info(">>> STARTUP: seeding tenant for phone id %s", phone)
            db.add(Tenant(
                id=os.getenv("WH_TENANT_ID", "default"),
                name=os.getenv("WH_TENANT_NAME", "Restaurant"),
                phone_id=phone,
                wh_token=token,
                ai_api_key=os.getenv("OPENAI_API_KEY", ""),
                status="active",
                power_status="running",
                ai_language=os.getenv("AI_LANGUAGE", "es"),
            ))
            db.commit()
    finally:
        db.close()

# --- Health check ---
@app.get("/health", include_in_schema=False)
@app.head("/health", include_in_schema=False)
async def health():
    return {"ok": True}

# --- Webhook verification ---
@app.get("/webhook", include_in_schema=False)
async def verify_webhook(
    hub_mode: str = Query(None, alias="hub.mode"),
    hub_token: str = Query(None, alias="hub.verify_token"),
    hub_challenge: str = Query(None, alias="hub.challenge"),
):
    if hub_mode == "subscribe" and VERIFY_TOKEN and hub_token == VERIFY_TOKEN:
        logger.info("[Webhook] Verified successfully.")
        return Response(content=hub_challenge or "", media_type="text/plain")
    raise HTTPException(status_code=403, detail="Forbidden")

# --- Inbound messages ---
@app.post("/webhook", include_in_schema=False)
async def webhook(
    req: Request,
    db: Session = Depends(get_db),
):
    try:
        payload = await req.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Bad Request")
    if not isinstance(payload, dict):
        return {"status": "ignored"}
    return await handle_payload(db, payload)


# --- Credential checks for the dashboard ---
class ChannelCredentials(BaseModel):
    token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

class ProviderKey(BaseModel):
    api_key: str

@app.post("/whatsapp/validate")
async def validate_whatsapp(body: ChannelCredentials):
    if body.token:
        return {"valid": await whatsapp.validate_channel_token(body.token)}
    if body.client_id and body.client_secret:
        return {"valid": await whatsapp.validate_channel_app_credentials(body.client_id, body.client_secret)}
    raise HTTPException(status_code=400, detail="Missing validation parameters")

@app.post("/ai/validate")
async def validate_ai(body: ProviderKey):
    return {"valid": await ai.validate_provider_key(body.api_key)}


# --- Staff decision on a reservation ---
class StatusUpdate(BaseModel):
    status: Literal["pending", "confirmed", "cancelled"]
    notify: bool = False

@app.patch("/reservations/{reservation_id}/status")
async def update_status(
    body: StatusUpdate,
    reservation: Reservation = Depends(reservation_or_404),
    db: Session = Depends(get_db),
):
    reservation.status = body.status
    db.commit()
    logger.info("Reservation %s is now %s", reservation.id, reservation.status)

    notified = False
    if body.notify and reservation.status != "pending":
        tenant = reservation.tenant
        if tenant is None or not tenant.wh_token or not tenant.phone_id:
            logger.error("No WhatsApp configuration for reservation %s", reservation.id)
        else:
            try:
                text = await ai.draft_status_notification(tenant.ai_api_key, reservation, tenant.ai_language or "es")
            except openai.OpenAIError:
                logger.exception("Could not draft notification for reservation %s", reservation.id)
            else:
                notified = await whatsapp.send_text(tenant.wh_token, tenant.phone_id, reservation.customer_phone, text)

    return {"id": reservation.id, "status": reservation.status, "notified": notified}
