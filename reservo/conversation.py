"""
One WhatsApp turn: inbound message -> assistant reply -> reservation update.

    received -> tenant resolved -> tool round (at most MAX_TOOL_HOPS)
             -> replied -> persisted -> sent

Turns for the same (tenant, customer phone) pair are serialised so the
read-modify-write of the conversation and reservation cannot interleave.
"""

import os
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

import openai
from sqlalchemy.orm import Session

from . import ai, store, whatsapp
from .ai import AVAILABILITY_TOOL, ToolCall
from .availability import check_availability
from .extractor import apply_to_reservation, extract, strip_marker
from .history import Turn, decode, dump_turns, encode, load_turns
from .locks import KeyedLocks
from .models import Tenant
from .tz import local_today

logger = logging.getLogger(__name__)

CONVERSATION_TTL_HOURS = float(os.getenv("CONVERSATION_TTL_HOURS", "24"))
# tool round trips per inbound message
MAX_TOOL_HOPS = 1

FALLBACK_REPLY = "Sorry, I encountered an error processing your request."
APOLOGY_REPLY = "Sorry, we are having technical difficulties right now. Please write to us again in a few minutes."

_locks = KeyedLocks()


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str
    phone_id: Optional[str] = None
    wa_msg_id: Optional[str] = None


def inbound_messages(payload: dict) -> List[InboundMessage]:
    """Text messages of a Cloud API notification; receipts are skipped."""
    found = []
    for entry in payload.get("entry") or []:
        for change in entry.get("changes") or []:
            value = change.get("value") or {}
            phone_id = (value.get("metadata") or {}).get("phone_number_id")

            for msg in value.get("messages") or []:
                sender = msg.get("from")
                if msg.get("type", "text") == "button":
                    text = (msg.get("button") or {}).get("text") or ""
                else:
                    text = (msg.get("text") or {}).get("body") or ""
                text = text.strip()
                if not sender or not text:
                    continue
                found.append(InboundMessage(sender, text, phone_id, msg.get("id")))
    return found


def resolve_tenant(db: Session, phone_id: Optional[str]) -> Optional[Tenant]:
    today = local_today()

    def eligible(t: Tenant) -> bool:
        return t.is_running and t.is_active(today)

    matches = [t for t in store.find_tenants_by_channel_id(db, phone_id) if eligible(t)]
    if len(matches) > 1:
        logger.warning("[Webhook] %d active tenants share phone id %s, using %s",
                       len(matches), phone_id, matches[0].id)
    tenant = matches[0] if matches else None

    if tenant is None:
        # single-tenant installs with a stale phone id in the dashboard
        tenant = next(
            (t for t in store.tenants_with_channel_token(db)
             if len(t.wh_token) > 10 and eligible(t)),
            None,
        )
        if tenant is not None:
            logger.warning("[Webhook] No tenant for phone id %s, FALLING BACK to tenant %s",
                           phone_id, tenant.id)

    if tenant is None or not tenant.wh_token or not tenant.phone_id:
        return None
    return tenant


def execute_tool(db: Session, tenant: Tenant, call: ToolCall) -> dict:
    if call.name != "check_availability":
        logger.error("[Webhook] Model requested unknown tool %s", call.name)
        return {"error": f"Unknown tool '{call.name}'"}
    args = call.args
    party_size = args.get("partySize", args.get("party_size"))
    result = check_availability(
        db, tenant.id, args.get("date"), args.get("time"), party_size,
        tenant.availability_config(),
    )
    return result.as_dict()


async def generate_reply(db: Session, tenant: Tenant, history: List[Turn]) -> str:
    """
    Ask the model for the next reply, running requested tools in between.

    A tool call still pending once the hop budget is spent is replaced by
    ``FALLBACK_REPLY`` so the customer always gets a text answer.
    """
    language = tenant.ai_language or "es"
    reply = await ai.complete(tenant.ai_api_key, history, [AVAILABILITY_TOOL], language)

    hops = 0
    while isinstance(reply, ToolCall) and hops < MAX_TOOL_HOPS:
        hops += 1
        result = execute_tool(db, tenant, reply)
        logger.info("[Webhook] Tool result for %s: %s", reply.name, result)
        history.append(Turn(
            "system",
            f"[Tool Result for {reply.name}]: {json.dumps(result)}. "
            "If available=false, suggest the user changes date/time.",
        ))
        reply = await ai.complete(tenant.ai_api_key, history, None, language)

    if isinstance(reply, ToolCall):
        logger.warning("[Webhook] Tool hop budget exhausted (%s requested again)", reply.name)
        return FALLBACK_REPLY
    return reply


async def handle_message(db: Session, message: InboundMessage) -> str:
    tenant = resolve_tenant(db, message.phone_id)
    if tenant is None:
        logger.error("[Webhook] No active server matched phone id %s", message.phone_id)
        return "no_server_config"

    async with _locks.hold((tenant.id, message.sender)):
        return await run_turn(db, tenant, message)


async def run_turn(db: Session, tenant: Tenant, message: InboundMessage) -> str:
    logger.info("[Webhook] Message from %s to tenant %s: %s", message.sender, tenant.id, message.text)
    since = datetime.utcnow() - timedelta(hours=CONVERSATION_TTL_HOURS)
    conversation = store.find_live_conversation(db, tenant.id, message.sender, since)
    existing = store.find_open_reservation_by_phone(db, tenant.id, message.sender, since)

    if (message.wa_msg_id and conversation is not None
            and message.wa_msg_id in (conversation.message_ids or [])):
        logger.info("[Webhook] Message %s already answered, skipping redelivery", message.wa_msg_id)
        return "duplicate"

    turns = load_turns(conversation.turns) if conversation is not None else []
    if not turns and existing is not None and existing.raw_commentary:
        logger.info("[Webhook] Migrating legacy transcript of reservation %s", existing.id)
        turns = decode(existing.raw_commentary)
    history = turns + [Turn("user", message.text)]

    try:
        final = await generate_reply(db, tenant, list(history))
    except openai.OpenAIError:
        logger.exception("[Webhook] Completion failed for %s", message.sender)
        db.rollback()
        await whatsapp.send_text(tenant.wh_token, tenant.phone_id, message.sender, APOLOGY_REPLY)
        return "error"

    parsed = extract(final)
    reply = strip_marker(final)
    if parsed is not None:
        logger.info("[Webhook] Found reservation JSON: %s", parsed)

    transcript = encode(existing.raw_commentary if existing is not None else None, message.text, reply)
    write = apply_to_reservation(existing, parsed, transcript)
    if write.is_create:
        reservation = store.create_reservation(
            db,
            tenant_id=tenant.id,
            user_id=tenant.user_id,
            customer_phone=message.sender,
            **write.fields,
        )
        logger.info("[Webhook] Reservation %s created for %s", reservation.id, message.sender)
    else:
        store.update_reservation(db, write.reservation_id, write.fields)

    store.save_conversation(
        db, conversation, tenant.id, message.sender,
        dump_turns(history + [Turn("assistant", reply)]),
        message_id=message.wa_msg_id,
    )
    db.commit()

    if not reply:
        logger.warning("[Webhook] Empty reply for %s, nothing sent", message.sender)
    elif not await whatsapp.send_text(tenant.wh_token, tenant.phone_id, message.sender, reply):
        logger.error("[Webhook] Reply to %s was not delivered", message.sender)
    return "processed"


async def handle_payload(db: Session, payload: dict) -> dict:
    messages = inbound_messages(payload)
    if not messages:
        return {"status": "ignored"}

    statuses = [await handle_message(db, m) for m in messages]
    if "processed" in statuses:
        return {"status": "processed"}
    return {"status": statuses[-1]}
