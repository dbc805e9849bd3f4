"""WhatsApp Cloud API client (Graph API)."""

import os
import logging

import httpx

logger = logging.getLogger(__name__)

GRAPH_API_VERSION = os.getenv("GRAPH_API_VERSION", "v21.0")
GRAPH_URL = f"https://graph.facebook.com/{GRAPH_API_VERSION}"
HTTP_TIMEOUT = float(os.getenv("WHATSAPP_TIMEOUT_SECONDS", "15"))


async def send_text(token: str, phone_id: str, to: str, text: str) -> bool:
    """Send a text message. Failures are logged and reported as ``False``."""
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            resp = await client.post(
                f"{GRAPH_URL}/{phone_id}/messages",
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                json={
                    "messaging_product": "whatsapp",
                    "to": to,
                    "type": "text",
                    "text": {"body": text},
                },
            )
    except httpx.HTTPError as e:
        logger.error("[WhatsApp] Network error sending to %s: %s", to, e)
        return False

    if resp.is_error:
        logger.error("[WhatsApp] Send error %s: %s", resp.status_code, resp.text)
        return False
    logger.info("[WhatsApp] Reply sent to %s", to)
    return True


async def validate_channel_token(token: str) -> bool:
    token = (token or "").strip()
    if not token:
        return False
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            resp = await client.get(f"{GRAPH_URL}/me", params={"access_token": token})
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("[WhatsApp] Token validation failed: %s", e)
        return False
    if resp.is_error:
        logger.error("[WhatsApp] Token validation error: %s", data)
        return False
    return bool(data.get("id"))


async def validate_channel_app_credentials(client_id: str, client_secret: str) -> bool:
    client_id = (client_id or "").strip()
    client_secret = (client_secret or "").strip()
    if not client_id or not client_secret:
        return False
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            resp = await client.get(
                "https://graph.facebook.com/oauth/access_token",
                params={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "grant_type": "client_credentials",
                },
            )
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("[WhatsApp] Credentials validation failed: %s", e)
        return False
    if resp.is_error or not data.get("access_token"):
        logger.error("[WhatsApp] Invalid client credentials: %s", data)
        return False
    return True
