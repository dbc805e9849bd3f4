"""
Completion client for the reservation assistant.

``complete`` returns either the assistant text or a ``ToolCall`` when the
model asks for a function to be executed first.
"""

import os
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Union

import openai
from openai import AsyncOpenAI

from .history import Turn
from .tz import local_now

logger = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))

# seeded demo tenants carry this key; it never reaches the provider
DEMO_KEY = "mock_ai_key_123"

NO_KEY_MESSAGE = "System Error: No valid AI API Key found. Please configure it in the dashboard."
UNAVAILABLE_MESSAGE = "The assistant is currently unavailable."

LANGUAGE_INSTRUCTIONS = {
    "es": "You MUST speak ONLY in Spanish. If the user speaks English, politely reply in Spanish that you only speak Spanish.",
    "en": "You MUST speak ONLY in English. If the user speaks Spanish, politely reply in English that you only speak English.",
    "both": "You must detect the user's language (English or Spanish) and reply in the SAME language. If unsure, default to Spanish.",
}

SYSTEM_PROMPT_TEMPLATE = """
You are a professional, friendly, and efficient AI Reservation Assistant for a high-end restaurant on WhatsApp.
Your goal is to help customers make reservations.

{language_instruction}

Strict Guardrails (CRITICAL):
1. You are a **RESERVATION ASSISTANT ONLY**.
2. Do NOT accept requests for money, free meals, discounts, or special financial favors.
3. If a user asks for money or free food, politely deny and steer the conversation back to booking a table.
4. Do NOT engage in roleplay outside of being a restaurant host.
5. Do NOT provide code or technical support.

Information to Collect:
1. Customer Name
2. Party Size (number of guests)
3. Date of reservation
4. Time of reservation
5. Dietary Restrictions/Allergies (if any)
6. Extra Notes/Special Requests (if any)

Today's Date: {date}
Current Time: {time}

Rules:
- Personality: Helpful, polite, and very concise (WhatsApp style). Use subtle emojis naturally.
- Turn-taking: If information is missing, ask for it one by one or in small groups. Don't overwhelm the user.
- Clarity: Interpret dates relative to "Today's Date".
- Availability: Use the check_availability tool BEFORE summarizing a reservation. If it is not available, explain why and ask for another date or time.
- Confirmation: Once you have ALL 6 pieces (even if Allergies/Notes are "None"), summarize them clearly and ask for confirmation.
- CRITICAL: Only after the user confirms, say that their reservation is received and PENDING confirmation. Do NOT say it is confirmed yet.
- CRITICAL: Include the hidden JSON block at the end of your message ONLY when the user confirms the reservation:
RESERVATION_JSON:{{"name": "Full Name", "pax": 4, "date": "YYYY-MM-DD", "time": "HH:MM", "allergies": "text", "notes": "text", "occasion": "text", "seating": "text"}}
"""

AVAILABILITY_TOOL = {
    "type": "function",
    "function": {
        "name": "check_availability",
        "description": "Check if the restaurant has available seats for a specific date and time. Use this BEFORE confirming any reservation.",
        "parameters": {
            "type": "object",
            "properties": {
                "date": {"type": "string", "description": "Date in YYYY-MM-DD format"},
                "time": {"type": "string", "description": "Time in HH:MM format"},
                "partySize": {"type": "integer", "description": "Number of guests"},
            },
            "required": ["date", "time", "partySize"],
        },
    },
}


@dataclass
class ToolCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None


Completion = Union[str, ToolCall]


def system_prompt(language: str = "es", now: Optional[datetime] = None) -> str:
    now = now or local_now()
    instruction = LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS["both"])
    return SYSTEM_PROMPT_TEMPLATE.format(
        language_instruction=instruction,
        date=f"{now:%A, %B} {now.day}, {now.year}",
        time=now.strftime("%H:%M"),
    )


def resolve_key(provider_key: Optional[str]) -> str:
    key = (provider_key or "").strip()
    if not key or key == DEMO_KEY:
        key = OPENAI_API_KEY.strip()
    return key


@lru_cache(maxsize=32)
def _client(api_key: str) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=api_key, timeout=AI_TIMEOUT_SECONDS, max_retries=0)


def _parse_tool_call(tool_call) -> ToolCall:
    try:
        args = json.loads(tool_call.function.arguments or "{}")
    except (TypeError, ValueError):
        logger.error("[AI] Tool call %s had unreadable arguments: %r",
                     tool_call.function.name, tool_call.function.arguments)
        args = {}
    if not isinstance(args, dict):
        args = {}
    return ToolCall(name=tool_call.function.name, args=args, id=tool_call.id)


async def complete(
    provider_key: Optional[str],
    history: Sequence[Turn],
    tools: Optional[List[dict]] = None,
    language: str = "es",
) -> Completion:
    """
    Run one chat completion with the assistant system prompt prepended.

    Returns ``NO_KEY_MESSAGE`` when neither the tenant nor the environment
    provides a key. Provider errors (including timeouts) propagate.
    """
    key = resolve_key(provider_key)
    if not key:
        logger.warning("[AI] No valid API key configured, returning fixed reply")
        return NO_KEY_MESSAGE

    messages = [{"role": "system", "content": system_prompt(language)}]
    messages += [t.as_message() for t in history]

    kwargs = {}
    if tools:
        kwargs["tools"] = tools
        kwargs["tool_choice"] = "auto"

    resp = await _client(key).chat.completions.create(
        model=CHAT_MODEL,
        messages=messages,
        temperature=0.7,
        max_tokens=1000,
        **kwargs,
    )
    message = resp.choices[0].message
    if message.tool_calls:
        call = _parse_tool_call(message.tool_calls[0])
        logger.info("[AI] Model requested tool %s", call.name)
        return call
    return (message.content or "").strip() or UNAVAILABLE_MESSAGE


async def validate_provider_key(api_key: str) -> bool:
    key = (api_key or "").strip()
    if not key:
        return False
    try:
        await _client(key).models.list()
        return True
    except openai.OpenAIError as e:
        logger.error("[AI] Key validation failed: %s", e)
        return False


NOTIFICATION_PROMPT = """
You are a helpful restaurant assistant.
A customer named {name} has a reservation for {date} at {time}.
The status of this reservation has just been changed to: {status}.

Task: Write a short, friendly WhatsApp message to the customer informing them of this update.
- If CONFIRMED: Say it is approved/confirmed and we look forward to seeing them.
- If CANCELLED: Say it is cancelled (apologize politely if needed, or just state it).
- Keep it under 200 characters. Use emojis.
"""


async def draft_status_notification(provider_key: Optional[str], reservation, language: str = "es") -> str:
    prompt = NOTIFICATION_PROMPT.format(
        name=reservation.customer_name,
        date=reservation.date,
        time=reservation.time,
        status=reservation.status.upper(),
    )
    reply = await complete(provider_key, [Turn("user", prompt)], language=language)
    if isinstance(reply, ToolCall):
        return UNAVAILABLE_MESSAGE
    return reply
