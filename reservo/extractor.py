"""
Reservation extraction from the assistant reply.

Grammar: ``RESERVATION_JSON:`` followed by a JSON object that runs to the
last closing brace of the reply. Anything before the marker is the text the
customer sees.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"RESERVATION_JSON:\s*(\{.*\})", re.DOTALL)

PLACEHOLDER_NAME = "Pending Registration"
CORE_KEYS = ("name", "pax", "date", "time")
# only overwritten by a non-empty value
STICKY_KEYS = ("allergies", "notes")


@dataclass
class ReservationWrite:
    reservation_id: Optional[int] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_create(self) -> bool:
        return self.reservation_id is None


def extract(text: str) -> Optional[dict]:
    match = MARKER_RE.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(1))
    except ValueError as e:
        logger.error("[Extractor] Failed to parse reservation JSON: %s", e)
        return None
    if not isinstance(data, dict):
        logger.error("[Extractor] Reservation JSON is not an object: %r", data)
        return None
    return data


def strip_marker(text: str) -> str:
    return MARKER_RE.sub("", text or "").strip()


def _party_size(value) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            logger.warning("[Extractor] Ignoring non-numeric party size %r", value)
            return None


def _side_channel(parsed: dict, prior: Optional[dict] = None) -> dict:
    merged = dict(prior or {})
    for key, value in parsed.items():
        if key in CORE_KEYS:
            continue
        if key in STICKY_KEYS:
            if value not in (None, ""):
                merged[key] = value
        elif value is not None:
            merged[key] = value
    return merged


def apply_to_reservation(existing, parsed: Optional[dict], raw_transcript: str) -> ReservationWrite:
    """
    Decide what to write for this turn.

    No payload: only the transcript moves forward (or a placeholder is
    created for a new customer). With a payload the fields are merged onto
    the open reservation, or used as-is for a new one.
    """
    if parsed is None:
        if existing is not None:
            return ReservationWrite(existing.id, {"raw_commentary": raw_transcript})
        return ReservationWrite(None, {
            "customer_name": PLACEHOLDER_NAME,
            "date": None,
            "time": None,
            "party_size": None,
            "status": "pending",
            "source": "WhatsApp",
            "raw_commentary": raw_transcript,
            "structured_commentary": {},
        })

    if existing is None:
        return ReservationWrite(None, {
            "customer_name": parsed.get("name") or PLACEHOLDER_NAME,
            "date": parsed.get("date") or None,
            "time": parsed.get("time") or None,
            "party_size": _party_size(parsed.get("pax")),
            "status": "pending",
            "source": "WhatsApp",
            "raw_commentary": raw_transcript,
            "structured_commentary": _side_channel(parsed),
        })

    pax = _party_size(parsed.get("pax"))
    return ReservationWrite(existing.id, {
        "customer_name": parsed.get("name") or existing.customer_name,
        "date": parsed.get("date") or existing.date,
        "time": parsed.get("time") or existing.time,
        "party_size": pax if pax is not None else existing.party_size,
        "raw_commentary": raw_transcript,
        "structured_commentary": _side_channel(parsed, existing.structured_commentary),
    })
