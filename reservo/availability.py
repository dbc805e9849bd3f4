"""
Availability evaluator used by the ``check_availability`` tool.

Checks run in a fixed order (open day, opening hours, daily capacity) and the
first failing check decides the answer.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date as date_cls
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


@dataclass(frozen=True)
class AvailabilityConfig:
    max_seats: int = 0
    open_time: str = ""
    close_time: str = ""
    open_days: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: Optional[str] = None

    def as_dict(self) -> dict:
        if self.reason is None:
            return {"available": self.available}
        return {"available": self.available, "reason": self.reason}


def weekday_name(date_str: str) -> str:
    if not _DATE_RE.match(date_str):
        raise ValueError(f"not a YYYY-MM-DD date: {date_str!r}")
    return WEEKDAYS[date_cls.fromisoformat(date_str).weekday()]


def evaluate(
    config: Optional[AvailabilityConfig],
    date: str,
    time: str,
    party_size,
    booked_seats: Union[int, Callable[[], int]] = 0,
) -> Availability:
    """
    Pure admit/reject decision.

    ``booked_seats`` may be a callable so the reservation store is only read
    when the capacity check is actually reached.
    """
    if config is None:
        return Availability(True)

    try:
        day = weekday_name(str(date))
    except (TypeError, ValueError):
        return Availability(False, "Invalid date")
    if not isinstance(time, str) or not _TIME_RE.match(time):
        return Availability(False, "Invalid time")
    try:
        seats = int(party_size)
    except (TypeError, ValueError, OverflowError):
        return Availability(False, "Invalid party size")
    if seats < 1:
        return Availability(False, "Invalid party size")

    # 1) open days
    if config.open_days and day not in config.open_days:
        return Availability(False, f"Closed on {day}s")

    # 2) opening hours, inclusive on both ends
    if config.open_time and config.close_time:
        if time < config.open_time or time > config.close_time:
            return Availability(
                False,
                f"Closed at {time} (Open {config.open_time} - {config.close_time})",
            )

    # 3) capacity per day
    if config.max_seats > 0:
        current = booked_seats() if callable(booked_seats) else booked_seats
        if current + seats > config.max_seats:
            return Availability(False, "Restaurant is full for this date")

    return Availability(True)


def check_availability(
    db: Session,
    tenant_id: str,
    date: str,
    time: str,
    party_size,
    config: Optional[AvailabilityConfig],
) -> Availability:
    from . import store

    result = evaluate(
        config, date, time, party_size,
        booked_seats=lambda: store.booked_seats(db, tenant_id, date),
    )
    logger.info(
        "[Availability] tenant=%s date=%s time=%s pax=%s -> %s",
        tenant_id, date, time, party_size, result.as_dict(),
    )
    return result
