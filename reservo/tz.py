import os
from datetime import date, datetime
from zoneinfo import ZoneInfo

TIMEZONE = os.getenv("TIMEZONE", "Atlantic/Canary")


def local_now() -> datetime:
    return datetime.now(ZoneInfo(TIMEZONE))


def local_today() -> date:
    return local_now().date()
