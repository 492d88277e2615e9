# src/utils/dates.py
# Время в БД храним «наивным» UTC (DateTime без tz), в JSON отдаём ISO-8601 с 'Z'.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1)


def utc_now() -> datetime:
    """Текущее время UTC без tzinfo, с точностью до миллисекунд (как в JSON-снимках)."""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def iso_z(dt: Optional[datetime]) -> Optional[str]:
    """2024-05-01T10:20:30.123Z — тот же вид, что у Date.toISOString()."""
    if dt is None:
        return None
    dt = to_naive_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def day_key(dt: datetime) -> str:
    return to_naive_utc(dt).date().isoformat()
