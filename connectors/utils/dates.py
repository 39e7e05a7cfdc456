"""
Timestamp parsing and date based sort/filter of listed entities.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# fromisoformat before 3.11 only takes 3 or 6 fractional digits.
FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are returned as is."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp or a ``YYYY-MM-DD`` date into an aware datetime.

    Naive values are taken as UTC. Returns None for empty or unparseable input.
    """
    if not value:
        return None
    text = str(value).strip().replace("Z", "+00:00")
    text = FRACTION.sub(
        lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text
    )
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return as_utc(parsed)


def parse_end_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Like parse_timestamp, but a bare ``YYYY-MM-DD`` date means the last
    instant of that day, so the date itself stays inside an upper bound.
    """
    parsed = parse_timestamp(value)
    if parsed is not None and DATE_ONLY.match(str(value).strip()):
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def sort_filter_by_date(
    entities: Sequence[T],
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> List[T]:
    """
    Drop entities outside ``[created_after, created_before]`` and sort the rest
    by ``created_at``, most recent first.

    The sort is stable, so ties keep their arrival order. Entities without a
    usable timestamp are dropped when a window is given and go last otherwise.
    """
    if created_after is not None:
        created_after = as_utc(created_after)
    if created_before is not None:
        created_before = as_utc(created_before)
    windowed = created_after is not None or created_before is not None
    kept = []
    for entity in entities:
        stamp = parse_timestamp(getattr(entity, "created_at", None))
        if stamp is None:
            if not windowed:
                kept.append((None, entity))
            continue
        if created_after is not None and stamp < created_after:
            continue
        if created_before is not None and stamp > created_before:
            continue
        kept.append((stamp, entity))

    oldest = datetime.min.replace(tzinfo=timezone.utc)
    kept.sort(key=lambda item: (item[0] is not None, item[0] or oldest), reverse=True)
    return [entity for _, entity in kept]
