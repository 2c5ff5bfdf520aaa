"""Request-shape guards applied before any store access."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, date, datetime, time, timedelta

from outreach_queue.tasks.errors import ValidationError
from outreach_queue.tasks.models import DateWindow

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")
RESERVED_IDENTIFIERS = frozenset({"bulk"})


def validate_identifier(value: object, *, kind: str = "task") -> str:
    """Return the id when it has the expected shape and is not a reserved route token."""

    if not isinstance(value, str):
        raise ValidationError(f"Invalid {kind} ID: {value!r}")
    if value.lower() in RESERVED_IDENTIFIERS:
        raise ValidationError(
            f"Invalid {kind} ID {value!r}: reserved token, use the bulk operations instead.",
        )
    if not IDENTIFIER_PATTERN.match(value):
        raise ValidationError(f"Invalid {kind} ID format: {value!r}")
    return value


def validate_identifiers(values: Sequence[object], *, kind: str = "task") -> list[str]:
    if isinstance(values, str) or not values:
        raise ValidationError(f"{kind}_ids must be a non-empty list")
    return [validate_identifier(value, kind=kind) for value in values]


def validate_page(page: int, limit: int, *, max_limit: int) -> tuple[int, int]:
    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}")
    if not 1 <= limit <= max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}, got {limit}")
    return page, limit


def validate_window(window: DateWindow) -> DateWindow:
    if (
        window.date_from is not None
        and window.date_to is not None
        and window.date_from > window.date_to
    ):
        raise ValidationError(
            f"date_from {window.date_from.isoformat()} is after date_to "
            f"{window.date_to.isoformat()}",
        )
    return window


def window_bounds(window: DateWindow) -> tuple[datetime | None, datetime | None]:
    """Half-open UTC bounds ``[start, end)`` covering whole calendar days."""

    start = _day_start(window.date_from) if window.date_from is not None else None
    end = _day_start(window.date_to + timedelta(days=1)) if window.date_to is not None else None
    return start, end


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=UTC)
