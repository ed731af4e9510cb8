"""Inspection date handling.

Form pages store the inspection date as an ISO string (``2024-03-15``,
sometimes with a time part), a Brazilian ``DD/MM/YYYY`` string, or a
native ``date``/``datetime``. Everything downstream works with one
canonical ISO calendar date.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime

from app.errors import DateParseError

logger = logging.getLogger(__name__)

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_BR_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_date_strict(value: object) -> date:
    """Parse *value* into a ``date`` or raise ``DateParseError``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise DateParseError(f"Unsupported date value: {value!r}")

    text = value.strip()
    try:
        m = _ISO_RE.match(text)
        if m:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        m = _BR_RE.match(text)
        if m:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    except ValueError as exc:
        # Right shape, impossible calendar date (e.g. 31/02/2024)
        raise DateParseError(f"Invalid calendar date: {text!r}") from exc
    raise DateParseError(f"Unrecognized date format: {text!r}")


def normalize_inspection_date(value: object, today: date | None = None) -> str:
    """Return *value* as ``YYYY-MM-DD``, falling back to today when malformed.

    A bad date must never block an otherwise valid archive, so parse
    failures are logged and replaced instead of raised.
    """
    try:
        return parse_date_strict(value).isoformat()
    except DateParseError as exc:
        fallback = (today or date.today()).isoformat()
        logger.warning("Inspection date %r replaced by %s: %s", value, fallback, exc)
        return fallback


def format_br_date(value: object) -> str:
    """``DD/MM/YYYY`` for display, or ``-`` when the value is empty/invalid."""
    if value in (None, "", "null", "undefined"):
        return "-"
    try:
        return parse_date_strict(value).strftime("%d/%m/%Y")
    except DateParseError:
        return "-"
