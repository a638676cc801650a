"""Identifier helpers — slugs, daily timestamps, and task ids.

Daily notes live under ``#daily/YYYYMMDD/HHmmSS[-slug].md``; the
validators here decide whether a typed reference *looks like* one of
those coordinates. They check plausibility, not calendar correctness
(``20240231`` passes).

Task ids are ``{PREFIX}{NN}``: NN is 1 + the highest numeric suffix
already in use, zero-padded to two digits. Ids are never reused while
their reference line exists.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

DEFAULT_TASK_PREFIX = "TASK-"

_ASCII_DIGITS = re.compile(r"^[0-9]+$")
_LEADING_DIGITS = re.compile(r"^[0-9]*")


def slugify(title: str) -> str:
    """Convert a title to a lowercase, dash-separated slug.

    Examples:
        >>> slugify("Hello World")
        'hello-world'
        >>> slugify("Test@Note#123")
        'test-note-123'
    """
    chars: list[str] = []
    prev_is_dash = False
    for char in title.lower():
        if char.isalnum():
            chars.append(char)
            prev_is_dash = False
        elif not prev_is_dash and chars:
            chars.append("-")
            prev_is_dash = True
    return "".join(chars).strip("-")


def is_ascii_digits(text: str) -> bool:
    """True for a non-empty run of ``0-9`` only."""
    return bool(_ASCII_DIGITS.match(text))


def leading_digits(text: str) -> str:
    """The (possibly empty) run of ASCII digits at the start of *text*."""
    match = _LEADING_DIGITS.match(text)
    return match.group(0) if match else ""


def validate_date(text: str) -> bool:
    """Plausible ``YYYYMMDD``: year 1900-2100, month 1-12, day 1-31."""
    if len(text) != 8 or not is_ascii_digits(text):
        return False
    year, month, day = int(text[0:4]), int(text[4:6]), int(text[6:8])
    return 1900 <= year <= 2100 and 1 <= month <= 12 and 1 <= day <= 31


def validate_time(text: str) -> bool:
    """Plausible ``HHmmSS``: hour <= 23, minute and second <= 59."""
    if len(text) != 6 or not is_ascii_digits(text):
        return False
    hour, minute, second = int(text[0:2]), int(text[2:4]), int(text[4:6])
    return hour <= 23 and minute <= 59 and second <= 59


def parse_full_timestamp(text: str) -> tuple[str, str] | None:
    """Split ``YYYYMMDDHHmmSS`` into ``(date, time)`` when both are valid."""
    if len(text) < 14 or not is_ascii_digits(text):
        return None
    date, time = text[0:8], text[8:14]
    if validate_date(date) and validate_time(time):
        return date, time
    return None


def extract_time_prefix(text: str) -> str | None:
    """Leading ``HH``/``HHmm``/``HHmmSS`` digits (1-6 of them), else None."""
    digits = leading_digits(text)
    if 1 <= len(digits) <= 6:
        return digits
    return None


# ---------------------------------------------------------------------------
# Task ids
# ---------------------------------------------------------------------------


def task_number(task_id: str, prefix: str) -> int | None:
    """Numeric suffix of *task_id* after *prefix*, or None."""
    if not task_id.startswith(prefix):
        return None
    suffix = task_id[len(prefix) :]
    return int(suffix) if is_ascii_digits(suffix) else None


def format_task_id(prefix: str, number: int) -> str:
    """Render ``{prefix}{number:02d}``."""
    return f"{prefix}{number:02d}"


def next_task_id(existing_ids: Iterable[str], prefix: str = DEFAULT_TASK_PREFIX) -> str:
    """Allocate the id after the highest numbered one in *existing_ids*.

    Examples:
        >>> next_task_id(["TASK-01", "TASK-02"])
        'TASK-03'
        >>> next_task_id([])
        'TASK-01'
    """
    highest = 0
    for task_id in existing_ids:
        number = task_number(task_id, prefix)
        if number is not None:
            highest = max(highest, number)
    return format_task_id(prefix, highest + 1)
