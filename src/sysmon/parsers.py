"""Parsers for the numeric text fields emitted by OS utilities.

``df``, ``ps`` and friends format numbers differently depending on locale and
utility version: ``4.6G`` vs ``4,6G``, ``05:07`` vs ``1-02:03:04``. Every
conversion from that raw text into numbers happens here.
"""

import math
import re

# Decimal multipliers, matching ``df -H``.
SIZE_UNITS = {
    "K": 10**3,
    "M": 10**6,
    "G": 10**9,
    "T": 10**12,
}

_LEADING_NUMBER = re.compile(r"^([0-9]+(?:[.,][0-9]*)?|[.,][0-9]+)(.*)$")


class ParseError(ValueError):
    """Raised when a raw text field cannot be converted."""


def parse_decimal(text: str) -> float:
    """
    Parse a decimal number using either ``.`` or ``,`` as the fractional separator.

    Raises:
        ParseError: If the text is not a plain decimal number.
    """
    candidate = text.strip()
    match = _LEADING_NUMBER.match(candidate.lstrip("+-"))
    if not candidate or match is None or match.group(2):
        raise ParseError(f"Invalid number: {text!r}")
    value = float(match.group(1).replace(",", "."))
    return -value if candidate.startswith("-") else value


def parse_size(text: str) -> int | float:
    """
    Convert a size such as ``512``, ``10M``, ``4,6G`` or ``1.5TB`` into bytes.

    An unrecognized suffix is treated as plain bytes. An empty field is 0.

    Returns:
        The size in bytes, as an int whenever the value is whole.

    Raises:
        ParseError: If the leading numeric portion is missing or unparseable.
    """
    candidate = text.strip()
    if not candidate:
        return 0

    match = _LEADING_NUMBER.match(candidate)
    if match is None:
        raise ParseError(f"Invalid number in size: {text!r}")

    number = float(match.group(1).replace(",", "."))
    suffix = match.group(2).strip().upper()
    if suffix.endswith("B") and len(suffix) == 2:
        suffix = suffix[0]
    multiplier = SIZE_UNITS.get(suffix, 1)

    size = number * multiplier
    whole = round(size)
    return int(whole) if math.isclose(size, whole, rel_tol=1e-12, abs_tol=1e-6) else size


def parse_elapsed(text: str) -> int:
    """
    Convert ``MM:SS``, ``HH:MM:SS`` or ``D-HH:MM:SS`` into whole seconds.

    Fields are usually zero-padded but any width is accepted.

    Raises:
        ParseError: On an unexpected number of fields or a non-numeric field.
    """
    candidate = text.strip()
    days = 0
    clock = candidate
    has_days = "-" in candidate
    if has_days:
        day_part, _, clock = candidate.partition("-")
        days = _parse_field(day_part, text)

    segments = clock.split(":")
    if len(segments) not in (2, 3):
        raise ParseError(f"Invalid elapsed time: {text!r}")
    if has_days and len(segments) != 3:
        raise ParseError(f"Invalid elapsed time: {text!r}")

    values = [_parse_field(segment, text) for segment in segments]
    if len(values) == 2:
        hours, (minutes, seconds) = 0, values
    else:
        hours, minutes, seconds = values
    return ((days * 24 + hours) * 60 + minutes) * 60 + seconds


def _parse_field(segment: str, original: str) -> int:
    if not segment.isdigit():
        raise ParseError(f"Invalid elapsed time: {original!r}")
    return int(segment)


def parse_key_value(text: str, key: str, sep: str = ":") -> str | None:
    """Return the value of the first ``key<sep>value`` line in ``text``, if any."""
    for line in text.splitlines():
        name, found, value = line.partition(sep)
        if found and name.strip() == key:
            return value.strip().strip('"')
    return None
