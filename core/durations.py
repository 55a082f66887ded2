"""Parsing of the duration formats providers and scraped pages use."""

import re

CLOCK_PATTERN = re.compile(r"^(\d+):(\d{1,2})$")
ISO8601_PATTERN = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$")


def parse_iso8601_duration(value: str) -> int:
    """Convert an ISO 8601 duration like PT1H2M3S to seconds (0 if unparseable)."""
    match = ISO8601_PATTERN.match(value.strip())
    if not match:
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def parse_duration(value: str | None) -> int:
    """Parse "M:S" or ISO 8601 durations to seconds.

    Returns 0 for empty or unrecognized input.
    """
    if not value:
        return 0
    value = value.strip()

    clock = CLOCK_PATTERN.match(value)
    if clock:
        return int(clock.group(1)) * 60 + int(clock.group(2))

    if value.startswith("PT"):
        return parse_iso8601_duration(value)

    return 0
