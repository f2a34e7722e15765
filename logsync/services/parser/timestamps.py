"""Timestamp normalization for Game.log lines.

The game writes ``<2024.06.07-12:34:56:789>``; everything downstream sorts
and compares on the canonical ``2024-06-07T12:34:56.789Z`` form.
"""
import re
from datetime import datetime, timezone
from typing import Optional

# Source notation: YYYY.MM.DD-HH:MM:SS with optional :mmm (or .mmm) fraction
SOURCE_TS_PATTERN = re.compile(
    r'(\d{4})\.(\d{2})\.(\d{2})-(\d{2}):(\d{2}):(\d{2})(?:[:.](\d{1,3}))?'
)
CANONICAL_TS_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')
LINE_TS_PATTERN = re.compile(r'^<([^>]+)>')


def now_canonical() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


def normalize_timestamp(raw: Optional[str]) -> str:
    """Convert a raw log timestamp to canonical ISO-8601 UTC with milliseconds.

    Canonical input passes through untouched; unrecognised input falls back
    to the current wall-clock time.
    """
    if not raw:
        return now_canonical()
    raw = raw.strip()
    if CANONICAL_TS_PATTERN.match(raw):
        return raw
    match = SOURCE_TS_PATTERN.search(raw)
    if not match:
        return now_canonical()
    year, month, day, hour, minute, sec, frac = match.groups()
    ms = frac.ljust(3, '0') if frac else '000'
    return f"{year}-{month}-{day}T{hour}:{minute}:{sec}.{ms}Z"


def extract_line_timestamp(line: str) -> Optional[str]:
    """Return the raw ``<...>`` prefix of a log line, if any."""
    match = LINE_TS_PATTERN.match(line.strip())
    return match.group(1) if match else None


def parse_canonical(ts: str) -> Optional[datetime]:
    try:
        return datetime.strptime(ts, '%Y-%m-%dT%H:%M:%S.%fZ').replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def timestamp_sort_key(ts: Optional[str]) -> float:
    """Epoch seconds for ordering; unparseable timestamps sort first."""
    if not ts:
        return 0.0
    parsed = parse_canonical(ts)
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(ts.replace('Z', '+00:00'))
        except ValueError:
            return 0.0
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
