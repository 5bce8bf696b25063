"""Field conversions for the German-formatted values the tracker prints.

None of these raise: a malformed value degrades to 0, `EPOCH` or an undefined
ratio so that one broken cell never costs the whole record.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from .models import EPOCH, Ratio

logger = logging.getLogger("irrenhaus.convert")

# The site formats sizes with binary multiples despite the SI unit names.
UNITS: dict[str, int] = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 ** 2,
    "GB": 1024 ** 3,
    "TB": 1024 ** 4,
    "PB": 1024 ** 5,
    "EB": 1024 ** 6,
}

SIZE_RE = re.compile(r"(\d[\d.,]*)\s*([KMGTPE]?B)(?:ytes?)?\b")
INT_RE = re.compile(r"\d[\d.,]*")
DURATION_RE = re.compile(r"^(?:(\d+)d\s*)?(\d+(?::\d+)*)$")

RATIO_INFINITE = "Inf."
RATIO_UNDEFINED = "---"

# 02.01.2006<br>15:04:05 in the catalog, ISO-ish on detail and snatch pages
CATALOG_DATE_FORMAT = "%d.%m.%Y%H:%M:%S"
DETAIL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _german_number(raw: str) -> float:
    return float(raw.replace(".", "").replace(",", "."))


def size_to_bytes(text: str) -> int:
    """Convert `1.234,56 MB`, `117,73GB` or `12,5 KB/s` to a byte count."""
    m = SIZE_RE.search(text or "")
    if not m:
        return 0
    try:
        amount = _german_number(m.group(1))
    except ValueError:
        logger.debug("Unparseable size: %r", text)
        return 0
    return int(amount * UNITS[m.group(2)])


def parse_int(text: str) -> int:
    m = INT_RE.search(text or "")
    if not m:
        return 0
    return int(re.sub(r"[.,]", "", m.group(0)))


def parse_duration(text: str) -> int:
    """`2d 03:04:05` or `03:04:05` → seconds.  Missing leading parts count as zero."""
    m = DURATION_RE.match((text or "").strip())
    if not m:
        return 0
    seconds = 0
    for part in m.group(2).split(":"):
        seconds = seconds * 60 + int(part)
    if m.group(1):
        seconds += int(m.group(1)) * 86400
    return seconds


def parse_ratio(text: str) -> Ratio:
    text = (text or "").strip()
    if text == RATIO_INFINITE:
        return Ratio.infinite()
    if text == RATIO_UNDEFINED:
        return Ratio.undefined()
    try:
        return Ratio.of(float(text))
    except ValueError:
        logger.debug("Unparseable ratio: %r", text)
        return Ratio.undefined()


def parse_timestamp(text: str, fmt: str = DETAIL_DATE_FORMAT) -> datetime:
    try:
        return datetime.strptime((text or "").strip(), fmt).replace(tzinfo=timezone.utc)
    except ValueError:
        return EPOCH


def parse_percent(text: str) -> float:
    try:
        return float((text or "").strip().rstrip("%").replace(",", "."))
    except ValueError:
        return 0.0
