"""Cross-source engagement scoring.

Native metrics live on very different scales (a popular HN story has a few
hundred points, a popular video has millions of views), so raw counts are
mapped onto 0-100 with a log curve against a per-source reference value:

    score = round(min(100, 100 * log10(raw + 1) / log10(scale + 1)))

Counts at or above the reference saturate at 100; small counts (1-10) still
land visibly above zero.
"""

import math
import re

DEFAULT_SCALE = 1000

NORMALIZATION_SCALES = {
    "reddit": 10_000,  # upvotes
    "hackernews": 500,  # points
    "youtube": 1_000_000,  # views
    "rss": 1000,
    "podcast": 1000,
}

_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}
_SEPARATORS = re.compile(r"[,_\s]")


def scale_for(source_type: str) -> int:
    return NORMALIZATION_SCALES.get(source_type, DEFAULT_SCALE)


def normalize(raw: float, source_type: str) -> int:
    """Map a raw engagement count to an integer score in [0, 100]."""
    if raw is None or raw <= 0:
        return 0
    scale = scale_for(source_type)
    score = 100 * math.log10(raw + 1) / math.log10(scale + 1)
    return round(min(100.0, score))


def parse_human_count(text) -> int:
    """Parse "1.2M", "15K", "1,234" into an int. Returns 0 when unparseable."""
    if not isinstance(text, str):
        return 0
    cleaned = _SEPARATORS.sub("", text).lower()
    if not cleaned:
        return 0

    multiplier = _MULTIPLIERS.get(cleaned[-1])
    if multiplier is not None:
        try:
            mantissa = float(cleaned[:-1])
        except ValueError:
            return 0
        if not math.isfinite(mantissa):
            return 0
        return round(mantissa * multiplier)

    try:
        return int(cleaned)
    except ValueError:
        return 0
