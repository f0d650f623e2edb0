"""
Decoding of interval-coded time fields (JWAP, JWDP).

The variable dictionaries label each code with a clock interval such as
"6:00 a.m. to 6:09 a.m.". A cell is decoded to the interval midpoint and
rendered back as a clock string ("6:04 a.m."). Codes labelled "N/A ..."
(not a worker, worked from home) pass through as the literal "N/A".
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

import pandas as pd

NA_LABEL = "N/A"

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})\s*([aApP])\.?\s*[mM]\.?")


def _clock_to_minutes(hour: int, minute: int, meridiem: str) -> int:
    if not (1 <= hour <= 12 and 0 <= minute <= 59):
        raise ValueError(f"Invalid clock time {hour}:{minute:02d}")
    hour24 = hour % 12
    if meridiem.lower() == "p":
        hour24 += 12
    return hour24 * 60 + minute


def parse_clock_times(text: str) -> List[int]:
    """Minutes after midnight of every clock time found in text, in order."""
    return [
        _clock_to_minutes(int(h), int(m), ap)
        for h, m, ap in _CLOCK_RE.findall(text)
    ]


def parse_interval_label(label: str) -> Tuple[int, int]:
    """
    Parse "<left> to <right>" into (left, right) minutes after midnight.

    An interval that crosses midnight gets its right bound pushed past
    MINUTES_PER_DAY so that right >= left always holds.
    """
    times = parse_clock_times(label)
    if len(times) != 2:
        raise ValueError(f"Not a time interval label: {label!r}")
    left, right = times
    if right < left:
        right += MINUTES_PER_DAY
    return left, right


def interval_midpoint(left: int, right: int) -> int:
    return (left + (right - left) // 2) % MINUTES_PER_DAY


def render_clock(minutes: int) -> str:
    """Render minutes after midnight as "H:MM a.m." / "H:MM p.m."."""
    minutes = int(minutes) % MINUTES_PER_DAY
    hour24, minute = divmod(minutes, 60)
    meridiem = "a.m." if hour24 < 12 else "p.m."
    hour12 = hour24 % 12 or 12
    return f"{hour12}:{minute:02d} {meridiem}"


def is_na_label(label: Any) -> bool:
    return isinstance(label, str) and label.strip().startswith(NA_LABEL)


def decode_interval_label(label: Any) -> Optional[str]:
    """
    Midpoint clock string for one interval label.

    Missing labels (unmatched codes) stay missing; "N/A..." labels become "N/A".
    """
    if label is None:
        return None
    try:
        if pd.isna(label):
            return None
    except (TypeError, ValueError):
        pass
    if is_na_label(label):
        return NA_LABEL
    left, right = parse_interval_label(str(label))
    return render_clock(interval_midpoint(left, right))


def clock_to_minutes(value: Any) -> Optional[int]:
    """
    Inverse of render_clock for one cell; "N/A" and missing give None.
    """
    if not isinstance(value, str) or is_na_label(value):
        return None
    times = parse_clock_times(value)
    if len(times) != 1:
        return None
    return times[0]
