"""
Duration formatting helpers.

Aggregates are always kept in whole seconds; these functions turn them into
the strings shown on dashboards, reports and exports.
"""

from enum import Enum
from typing import Dict, Tuple

from app.core.exceptions import ValidationError


class DurationFormat(str, Enum):
    HMS = "hms"                        # 05:30:00
    HOURS_MINUTES = "hours_minutes"    # 05h 30m / 05時間30分
    CLOCK = "clock"                    # 5:30


# locale -> (hour label, minute label)
HOUR_MINUTE_LABELS: Dict[str, Tuple[str, str]] = {
    "en": ("h ", "m"),
    "ja": ("時間", "分"),
}


def _split(seconds: float) -> Tuple[int, int, int]:
    total = max(0, int(seconds))
    return total // 3600, (total % 3600) // 60, total % 60


def format_hms(seconds: float) -> str:
    """Format seconds as HH:MM:SS (hours are not capped at 24)"""
    hours, minutes, secs = _split(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_hours_minutes(seconds: float, locale: str = "en") -> str:
    """Format seconds as a localized hours/minutes string, e.g. '05h 30m'"""
    hour_label, minute_label = HOUR_MINUTE_LABELS.get(locale, HOUR_MINUTE_LABELS["en"])
    hours, minutes, _ = _split(seconds)
    return f"{hours:02d}{hour_label}{minutes:02d}{minute_label}"


def format_clock(seconds: float) -> str:
    """Format seconds as H:MM, as used in CSV exports"""
    hours, minutes, _ = _split(seconds)
    return f"{hours}:{minutes:02d}"


def format_duration(seconds: float, fmt: DurationFormat = DurationFormat.HMS, locale: str = "en") -> str:
    if fmt == DurationFormat.HOURS_MINUTES:
        return format_hours_minutes(seconds, locale)
    if fmt == DurationFormat.CLOCK:
        return format_clock(seconds)
    return format_hms(seconds)


def parse_hms(text: str) -> int:
    """Parse an HH:MM:SS string back into seconds"""
    parts = (text or "").strip().split(":")
    if len(parts) != 3:
        raise ValidationError(f"Invalid duration '{text}', expected HH:MM:SS", field="duration")
    try:
        hours, minutes, secs = (int(p) for p in parts)
    except ValueError:
        raise ValidationError(f"Invalid duration '{text}', expected HH:MM:SS", field="duration")
    if hours < 0 or not 0 <= minutes < 60 or not 0 <= secs < 60:
        raise ValidationError(f"Invalid duration '{text}', out of range", field="duration")
    return hours * 3600 + minutes * 60 + secs
