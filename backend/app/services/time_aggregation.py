"""
Time Aggregation Engine
=======================
Reduces time-entry rows into a grand total and per-project, per-user,
per-task, per-month and month-by-project breakdowns.

Rows arrive already filtered by the caller (team, project, date range).
Aggregation is forgiving: rows without a start time are skipped, missing
labels become "Unknown", and nothing here raises for partial input.

Usage:
    from app.services.time_aggregation import aggregate, AggregationOptions, TimeEntry

    entries = [TimeEntry.from_row(row) for row in rows]
    result = aggregate(entries, AggregationOptions.DASHBOARD)
    result.total_seconds, result.by_project[0].name
"""

import math
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.core.logging_config import logger


UNKNOWN_LABEL = "Unknown"
MONTHS = range(1, 13)


# Fractional seconds of any length; fromisoformat before 3.11 only takes 3 or 6 digits
_FRACTION = re.compile(r"(\.\d+)(?=[+-]\d{2}:?\d{2}$|$)")


def _normalize_fraction(match: "re.Match") -> str:
    digits = match.group(1)[1:]
    return "." + digits[:6].ljust(6, "0")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (or pass a datetime through); None if unusable"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(_normalize_fraction, text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _joined_label(row: Mapping[str, Any], relation: str, column: str) -> Optional[str]:
    joined = row.get(relation)
    if isinstance(joined, list):
        joined = joined[0] if joined else None
    if isinstance(joined, Mapping):
        label = joined.get(column)
        return str(label) if label else None
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass
class TimeEntry:
    """A single time-tracking record as handed over by the data store"""
    start_time: Optional[datetime]
    end_time: Optional[datetime] = None
    break_minutes: int = 0
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    task_id: Optional[str] = None
    project_name: Optional[str] = None
    user_name: Optional[str] = None
    task_title: Optional[str] = None
    task_status: Optional[str] = None
    id: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_ongoing(self) -> bool:
        return self.end_time is None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TimeEntry":
        """
        Build an entry from a store row.

        Accepts flat labels (``project_name``) as well as the joined shape
        ``{"projects": {"name": ...}, "profiles": {"full_name": ...},
        "tasks": {"title": ..., "status": ...}}``.
        """
        try:
            break_minutes = max(0, int(row.get("break_minutes") or 0))
        except (TypeError, ValueError):
            break_minutes = 0

        return cls(
            start_time=parse_timestamp(row.get("start_time")),
            end_time=parse_timestamp(row.get("end_time")),
            break_minutes=break_minutes,
            project_id=_optional_str(row.get("project_id")),
            user_id=_optional_str(row.get("user_id")),
            task_id=_optional_str(row.get("task_id")),
            project_name=row.get("project_name") or _joined_label(row, "projects", "name"),
            user_name=row.get("user_name") or _joined_label(row, "profiles", "full_name"),
            task_title=row.get("task_title") or _joined_label(row, "tasks", "title"),
            task_status=row.get("task_status") or _joined_label(row, "tasks", "status"),
            id=_optional_str(row.get("id")),
            description=row.get("description"),
        )


@dataclass
class Bucket:
    """Running total for one breakdown key"""
    id: Optional[str]
    name: str
    total_seconds: int = 0
    percentage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AggregationOptions:
    """Which breakdowns to compute; each is independent"""
    by_project: bool = True
    by_user: bool = False
    by_month: bool = False
    by_task: bool = False
    by_month_project: bool = False


AggregationOptions.DASHBOARD = AggregationOptions(by_project=True, by_user=True, by_month=True)
AggregationOptions.REPORT = AggregationOptions(by_project=True)
AggregationOptions.EXPORT = AggregationOptions(by_project=True, by_user=True, by_task=True)


@dataclass
class MonthProjects:
    """One month's total split per project (projects sorted by time, percentages of the month)"""
    month: int
    total_seconds: int
    projects: List[Bucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "total_seconds": self.total_seconds,
            "projects": [b.to_dict() for b in self.projects],
        }


@dataclass
class AggregationResult:
    total_seconds: int = 0
    entry_count: int = 0
    by_project: List[Bucket] = field(default_factory=list)
    by_user: List[Bucket] = field(default_factory=list)
    by_task: List[Bucket] = field(default_factory=list)
    by_month: Dict[int, float] = field(default_factory=dict)
    by_month_project: List[MonthProjects] = field(default_factory=list)

    @property
    def top_project(self) -> Optional[Bucket]:
        return self.by_project[0] if self.by_project else None

    @property
    def total_hours(self) -> float:
        return self.total_seconds / 3600

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_seconds": self.total_seconds,
            "entry_count": self.entry_count,
            "by_project": [b.to_dict() for b in self.by_project],
            "by_user": [b.to_dict() for b in self.by_user],
            "by_task": [b.to_dict() for b in self.by_task],
            "by_month": dict(self.by_month),
            "by_month_project": [m.to_dict() for m in self.by_month_project],
        }


def entry_duration_seconds(entry: TimeEntry, now: Optional[datetime] = None) -> int:
    """
    Worked seconds for one entry: elapsed time minus the break, never negative.

    Ongoing entries (no end time) are measured up to ``now``.
    """
    if entry.start_time is None:
        return 0
    end = entry.end_time or now or datetime.now(timezone.utc)
    elapsed = math.floor((_as_utc(end) - _as_utc(entry.start_time)).total_seconds())
    return max(0, elapsed - entry.break_minutes * 60)


def _accumulate(buckets: Dict[Optional[str], Bucket], key: Optional[str],
                name: Optional[str], seconds: int) -> None:
    bucket = buckets.get(key)
    if bucket is None:
        # First-seen label wins
        bucket = buckets[key] = Bucket(id=key, name=name or UNKNOWN_LABEL)
    bucket.total_seconds += seconds


def _finalize(buckets: Dict[Optional[str], Bucket], total_seconds: int) -> List[Bucket]:
    for bucket in buckets.values():
        bucket.percentage = (bucket.total_seconds / total_seconds) * 100 if total_seconds > 0 else 0.0
    # sorted() is stable, so ties keep insertion order
    return sorted(buckets.values(), key=lambda b: b.total_seconds, reverse=True)


def _month_projects(months: Dict[int, Dict[Optional[str], Bucket]]) -> List[MonthProjects]:
    # Only months with recorded time, in calendar order
    result = []
    for month in sorted(months):
        month_total = sum(bucket.total_seconds for bucket in months[month].values())
        result.append(MonthProjects(
            month=month,
            total_seconds=month_total,
            projects=_finalize(months[month], month_total),
        ))
    return result


def aggregate(
    entries: Iterable[TimeEntry],
    options: AggregationOptions = AggregationOptions(),
    now: Optional[datetime] = None,
) -> AggregationResult:
    """Aggregate entries into totals and the requested breakdowns"""
    now = now or datetime.now(timezone.utc)

    total_seconds = 0
    entry_count = 0
    projects: Dict[Optional[str], Bucket] = {}
    users: Dict[Optional[str], Bucket] = {}
    tasks: Dict[Optional[str], Bucket] = {}
    month_seconds: Dict[int, int] = {month: 0 for month in MONTHS}
    month_projects: Dict[int, Dict[Optional[str], Bucket]] = {}
    skipped = 0

    for entry in entries:
        if entry.start_time is None:
            skipped += 1
            continue

        seconds = entry_duration_seconds(entry, now)
        if seconds <= 0:
            continue

        total_seconds += seconds
        entry_count += 1

        if options.by_project:
            _accumulate(projects, entry.project_id, entry.project_name, seconds)
        if options.by_user:
            _accumulate(users, entry.user_id, entry.user_name, seconds)
        if options.by_task:
            _accumulate(tasks, entry.task_id, entry.task_title, seconds)
        if options.by_month:
            month_seconds[entry.start_time.month] += seconds
        if options.by_month_project:
            _accumulate(month_projects.setdefault(entry.start_time.month, {}),
                        entry.project_id, entry.project_name, seconds)

    if skipped:
        logger.debug(f"Aggregation skipped {skipped} entries without a start time")

    return AggregationResult(
        total_seconds=total_seconds,
        entry_count=entry_count,
        by_project=_finalize(projects, total_seconds),
        by_user=_finalize(users, total_seconds),
        by_task=_finalize(tasks, total_seconds),
        by_month={month: seconds / 3600 for month, seconds in month_seconds.items()} if options.by_month else {},
        by_month_project=_month_projects(month_projects),
    )


def aggregate_rows(
    rows: Iterable[Mapping[str, Any]],
    options: AggregationOptions = AggregationOptions(),
    now: Optional[datetime] = None,
) -> AggregationResult:
    """Convenience wrapper for raw store rows"""
    return aggregate((TimeEntry.from_row(row) for row in rows), options, now)
