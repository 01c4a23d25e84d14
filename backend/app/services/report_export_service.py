"""
Report Export Service
=====================
Report rows, the project -> user -> task -> day grouping used by the
operation report, the newest-first timeline, and CSV exports of time
entries and member summaries.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.logging_config import logger
from app.services.time_aggregation import UNKNOWN_LABEL, TimeEntry, entry_duration_seconds
from app.utils.duration import format_clock, format_hms


# Excel needs the BOM to detect UTF-8
CSV_BOM = "\ufeff"
CSV_DATETIME_FORMAT = "%Y/%m/%d %H:%M"


class ExportKind(str, Enum):
    TIME_ENTRIES = "time_entries"
    MEMBER_SUMMARY = "member_summary"
    OPERATION_REPORT = "operation_report"
    OPERATION_REPORT_TIMELINE = "operation_report_timeline"


EXPORT_LABELS: Dict[str, Dict[ExportKind, str]] = {
    "en": {
        ExportKind.TIME_ENTRIES: "time_entries",
        ExportKind.MEMBER_SUMMARY: "member_summary",
        ExportKind.OPERATION_REPORT: "operation_report",
        ExportKind.OPERATION_REPORT_TIMELINE: "operation_report_timeline",
    },
    "ja": {
        ExportKind.TIME_ENTRIES: "作業時間",
        ExportKind.MEMBER_SUMMARY: "メンバー集計",
        ExportKind.OPERATION_REPORT: "稼働レポート",
        ExportKind.OPERATION_REPORT_TIMELINE: "詳細レポート",
    },
}

EXPORT_EXTENSIONS = {
    ExportKind.TIME_ENTRIES: "csv",
    ExportKind.MEMBER_SUMMARY: "csv",
    ExportKind.OPERATION_REPORT: "pdf",
    ExportKind.OPERATION_REPORT_TIMELINE: "pdf",
}

CSV_HEADERS: Dict[str, Dict[ExportKind, List[str]]] = {
    "en": {
        ExportKind.TIME_ENTRIES: ["Task", "Member", "Start", "End", "Duration", "Description"],
        ExportKind.MEMBER_SUMMARY: ["Member", "Total Time", "Completed Tasks", "In Progress Tasks"],
    },
    "ja": {
        ExportKind.TIME_ENTRIES: ["タスク名", "作業者", "開始時刻", "終了時刻", "作業時間", "説明"],
        ExportKind.MEMBER_SUMMARY: ["メンバー名", "総作業時間", "完了タスク数", "作業中タスク数"],
    },
}

IN_PROGRESS_LABELS = {"en": "In progress", "ja": "作業中"}


def _locale(locale: Optional[str]) -> str:
    locale = locale or settings.DEFAULT_LOCALE
    return locale if locale in CSV_HEADERS else "en"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================
# Report rows
# ============================================

def build_report_entries(entries: Iterable[TimeEntry], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """One formatted row per entry, in input order"""
    now = now or datetime.now(timezone.utc)
    rows = []
    for entry in entries:
        if entry.start_time is None:
            continue
        rows.append({
            "id": entry.id,
            "project_id": entry.project_id,
            "project_name": entry.project_name,
            "task_id": entry.task_id,
            "task_title": entry.task_title,
            "user_id": entry.user_id,
            "user_name": entry.user_name,
            "start_time": _iso(entry.start_time),
            "end_time": _iso(entry.end_time),
            "duration": format_hms(entry_duration_seconds(entry, now)),
            "description": entry.description,
        })
    return rows


# ============================================
# Operation report grouping
# ============================================

@dataclass
class DayEntry:
    date: date
    seconds: int

    @property
    def time(self) -> str:
        return format_hms(self.seconds)


@dataclass
class TaskGroup:
    task_name: str
    total_seconds: int = 0
    entries: List[DayEntry] = field(default_factory=list)

    @property
    def total_time(self) -> str:
        return format_hms(self.total_seconds)


@dataclass
class UserGroup:
    user_id: Optional[str]
    user_name: str
    total_seconds: int = 0
    tasks: Dict[str, TaskGroup] = field(default_factory=dict)

    @property
    def total_time(self) -> str:
        return format_hms(self.total_seconds)


@dataclass
class ProjectGroup:
    project_id: Optional[str]
    project_name: str
    users: Dict[Optional[str], UserGroup] = field(default_factory=dict)

    @property
    def total_seconds(self) -> int:
        return sum(user.total_seconds for user in self.users.values())


@dataclass
class OperationReport:
    projects: Dict[Optional[str], ProjectGroup] = field(default_factory=dict)

    @property
    def total_seconds(self) -> int:
        return sum(project.total_seconds for project in self.projects.values())

    @property
    def total_time(self) -> str:
        return format_hms(self.total_seconds)

    @property
    def is_empty(self) -> bool:
        return not self.projects

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_seconds": self.total_seconds,
            "total_time": self.total_time,
            "projects": [
                {
                    "project_id": project.project_id,
                    "project_name": project.project_name,
                    "total_seconds": project.total_seconds,
                    "users": [
                        {
                            "user_id": user.user_id,
                            "user_name": user.user_name,
                            "total_seconds": user.total_seconds,
                            "total_time": user.total_time,
                            "tasks": [
                                {
                                    "task_name": task.task_name,
                                    "total_seconds": task.total_seconds,
                                    "total_time": task.total_time,
                                    "entries": [
                                        {"date": day.date.isoformat(), "seconds": day.seconds, "time": day.time}
                                        for day in task.entries
                                    ],
                                }
                                for task in user.tasks.values()
                            ],
                        }
                        for user in project.users.values()
                    ],
                }
                for project in self.projects.values()
            ],
        }


def group_operation_report(entries: Iterable[TimeEntry], now: Optional[datetime] = None) -> OperationReport:
    """Group entries by project, then user, then task; each task keeps its dated entries"""
    now = now or datetime.now(timezone.utc)
    report = OperationReport()

    for entry in entries:
        if entry.start_time is None:
            continue
        seconds = entry_duration_seconds(entry, now)
        if seconds <= 0:
            continue

        project = report.projects.get(entry.project_id)
        if project is None:
            project = report.projects[entry.project_id] = ProjectGroup(
                project_id=entry.project_id,
                project_name=entry.project_name or UNKNOWN_LABEL,
            )

        user = project.users.get(entry.user_id)
        if user is None:
            user = project.users[entry.user_id] = UserGroup(
                user_id=entry.user_id,
                user_name=entry.user_name or UNKNOWN_LABEL,
            )

        # Tasks are grouped by title, as shown on the report
        task_name = entry.task_title or UNKNOWN_LABEL
        task = user.tasks.get(task_name)
        if task is None:
            task = user.tasks[task_name] = TaskGroup(task_name=task_name)

        task.total_seconds += seconds
        task.entries.append(DayEntry(date=entry.start_time.date(), seconds=seconds))
        user.total_seconds += seconds

    return report


# ============================================
# Timeline
# ============================================

@dataclass
class TimelineEntry:
    start_time: datetime
    task_title: str
    project_name: str
    user_name: str
    seconds: int

    @property
    def date(self) -> date:
        return self.start_time.date()

    @property
    def duration(self) -> str:
        return format_hms(self.seconds)


@dataclass
class Timeline:
    entries: List[TimelineEntry] = field(default_factory=list)

    @property
    def total_seconds(self) -> int:
        return sum(entry.seconds for entry in self.entries)

    @property
    def total_time(self) -> str:
        return format_hms(self.total_seconds)

    @property
    def is_empty(self) -> bool:
        return not self.entries


def _sort_instant(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def build_timeline(entries: Iterable[TimeEntry], now: Optional[datetime] = None) -> Timeline:
    """Every entry newest first; entries starting at the same instant keep their input order"""
    now = now or datetime.now(timezone.utc)
    rows = [
        TimelineEntry(
            start_time=entry.start_time,
            task_title=entry.task_title or UNKNOWN_LABEL,
            project_name=entry.project_name or UNKNOWN_LABEL,
            user_name=entry.user_name or UNKNOWN_LABEL,
            seconds=entry_duration_seconds(entry, now),
        )
        for entry in entries
        if entry.start_time is not None
    ]
    rows.sort(key=lambda row: _sort_instant(row.start_time), reverse=True)
    return Timeline(entries=rows)


# ============================================
# CSV exports
# ============================================

def _write_csv(header: List[str], rows: Iterable[List[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    return CSV_BOM + output.getvalue()


def export_time_entries_csv(
    entries: Iterable[TimeEntry],
    now: Optional[datetime] = None,
    locale: Optional[str] = None,
) -> str:
    """One CSV line per entry: task, member, start, end, H:MM duration, description"""
    now = now or datetime.now(timezone.utc)
    locale = _locale(locale)
    in_progress = IN_PROGRESS_LABELS[locale]

    rows = []
    for entry in entries:
        if entry.start_time is None:
            continue
        rows.append([
            entry.task_title or "",
            entry.user_name or UNKNOWN_LABEL,
            entry.start_time.strftime(CSV_DATETIME_FORMAT),
            entry.end_time.strftime(CSV_DATETIME_FORMAT) if entry.end_time else in_progress,
            format_clock(entry_duration_seconds(entry, now)),
            entry.description or "",
        ])

    logger.debug(f"Exporting {len(rows)} time entries as CSV")
    return _write_csv(CSV_HEADERS[locale][ExportKind.TIME_ENTRIES], rows)


@dataclass
class _MemberStats:
    name: str
    total_seconds: int = 0
    completed_tasks: set = field(default_factory=set)
    in_progress_tasks: set = field(default_factory=set)


def export_member_summary_csv(
    entries: Iterable[TimeEntry],
    now: Optional[datetime] = None,
    locale: Optional[str] = None,
) -> str:
    """Per-member totals with counts of distinct completed and in-progress tasks"""
    now = now or datetime.now(timezone.utc)
    locale = _locale(locale)

    members: Dict[Optional[str], _MemberStats] = {}
    for entry in entries:
        if entry.start_time is None:
            continue
        stats = members.get(entry.user_id)
        if stats is None:
            stats = members[entry.user_id] = _MemberStats(name=entry.user_name or UNKNOWN_LABEL)

        stats.total_seconds += entry_duration_seconds(entry, now)
        if entry.task_id:
            if entry.task_status == "completed":
                stats.completed_tasks.add(entry.task_id)
            elif entry.task_status == "in_progress":
                stats.in_progress_tasks.add(entry.task_id)

    rows = [
        [
            stats.name,
            format_clock(stats.total_seconds),
            str(len(stats.completed_tasks)),
            str(len(stats.in_progress_tasks)),
        ]
        for stats in members.values()
    ]

    logger.debug(f"Exporting summary for {len(rows)} members as CSV")
    return _write_csv(CSV_HEADERS[locale][ExportKind.MEMBER_SUMMARY], rows)


def export_filename(
    kind: ExportKind,
    project_name: str,
    today: Optional[date] = None,
    locale: Optional[str] = None,
) -> str:
    """e.g. 'Website_time_entries_2024-05-01.csv'"""
    try:
        kind = ExportKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown export type '{kind}'", field="kind")

    today = today or datetime.now(timezone.utc).date()
    label = EXPORT_LABELS[_locale(locale)][kind]
    # Path separators would break the download name
    safe_name = (project_name or "report").replace("/", "_").replace("\\", "_").strip() or "report"
    return f"{safe_name}_{label}_{today.isoformat()}.{EXPORT_EXTENSIONS[kind]}"
