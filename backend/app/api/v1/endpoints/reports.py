"""
Report endpoints: aggregate already-filtered time entries.
"""

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter

from app.core.config import settings
from app.schemas.report import (
    BreakdownItem,
    EntriesRequest,
    MonthProjectsItem,
    ReportEntriesResponse,
    SummaryRequest,
    SummaryResponse,
)
from app.services.report_export_service import build_report_entries
from app.services.time_aggregation import AggregationOptions, Bucket, aggregate
from app.utils.duration import DurationFormat, format_duration


router = APIRouter(prefix="/reports", tags=["Reports"])


def to_breakdown(buckets: List[Bucket], fmt: DurationFormat, locale: str) -> List[BreakdownItem]:
    return [
        BreakdownItem(
            id=bucket.id,
            name=bucket.name,
            total_seconds=bucket.total_seconds,
            total_time=format_duration(bucket.total_seconds, fmt, locale),
            percentage=bucket.percentage,
        )
        for bucket in buckets
    ]


@router.post("/summary", response_model=SummaryResponse)
async def report_summary(request: SummaryRequest):
    """Total and the requested breakdowns (project, user, task, month, month by project)"""
    locale = request.locale or settings.DEFAULT_LOCALE
    fmt = request.duration_format
    result = aggregate(request.to_entries(), request.options())

    return SummaryResponse(
        total_seconds=result.total_seconds,
        total_time=format_duration(result.total_seconds, fmt, locale),
        entry_count=result.entry_count,
        by_project=to_breakdown(result.by_project, fmt, locale),
        by_user=to_breakdown(result.by_user, fmt, locale),
        by_task=to_breakdown(result.by_task, fmt, locale),
        by_month=result.by_month,
        by_month_project=[
            MonthProjectsItem(
                month=month.month,
                total_seconds=month.total_seconds,
                total_time=format_duration(month.total_seconds, fmt, locale),
                projects=to_breakdown(month.projects, fmt, locale),
            )
            for month in result.by_month_project
        ],
    )


@router.post("/entries", response_model=ReportEntriesResponse)
async def report_entries(request: EntriesRequest):
    """Formatted entry rows plus the project breakdown shown on the report page"""
    now = datetime.now(timezone.utc)
    entries = request.to_entries()
    result = aggregate(entries, AggregationOptions.REPORT, now=now)

    return ReportEntriesResponse(
        total_seconds=result.total_seconds,
        total_time=format_duration(result.total_seconds, DurationFormat.HMS),
        entries=build_report_entries(entries, now=now),
        project_breakdown=to_breakdown(result.by_project, DurationFormat.HMS, "en"),
    )
