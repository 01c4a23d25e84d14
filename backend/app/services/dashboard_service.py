"""
Dashboard summary: total time, top project, a twelve-month series and
project/user breakdowns for the team dashboard.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app.core.logging_config import logger
from app.services.time_aggregation import (
    AggregationOptions,
    AggregationResult,
    Bucket,
    MONTHS,
    TimeEntry,
    aggregate,
)
from app.utils.duration import format_hours_minutes


def _breakdown(buckets: List[Bucket], locale: str) -> List[Dict[str, Any]]:
    return [
        {
            "id": bucket.id,
            "name": bucket.name,
            "total_time": format_hours_minutes(bucket.total_seconds, locale),
            "total_seconds": bucket.total_seconds,
            "percentage": bucket.percentage,
        }
        for bucket in buckets
    ]


def dashboard_payload(result: AggregationResult, locale: str = "en") -> Dict[str, Any]:
    """Shape an aggregation computed with the dashboard preset"""
    top = result.top_project
    return {
        "total_time": format_hours_minutes(result.total_seconds, locale),
        "total_seconds": result.total_seconds,
        "top_project": {"id": top.id, "name": top.name} if top else None,
        # Client data is not part of the time-entry model
        "top_client": None,
        "monthly_data": [
            {"month": month, "total_hours": result.by_month.get(month, 0.0)}
            for month in MONTHS
        ],
        "project_breakdown": _breakdown(result.by_project, locale),
        "user_breakdown": _breakdown(result.by_user, locale),
    }


def build_dashboard(
    entries: Iterable[TimeEntry],
    now: Optional[datetime] = None,
    locale: str = "en",
) -> Dict[str, Any]:
    result = aggregate(entries, AggregationOptions.DASHBOARD, now=now)
    logger.debug(
        f"Dashboard built from {result.entry_count} entries",
        extra={"total_seconds": result.total_seconds},
    )
    return dashboard_payload(result, locale)
