"""Pydantic schemas for time reports, dashboards and exports"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from datetime import date, datetime
from enum import Enum

from app.services.time_aggregation import AggregationOptions, TimeEntry
from app.utils.duration import DurationFormat


class BreakdownEnum(str, Enum):
    PROJECT = "project"
    USER = "user"
    MONTH = "month"
    TASK = "task"
    MONTH_PROJECT = "month_project"


# ==================== Input Schemas ====================

class TimeEntryIn(BaseModel):
    """
    A time entry as fetched from the data store.

    Labels may be given flat (`project_name`) or in the joined shape
    (`projects: {"name": ...}`, `profiles: {"full_name": ...}`, `tasks: {"title": ...}`),
    where each join may also arrive as a list whose first element is used.
    """
    id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    break_minutes: int = Field(default=0, ge=0)
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    task_id: Optional[str] = None
    description: Optional[str] = None

    project_name: Optional[str] = None
    user_name: Optional[str] = None
    task_title: Optional[str] = None
    task_status: Optional[str] = None

    # The store returns joins either as one object or as a one-element list
    projects: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    profiles: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    tasks: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None

    def to_entry(self) -> TimeEntry:
        return TimeEntry.from_row(self.model_dump())


class EntriesRequest(BaseModel):
    """Already-filtered entries plus presentation options"""
    entries: List[TimeEntryIn] = Field(default_factory=list)
    locale: Optional[str] = Field(None, description="'en' or 'ja'; defaults to DEFAULT_LOCALE")

    def to_entries(self) -> List[TimeEntry]:
        return [entry.to_entry() for entry in self.entries]


class SummaryRequest(EntriesRequest):
    breakdowns: List[BreakdownEnum] = Field(default_factory=lambda: [BreakdownEnum.PROJECT])
    duration_format: DurationFormat = DurationFormat.HMS

    def options(self) -> AggregationOptions:
        return AggregationOptions(
            by_project=BreakdownEnum.PROJECT in self.breakdowns,
            by_user=BreakdownEnum.USER in self.breakdowns,
            by_month=BreakdownEnum.MONTH in self.breakdowns,
            by_task=BreakdownEnum.TASK in self.breakdowns,
            by_month_project=BreakdownEnum.MONTH_PROJECT in self.breakdowns,
        )


class ExportRequest(EntriesRequest):
    project_name: str = Field(default="report", max_length=255, description="Used in the download file name")
    period_start: Optional[date] = None
    period_end: Optional[date] = None


# ==================== Response Schemas ====================

class BreakdownItem(BaseModel):
    id: Optional[str] = None
    name: str
    total_seconds: int
    total_time: str
    percentage: float


class MonthlyHours(BaseModel):
    month: int = Field(..., ge=1, le=12)
    total_hours: float


class MonthProjectsItem(BaseModel):
    """One month with its per-project split"""
    month: int = Field(..., ge=1, le=12)
    total_seconds: int
    total_time: str
    projects: List[BreakdownItem]


class ProjectRef(BaseModel):
    id: Optional[str] = None
    name: str


class SummaryResponse(BaseModel):
    """Aggregation result with formatted durations"""
    total_seconds: int
    total_time: str
    entry_count: int
    by_project: List[BreakdownItem] = []
    by_user: List[BreakdownItem] = []
    by_task: List[BreakdownItem] = []
    by_month: Dict[int, float] = {}
    by_month_project: List[MonthProjectsItem] = []


class ReportEntryRow(BaseModel):
    id: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    task_id: Optional[str] = None
    task_title: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: str
    description: Optional[str] = None


class ReportEntriesResponse(BaseModel):
    """Report page payload"""
    total_seconds: int
    total_time: str
    entries: List[ReportEntryRow]
    project_breakdown: List[BreakdownItem]


class DashboardResponse(BaseModel):
    total_seconds: int
    total_time: str
    top_project: Optional[ProjectRef] = None
    top_client: Optional[Dict[str, Any]] = None
    monthly_data: List[MonthlyHours]
    project_breakdown: List[BreakdownItem]
    user_breakdown: List[BreakdownItem]
