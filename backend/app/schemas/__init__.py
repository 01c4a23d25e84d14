# Pydantic schemas
from app.schemas.invitation import (
    InvitationCreate,
    InvitationCreateResponse,
    InvitationVerifyResponse,
)
from app.schemas.report import (
    BreakdownEnum,
    TimeEntryIn,
    EntriesRequest,
    SummaryRequest,
    ExportRequest,
    BreakdownItem,
    MonthProjectsItem,
    SummaryResponse,
    ReportEntriesResponse,
    DashboardResponse,
)

__all__ = [
    "InvitationCreate",
    "InvitationCreateResponse",
    "InvitationVerifyResponse",
    "BreakdownEnum",
    "TimeEntryIn",
    "EntriesRequest",
    "SummaryRequest",
    "ExportRequest",
    "BreakdownItem",
    "MonthProjectsItem",
    "SummaryResponse",
    "ReportEntriesResponse",
    "DashboardResponse",
]
