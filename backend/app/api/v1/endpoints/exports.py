"""
Export endpoints: CSV downloads and the PDF operation reports.
"""

from datetime import datetime, timezone
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import Response, StreamingResponse

from app.core.config import settings
from app.core.logging_config import logger
from app.schemas.report import ExportRequest
from app.services.operation_report_pdf import OperationReportPDFGenerator
from app.services.report_export_service import (
    ExportKind,
    build_timeline,
    export_filename,
    export_member_summary_csv,
    export_time_entries_csv,
    group_operation_report,
)


router = APIRouter(prefix="/exports", tags=["Exports"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def content_disposition(filename: str) -> str:
    """Attachment header that survives non-ASCII project names"""
    ascii_name = filename.encode("ascii", "ignore").decode("ascii") or "export"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def _csv_response(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": content_disposition(filename), **NO_CACHE_HEADERS},
    )


@router.post("/time-entries")
async def export_time_entries(request: ExportRequest):
    """CSV with one line per time entry"""
    locale = request.locale or settings.DEFAULT_LOCALE
    content = export_time_entries_csv(request.to_entries(), locale=locale)
    filename = export_filename(ExportKind.TIME_ENTRIES, request.project_name, locale=locale)
    logger.info(f"Exported {len(request.entries)} time entries as {filename}")
    return _csv_response(content, filename)


@router.post("/member-summary")
async def export_member_summary(request: ExportRequest):
    """CSV with per-member totals and task counts"""
    locale = request.locale or settings.DEFAULT_LOCALE
    content = export_member_summary_csv(request.to_entries(), locale=locale)
    filename = export_filename(ExportKind.MEMBER_SUMMARY, request.project_name, locale=locale)
    logger.info(f"Exported member summary as {filename}")
    return _csv_response(content, filename)


@router.post("/operation-report")
async def export_operation_report(request: ExportRequest):
    """PDF grouping time by project, member, task and day"""
    locale = request.locale or settings.DEFAULT_LOCALE
    now = datetime.now(timezone.utc)
    report = group_operation_report(request.to_entries(), now=now)

    generator = OperationReportPDFGenerator(locale=locale)
    pdf = generator.generate(report, request.period_start, request.period_end)

    filename = export_filename(ExportKind.OPERATION_REPORT, request.project_name, today=now.date(), locale=locale)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename), **NO_CACHE_HEADERS},
    )


@router.post("/operation-report-timeline")
async def export_operation_report_timeline(request: ExportRequest):
    """PDF listing every entry newest first with task, project, member and duration"""
    locale = request.locale or settings.DEFAULT_LOCALE
    now = datetime.now(timezone.utc)
    timeline = build_timeline(request.to_entries(), now=now)

    generator = OperationReportPDFGenerator(locale=locale)
    pdf = generator.generate_timeline(timeline, request.period_start, request.period_end)

    filename = export_filename(ExportKind.OPERATION_REPORT_TIMELINE, request.project_name, today=now.date(), locale=locale)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename), **NO_CACHE_HEADERS},
    )
