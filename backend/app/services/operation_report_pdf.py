"""
PDF Generator for Operation Reports
Renders the project -> user -> task -> day grouping, or the newest-first
timeline of entries, as an A4 document
"""

import calendar
from datetime import date, datetime, timezone
from io import BytesIO
from typing import Callable, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable

from app.core.config import settings
from app.core.exceptions import ExportError
from app.core.logging_config import logger
from app.services.report_export_service import OperationReport, Timeline


REPORT_LABELS = {
    "en": {
        "title": "Operation Report",
        "total": "Total working time",
        "empty": "No time was recorded in this period.",
        "date": "Date",
        "time": "Time",
        "timeline_title": "Detailed Report",
        "description": "Description",
        "user": "Member",
    },
    "ja": {
        "title": "稼働レポート",
        "total": "合計稼働時間",
        "empty": "この期間の稼働記録はありません。",
        "date": "日付",
        "time": "作業時間",
        "timeline_title": "詳細レポート",
        "description": "説明",
        "user": "ユーザー",
    },
}


def current_month_period(today: Optional[date] = None):
    """First and last day of the month containing ``today``"""
    today = today or datetime.now(timezone.utc).date()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def _resolve_period(period_start: Optional[date], period_end: Optional[date]):
    if period_start is None or period_end is None:
        default_start, default_end = current_month_period()
        period_start = period_start or default_start
        period_end = period_end or default_end
    return period_start, period_end


class OperationReportPDFGenerator:
    """
    Generate operation report PDFs

    Layout: title, period, grand total, then one section per project with
    each member's total, their tasks and the dated entries of each task.
    """

    REGULAR_FONT = "ReportSans"
    BOLD_FONT = "ReportSans-Bold"

    def __init__(self, locale: Optional[str] = None):
        self.locale = locale if locale in REPORT_LABELS else settings.DEFAULT_LOCALE
        if self.locale not in REPORT_LABELS:
            self.locale = "en"
        self.labels = REPORT_LABELS[self.locale]
        self.font, self.bold_font = self._register_fonts()
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _register_fonts(self):
        """Use the configured TTF fonts when present, Helvetica otherwise"""
        if not settings.REPORT_FONT_PATH:
            return "Helvetica", "Helvetica-Bold"

        try:
            pdfmetrics.registerFont(TTFont(self.REGULAR_FONT, settings.REPORT_FONT_PATH))
            bold_font = self.REGULAR_FONT
            if settings.REPORT_BOLD_FONT_PATH:
                pdfmetrics.registerFont(TTFont(self.BOLD_FONT, settings.REPORT_BOLD_FONT_PATH))
                bold_font = self.BOLD_FONT
            return self.REGULAR_FONT, bold_font
        except Exception as e:
            logger.warning(f"Could not load report font {settings.REPORT_FONT_PATH}: {e}")
            return "Helvetica", "Helvetica-Bold"

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Title'],
            fontSize=24,
            textColor=HexColor('#1a1a1a'),
            spaceAfter=4,
            alignment=TA_LEFT,
            fontName=self.bold_font
        ))

        self.styles.add(ParagraphStyle(
            name='ReportPeriod',
            parent=self.styles['Normal'],
            fontSize=14,
            leading=18,
            textColor=HexColor('#4a4a4a'),
            spaceAfter=4,
            fontName=self.font
        ))

        self.styles.add(ParagraphStyle(
            name='ReportTotal',
            parent=self.styles['Normal'],
            fontSize=16,
            leading=20,
            textColor=HexColor('#1a1a1a'),
            spaceAfter=10,
            fontName=self.bold_font
        ))

        self.styles.add(ParagraphStyle(
            name='ProjectHeading',
            parent=self.styles['Normal'],
            fontSize=16,
            leading=20,
            textColor=HexColor('#2c3e50'),
            spaceBefore=10,
            spaceAfter=6,
            fontName=self.bold_font,
            keepWithNext=True
        ))

        self.styles.add(ParagraphStyle(
            name='MemberHeading',
            parent=self.styles['Normal'],
            fontSize=14,
            leading=18,
            textColor=HexColor('#34495e'),
            spaceAfter=4,
            fontName=self.bold_font,
            keepWithNext=True
        ))

        self.styles.add(ParagraphStyle(
            name='TaskLine',
            parent=self.styles['Normal'],
            fontSize=12,
            leading=15,
            leftIndent=12,
            textColor=HexColor('#333333'),
            fontName=self.font,
            keepWithNext=True
        ))

        self.styles.add(ParagraphStyle(
            name='ReportBody',
            parent=self.styles['Normal'],
            fontSize=11,
            textColor=HexColor('#333333'),
            fontName=self.font
        ))

    def _day_table(self, task) -> Table:
        data = [[self.labels["date"], self.labels["time"]]]
        for day in task.entries:
            data.append([day.date.strftime("%Y/%m/%d"), day.time])

        table = Table(data, colWidths=[1.6 * inch, 1.2 * inch], hAlign='LEFT')
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), self.font),
            ('FONTNAME', (0, 0), (-1, 0), self.bold_font),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (-1, -1), HexColor('#333333')),
            ('BACKGROUND', (0, 0), (-1, 0), HexColor('#ecf0f1')),
            ('LINEBELOW', (0, 0), (-1, 0), 0.5, HexColor('#bdc3c7')),
            ('LEFTPADDING', (0, 0), (-1, -1), 6),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return table

    def _header(self, title: str, total_time: str, period_start: date, period_end: date) -> List:
        return [
            Paragraph(escape(title), self.styles['ReportTitle']),
            Paragraph(
                f"{period_start.strftime('%Y/%m/%d')} 〜 {period_end.strftime('%Y/%m/%d')}",
                self.styles['ReportPeriod']
            ),
            Paragraph(f"{escape(self.labels['total'])}: {total_time}", self.styles['ReportTotal']),
            HRFlowable(width="100%", thickness=1, color=HexColor('#7f8c8d')),
        ]

    def _build_story(self, report: OperationReport, period_start: date, period_end: date) -> List:
        story = self._header(self.labels["title"], report.total_time, period_start, period_end)

        if report.is_empty:
            story.append(Spacer(1, 0.2 * inch))
            story.append(Paragraph(escape(self.labels["empty"]), self.styles['ReportBody']))
            return story

        for project in report.projects.values():
            story.append(Paragraph(escape(project.project_name), self.styles['ProjectHeading']))

            for user in project.users.values():
                story.append(Paragraph(
                    f"{escape(user.user_name)}: {user.total_time}",
                    self.styles['MemberHeading']
                ))
                for task in user.tasks.values():
                    story.append(Paragraph(
                        f"• {escape(task.task_name)}: {task.total_time}",
                        self.styles['TaskLine']
                    ))
                    story.append(self._day_table(task))
                    story.append(Spacer(1, 0.1 * inch))
                story.append(Spacer(1, 0.15 * inch))

            story.append(HRFlowable(width="100%", thickness=0.5, color=HexColor('#bdc3c7')))

        return story

    def _timeline_table(self, timeline: Timeline) -> Table:
        cell = self.styles['ReportBody']
        data = [[
            self.labels["date"],
            self.labels["description"],
            self.labels["time"],
            self.labels["user"],
        ]]
        for entry in timeline.entries:
            data.append([
                entry.date.strftime("%Y/%m/%d"),
                # Task on the first line, project below it in grey
                Paragraph(
                    f"{escape(entry.task_title)}<br/><font size='8' color='#7f8c8d'>{escape(entry.project_name)}</font>",
                    cell
                ),
                entry.duration,
                Paragraph(escape(entry.user_name), cell),
            ])

        table = Table(data, colWidths=[1.2 * inch, 3.3 * inch, 1.0 * inch, 1.6 * inch], repeatRows=1, hAlign='LEFT')
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), self.font),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (-1, 0), HexColor('#7f8c8d')),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LINEBELOW', (0, 0), (-1, -1), 0.5, HexColor('#d3d3d3')),
            ('TOPPADDING', (0, 1), (-1, -1), 5),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
        ]))
        return table

    def _build_timeline_story(self, timeline: Timeline, period_start: date, period_end: date) -> List:
        story = self._header(self.labels["timeline_title"], timeline.total_time, period_start, period_end)
        story.append(Spacer(1, 0.15 * inch))

        if timeline.is_empty:
            story.append(Paragraph(escape(self.labels["empty"]), self.styles['ReportBody']))
        else:
            story.append(self._timeline_table(timeline))
        return story

    def _render(self, title: str, export_type: str, build_story: Callable[[], List]) -> bytes:
        buffer = BytesIO()
        try:
            doc = SimpleDocTemplate(
                buffer,
                pagesize=A4,
                rightMargin=40,
                leftMargin=40,
                topMargin=40,
                bottomMargin=40,
                title=title,
            )
            doc.build(build_story())
        except Exception as e:
            logger.error(f"Error generating {export_type} PDF: {e}", exc_info=True)
            raise ExportError(f"Failed to generate {export_type.replace('_', ' ')}", export_type=export_type) from e
        return buffer.getvalue()

    def generate(
        self,
        report: OperationReport,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> bytes:
        """
        Render an operation report

        Args:
            report: Grouped entries from group_operation_report()
            period_start: First day shown in the header (defaults to this month)
            period_end: Last day shown in the header

        Returns:
            bytes: The PDF document
        """
        period_start, period_end = _resolve_period(period_start, period_end)
        pdf = self._render(
            self.labels["title"],
            "operation_report",
            lambda: self._build_story(report, period_start, period_end),
        )
        logger.info(
            f"Generated operation report PDF ({len(pdf)} bytes, {len(report.projects)} projects)"
        )
        return pdf

    def generate_timeline(
        self,
        timeline: Timeline,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> bytes:
        """Render the timeline from build_timeline(): one row per entry, newest first"""
        period_start, period_end = _resolve_period(period_start, period_end)
        pdf = self._render(
            self.labels["timeline_title"],
            "operation_report_timeline",
            lambda: self._build_timeline_story(timeline, period_start, period_end),
        )
        logger.info(f"Generated timeline PDF ({len(pdf)} bytes, {len(timeline.entries)} entries)")
        return pdf
