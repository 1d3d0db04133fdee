"""CSV, JSON and PDF renderings of a filtered transaction set."""
from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Literal, Sequence

from fastapi.encoders import jsonable_encoder
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from expenser.domain.transactions.schemas import Transaction

logger = logging.getLogger(__name__)

CSV_HEADERS = ("Date", "Description", "Category", "Type", "Amount", "Tags")
PDF_TITLE = "EXPENSER - Financial Report"

ReportType = Literal["summary", "detailed"]


@dataclass(frozen=True)
class ReportParameters:
    start: date
    end: date
    categories: tuple[str, ...] = ()
    include_income: bool = True
    include_expenses: bool = True
    report_type: ReportType = "summary"
    generated_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def csv_filename(start: date, end: date) -> str:
    return f"expenser-data-{start.isoformat()}-to-{end.isoformat()}.csv"


def report_filename(start: date, end: date, extension: str) -> str:
    return f"expenser-report-{start.isoformat()}-to-{end.isoformat()}.{extension}"


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def render_csv(transactions: Sequence[Transaction]) -> str:
    """One line per transaction; text columns are always quoted."""
    lines = [",".join(CSV_HEADERS)]
    for t in transactions:
        lines.append(
            ",".join(
                [
                    t.date.isoformat(),
                    _quote(t.description),
                    _quote(t.category),
                    t.type,
                    _money(t.amount),
                    _quote(";".join(t.tags)),
                ]
            )
        )
    return "\n".join(lines)


def render_json(
    transactions: Sequence[Transaction],
    summary: dict[str, Any],
    params: ReportParameters,
) -> str:
    document = {
        "reportMetadata": {
            "generatedOn": params.generated_on.isoformat(),
            "dateRange": {"from": params.start.isoformat(), "to": params.end.isoformat()},
            "filters": {
                "categories": list(params.categories),
                "includeIncome": params.include_income,
                "includeExpenses": params.include_expenses,
            },
        },
        "summary": jsonable_encoder(summary, custom_encoder={Decimal: float}),
        "transactions": [t.model_dump(mode="json", by_alias=True) for t in transactions],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def render_data_export(user: dict[str, Any], transactions: Sequence[Transaction], categories: Sequence[Any]) -> str:
    """Full account export: the user, every transaction and every category."""
    document = {
        "user": user,
        "expenses": [t.model_dump(mode="json", by_alias=True) for t in transactions],
        "categories": [c.model_dump(mode="json") for c in categories],
        "exportedAt": datetime.now(timezone.utc).isoformat(),
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


_GRID = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2980b9")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
)


def render_pdf(
    transactions: Sequence[Transaction],
    summary: dict[str, Any],
    params: ReportParameters,
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=20 * mm, rightMargin=20 * mm, title=PDF_TITLE)
    styles = getSampleStyleSheet()

    story: list[Any] = [
        Paragraph(PDF_TITLE, styles["Title"]),
        Paragraph(f"Period: {params.start.isoformat()} - {params.end.isoformat()}", styles["Normal"]),
        Paragraph(f"Generated on: {params.generated_on.date().isoformat()}", styles["Normal"]),
        Spacer(1, 8 * mm),
        Paragraph("Summary", styles["Heading2"]),
        Table(
            [
                ["Metric", "Value"],
                ["Total Income", f"${_money(summary['totalIncome'])}"],
                ["Total Expenses", f"${_money(summary['totalExpenses'])}"],
                ["Net Amount", f"${_money(summary['netAmount'])}"],
                ["Total Transactions", str(summary["transactionCount"])],
            ],
            style=_GRID,
            hAlign="LEFT",
        ),
    ]

    breakdown = summary.get("categoryBreakdown") or []
    if breakdown:
        rows = [["Category", "Transactions", "Amount", "Percentage"]]
        rows += [
            [row["name"], str(row["count"]), f"${_money(row['total'])}", f"{row['percentage']:.1f}%"]
            for row in breakdown
        ]
        story += [
            Spacer(1, 8 * mm),
            Paragraph("Category Breakdown", styles["Heading2"]),
            Table(rows, style=_GRID, hAlign="LEFT"),
        ]

    if params.report_type == "detailed" and transactions:
        rows = [["Date", "Description", "Category", "Type", "Amount"]]
        rows += [
            [t.date.isoformat(), t.description, t.category, t.type, f"${_money(t.amount)}"]
            for t in transactions
        ]
        story += [
            PageBreak(),
            Paragraph("Detailed Transactions", styles["Heading2"]),
            Table(rows, style=_GRID, hAlign="LEFT", repeatRows=1),
        ]

    doc.build(story)
    logger.debug("Rendered %s PDF with %s transactions", params.report_type, len(transactions))
    return buffer.getvalue()


__all__ = [
    "CSV_HEADERS",
    "PDF_TITLE",
    "ReportParameters",
    "csv_filename",
    "render_csv",
    "render_data_export",
    "render_json",
    "render_pdf",
    "report_filename",
]
