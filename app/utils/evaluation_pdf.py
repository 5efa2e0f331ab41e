from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.utils.evaluation_scoring import INTERNATIONAL

PAGE_SIZE = landscape(A4)
MARGIN = 12 * mm
RESULT_LABELS = {"pass": "Pass", "improve": "Improve", "fail": "Fail"}
RESULT_COLORS = {
    "pass": "#2e7d32",
    "improve": "#ed6c02",
    "fail": "#d32f2f",
}


def _fmt(value: Any, digits: int = 2) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:,.{digits}f}"
    return str(value)


def _header_footer(title: str, period: str):
    """Running header and page-numbered footer drawn on every page."""
    def draw(canvas, doc):
        width, height = PAGE_SIZE
        canvas.saveState()
        canvas.setFont("Helvetica-Bold", 10)
        canvas.drawString(MARGIN, height - 8 * mm, title)
        canvas.setFont("Helvetica", 9)
        canvas.drawRightString(width - MARGIN, height - 8 * mm, period)
        canvas.setStrokeColor(colors.HexColor("#cccccc"))
        canvas.line(MARGIN, height - 10 * mm, width - MARGIN, height - 10 * mm)

        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.grey)
        canvas.drawString(MARGIN, 6 * mm, f"Generated on {datetime.now().strftime('%d/%m/%Y, %I:%M %p')}")
        canvas.drawRightString(width - MARGIN, 6 * mm, f"Page {doc.page}")
        canvas.restoreState()
    return draw


def _row_cells(index: int, row: Dict[str, Any], cell_style: ParagraphStyle) -> List[Any]:
    if row["transport_type"] == INTERNATIONAL:
        components = [row.get("container_condition_avg"), row.get("punctuality_avg"), row.get("product_damage_avg")]
    else:
        components = [row.get("driver_cooperation_avg"), row.get("vehicle_condition_avg"), row.get("damage_avg")]
    result = row["result"]
    return [
        str(index),
        Paragraph(escape(row["vehicle_plate"] or "-"), cell_style),
        Paragraph(escape(", ".join(row.get("sites") or []) or "-"), cell_style),
        row["transport_type"].title(),
        str(row["trip_count"]),
        *[_fmt(c) for c in components],
        _fmt(row["total_score"]),
        f"{row['percentage']:.2f}%",
        Paragraph(f'<font color="{RESULT_COLORS[result]}"><b>{RESULT_LABELS[result]}</b></font>', cell_style),
    ]


def generate_evaluation_report_pdf(report: Dict[str, Any], contractor_name: str, month: int, year: int,
                                   vehicle_plate: Optional[str] = None) -> BytesIO:
    """Render the monthly evaluation report as a multi-page landscape PDF."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=PAGE_SIZE,
                            rightMargin=MARGIN, leftMargin=MARGIN,
                            topMargin=16 * mm, bottomMargin=14 * mm,
                            title=f"Evaluation report {contractor_name} {month:02d}/{year}")

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=16,
        textColor=colors.HexColor('#1a1a1a'),
        spaceAfter=4,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    subtitle_style = ParagraphStyle(
        'ReportSubtitle',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#333333'),
        alignment=TA_CENTER,
        spaceAfter=6,
    )
    cell_style = ParagraphStyle(
        'Cell',
        parent=styles['Normal'],
        fontSize=8,
        leading=10,
        alignment=TA_LEFT,
        fontName='Helvetica'
    )

    period = f"{month:02d}/{year}"
    elements: List[Any] = [
        Paragraph("Subcontractor Transport Evaluation Report", title_style),
        Paragraph(f"Contractor: {escape(contractor_name)} &nbsp;&nbsp; Period: {period}", subtitle_style),
        Spacer(1, 4 * mm),
    ]
    if vehicle_plate:
        elements.insert(2, Paragraph(f"Vehicle: {escape(vehicle_plate)}", subtitle_style))

    header = ["#", "Vehicle", "Site", "Type", "Trips",
              "Score 1", "Score 2", "Score 3", "Total (10)", "Percent", "Result"]
    data: List[List[Any]] = [header]
    rows = report.get("rows", [])
    for index, row in enumerate(rows, start=1):
        data.append(_row_cells(index, row, cell_style))
    if not rows:
        data.append(["", "No evaluations for this period", "", "", "", "", "", "", "", "", ""])

    table = Table(
        data,
        colWidths=[10 * mm, 32 * mm, 58 * mm, 24 * mm, 14 * mm,
                   18 * mm, 18 * mm, 18 * mm, 20 * mm, 20 * mm, 22 * mm],
        repeatRows=1,
    )
    table_style = [
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1565c0')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ALIGN', (3, 1), (-2, -1), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.4, colors.HexColor('#b0b0b0')),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]
    for i in range(2, len(data), 2):
        table_style.append(('BACKGROUND', (0, i), (-1, i), colors.HexColor('#f5f7fa')))
    if not rows:
        table_style.append(('SPAN', (1, 1), (-1, 1)))
    table.setStyle(TableStyle(table_style))
    elements.append(table)
    elements.append(Spacer(1, 3 * mm))
    elements.append(Paragraph(
        "Domestic: Score 1 = driver cooperation (4), Score 2 = vehicle condition (3), Score 3 = damage (3). "
        "International: container condition (3), punctuality (3), product damage (4). "
        "Result: Pass &gt; 90%, Improve 80-90%, Fail &lt; 80%.",
        cell_style,
    ))
    elements.append(Spacer(1, 6 * mm))

    summary = report.get("summary", {})
    summary_data = [
        ["Total vehicles", str(summary.get("total_vehicles", 0)),
         "Total trips", str(summary.get("total_trips", 0))],
        ["Average score", _fmt(float(summary.get("average_score", 0))),
         "Average percentage", f"{float(summary.get('average_percentage', 0)):.2f}%"],
    ]
    summary_table = Table(summary_data, colWidths=[40 * mm, 30 * mm, 40 * mm, 30 * mm])
    summary_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOX', (0, 0), (-1, -1), 0.6, colors.HexColor('#888888')),
        ('INNERGRID', (0, 0), (-1, -1), 0.3, colors.HexColor('#cccccc')),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
        ('TOPPADDING', (0, 0), (-1, -1), 5),
    ]))

    signature_table = Table(
        [["Evaluated by ______________________", "Approved by ______________________"],
         ["Date ____/____/______", "Date ____/____/______"]],
        colWidths=[120 * mm, 120 * mm],
    )
    signature_table.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('TOPPADDING', (0, 0), (-1, -1), 8),
    ]))

    # Summary and signatures never split across a page break
    elements.append(KeepTogether([summary_table, Spacer(1, 12 * mm), signature_table]))

    on_page = _header_footer(f"Evaluation report - {contractor_name}", period)
    doc.build(elements, onFirstPage=on_page, onLaterPages=on_page)
    buffer.seek(0)
    return buffer
