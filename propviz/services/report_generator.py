"""PDF measurement reports"""

import io
from typing import Dict, Any, List, Optional
from datetime import datetime
from dataclasses import dataclass, field
from xml.sax.saxutils import escape
import structlog

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable

from propviz.services.measurement import MeasurementSession
from propviz.services.geocoding_client import Location
from propviz.services.history import VisualizationRecord

logger = structlog.get_logger(__name__)

COLORS = {
    "primary": colors.HexColor("#2c3e50"),
    "land": colors.HexColor("#27ae60"),
    "roof": colors.HexColor("#e74c3c"),
    "fence": colors.HexColor("#8e6e53"),
    "background": colors.HexColor("#F9FAFB"),
    "grid": colors.HexColor("#6B7280"),
    "white": colors.white,
}

@dataclass
class ReportConfig:
    """Configuration for a measurement report"""
    title: str = "Property Measurement Report"
    address: Optional[str] = None
    location: Optional[Location] = None
    include_shapes: bool = True
    visualizations: List[VisualizationRecord] = field(default_factory=list)

class ReportGenerator:
    """Lays out a measurement session as a PDF"""

    def __init__(self):
        base = getSampleStyleSheet()
        self.styles = {
            "title": ParagraphStyle("Title", parent=base["Title"], textColor=COLORS["primary"]),
            "section": ParagraphStyle(
                "Section", parent=base["Heading2"], textColor=COLORS["primary"], spaceBefore=12
            ),
            "body": base["BodyText"],
            "small": ParagraphStyle("Small", parent=base["BodyText"], fontSize=8, leading=10),
        }

    def generate_report(self, session: MeasurementSession, config: Optional[ReportConfig] = None) -> bytes:
        """
        Render the report

        Args:
            session: Shapes and pitch to report on
            config: Title, address and optional sections

        Returns:
            PDF document bytes
        """
        config = config or ReportConfig()
        buffer = io.BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            title=config.title,
            leftMargin=0.75 * inch,
            rightMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
        )

        elements = self._build_header(config)
        elements += self._build_summary(session)
        if config.include_shapes and session.all_shapes():
            elements += self._build_shape_table(session)
        if config.visualizations:
            elements += self._build_visualizations(config.visualizations)

        doc.build(elements)
        pdf = buffer.getvalue()

        logger.info(
            "Report generated",
            shapes=len(session.all_shapes()),
            visualizations=len(config.visualizations),
            size=len(pdf)
        )
        return pdf

    def _build_header(self, config: ReportConfig) -> List:
        elements = [
            Paragraph(escape(config.title), self.styles["title"]),
            HRFlowable(width="100%", thickness=2, color=COLORS["primary"], spaceAfter=12),
        ]

        info = [["Report Date", datetime.now().strftime("%B %d, %Y at %I:%M %p")]]
        address = config.location.formatted_address if config.location else config.address
        if config.location:
            info.insert(0, ["Coordinates", f"{config.location.lat:.6f}, {config.location.lng:.6f}"])
        if address:
            info.insert(0, ["Address", Paragraph(escape(address), self.styles["body"])])

        table = Table(info, colWidths=[1.75 * inch, 5.25 * inch])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (0, -1), COLORS["background"]),
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1), 0.5, COLORS["grid"]),
        ]))
        elements.append(table)
        return elements

    def _build_summary(self, session: MeasurementSession) -> List:
        summary = session.summary()

        rows = [
            ["Measurement", "Shapes", "Imperial", "Metric"],
            ["Land area", str(summary.land_count),
             f"{summary.land_area_sqft:,.2f} sq ft", f"{summary.land_area_m2:,.2f} m²"],
            ["Roof area (footprint)", str(summary.roof_count),
             f"{summary.roof_area_sqft:,.2f} sq ft", f"{summary.roof_area_m2:,.2f} m²"],
            [f"Roof area (pitch x{summary.roof_pitch_multiplier:.3f})", "",
             f"{summary.adjusted_roof_area_sqft:,.2f} sq ft", f"{summary.adjusted_roof_area_m2:,.2f} m²"],
            ["Fence length", str(summary.fence_count),
             f"{summary.fence_length_ft:,.2f} ft", f"{summary.fence_length_m:,.2f} m"],
        ]

        table = Table(rows, colWidths=[2.5 * inch, 0.8 * inch, 1.85 * inch, 1.85 * inch])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), COLORS["primary"]),
            ("TEXTCOLOR", (0, 0), (-1, 0), COLORS["white"]),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("GRID", (0, 0), (-1, -1), 0.5, COLORS["grid"]),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [COLORS["white"], COLORS["background"]]),
        ]))

        return [Paragraph("Measurement Summary", self.styles["section"]), table]

    def _build_shape_table(self, session: MeasurementSession) -> List:
        rows = [["#", "Kind", "Vertices", "Measurement"]]
        kinds = []

        for i, shape in enumerate(session.all_shapes(), start=1):
            data = shape.to_dict()
            if "area_sqft" in data:
                value = f"{data['area_sqft']:,.2f} sq ft ({data['area_m2']:,.2f} m²)"
            else:
                value = f"{data['length_ft']:,.2f} ft ({data['length_m']:,.2f} m)"
            if not data["is_simple"]:
                value += " - self-intersecting"
            rows.append([str(i), shape.kind.value.title(), str(data["vertex_count"]), value])
            kinds.append(shape.kind.value)

        style = [
            ("BACKGROUND", (0, 0), (-1, 0), COLORS["primary"]),
            ("TEXTCOLOR", (0, 0), (-1, 0), COLORS["white"]),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("GRID", (0, 0), (-1, -1), 0.5, COLORS["grid"]),
        ]
        for row, kind in enumerate(kinds, start=1):
            style.append(("TEXTCOLOR", (1, row), (1, row), COLORS[kind]))

        table = Table(rows, colWidths=[0.5 * inch, 1.2 * inch, 1 * inch, 4.3 * inch], repeatRows=1)
        table.setStyle(TableStyle(style))

        return [Paragraph("Shapes", self.styles["section"]), table]

    def _build_visualizations(self, records: List[VisualizationRecord]) -> List:
        elements = [Paragraph("Saved Visualizations", self.styles["section"])]

        for record in records:
            elements.append(Paragraph(
                f"<b>{escape(record.type.title())}</b>: {escape(record.option)} "
                f"<font color='#6B7280'>({escape(record.timestamp)})</font>",
                self.styles["body"]
            ))
            # Inline data URLs are too long to be useful on paper
            if not record.generated_url.startswith("data:"):
                elements.append(Paragraph(escape(record.generated_url), self.styles["small"]))
            elements.append(Spacer(1, 6))

        return elements
