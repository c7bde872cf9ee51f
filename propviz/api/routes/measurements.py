"""Area and length measurement endpoints"""

from flask import request, send_file
from flask_restx import Namespace, Resource, fields
import io
from typing import Optional
from datetime import datetime
import structlog

from propviz.config.settings import settings
from propviz.services.geocoding_client import GeocodingClient, Location
from propviz.services.history import VisualizationHistory
from propviz.services.measurement import MeasurementSession, ROOF_PITCH_FACTORS
from propviz.services.report_generator import ReportGenerator, ReportConfig
from propviz.utils.exceptions import ValidationError, GeocodingError

logger = structlog.get_logger(__name__)

measurements_ns = Namespace("measurements", description="Land, roof and fence measurements")

point_model = measurements_ns.model("Point", {
    "lat": fields.Float(required=True, description="Latitude"),
    "lng": fields.Float(required=True, description="Longitude")
})

shape_model = measurements_ns.model("Shape", {
    "kind": fields.String(required=True, description="Shape kind", enum=["land", "roof", "fence"]),
    "points": fields.List(fields.Nested(point_model), required=True, description="Vertices in drawing order")
})

measure_request_model = measurements_ns.model("MeasureRequest", {
    "shapes": fields.List(fields.Nested(shape_model), description="Drawn shapes"),
    "geojson": fields.Raw(description="FeatureCollection alternative to shapes, kind in properties"),
    "roofPitch": fields.String(description="Named pitch (e.g. 6/12) or a multiplier", default="flat")
})

report_request_model = measurements_ns.inherit("ReportRequest", measure_request_model, {
    "address": fields.String(description="Property address printed on the report"),
    "title": fields.String(description="Report title"),
    "includeHistory": fields.Boolean(default=False, description="List saved visualizations")
})

def _session_from_request() -> MeasurementSession:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("A JSON body with shapes or geojson is required")
    if not data.get("shapes") and not data.get("geojson"):
        raise ValidationError("At least one shape is required")
    return MeasurementSession.from_payload(data)

def _locate(address: Optional[str]) -> Optional[Location]:
    """Resolve the report address when a Maps key is configured"""
    if not address or not settings.GOOGLE_MAPS_API_KEY:
        return None

    try:
        with GeocodingClient() as client:
            return client.locate(address)
    except GeocodingError as e:
        logger.warning("Report address not geocoded, printing it as given", address=address, error=str(e))
        return None

@measurements_ns.route("")
class Measure(Resource):
    """Compute totals for a set of drawn shapes"""

    @measurements_ns.doc("measure")
    @measurements_ns.expect(measure_request_model)
    def post(self):
        """Land area, roof area (raw and pitch adjusted) and fence length"""
        session = _session_from_request()
        return session.to_dict()

@measurements_ns.route("/pitches")
class Pitches(Resource):
    """Named roof pitches"""

    @measurements_ns.doc("list_pitches")
    def get(self):
        """Roof pitch names and their area multipliers"""
        return {"pitches": [{"pitch": name, "multiplier": factor} for name, factor in ROOF_PITCH_FACTORS.items()]}

@measurements_ns.route("/report")
class MeasurementReport(Resource):
    """PDF export"""

    @measurements_ns.doc("measurement_report")
    @measurements_ns.expect(report_request_model)
    def post(self):
        """Render the measurements as a PDF report"""
        session = _session_from_request()
        data = request.get_json()

        config = ReportConfig(
            title=data.get("title") or "Property Measurement Report",
            address=data.get("address"),
            location=_locate(data.get("address")),
            visualizations=VisualizationHistory().list() if data.get("includeHistory") else []
        )
        pdf = ReportGenerator().generate_report(session, config)

        return send_file(
            io.BytesIO(pdf),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=f"measurement-report-{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.pdf"
        )
