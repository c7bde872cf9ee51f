"""Saved visualization history endpoints"""

from flask import request
from flask_restx import Namespace, Resource, fields

from propviz.services.history import VisualizationHistory, VisualizationRecord
from propviz.services.visualizer import describe_option, parse_type
from propviz.utils.exceptions import ValidationError

history_ns = Namespace("history", description="Saved visualizations")

save_model = history_ns.model("SaveVisualization", {
    "type": fields.String(required=True, description="Visualization type",
                          enum=["paint", "fence", "roof", "flooring"]),
    "options": fields.Raw(required=True, description="Options used for the generation"),
    "originalUrl": fields.String(required=True, description="Source photo URL"),
    "generatedUrl": fields.String(required=True, description="Generated image URL")
})

record_model = history_ns.model("VisualizationRecord", {
    "id": fields.String(description="Entry id"),
    "type": fields.String(description="Visualization type"),
    "option": fields.String(description="Chosen option"),
    "original_url": fields.String(description="Source photo URL"),
    "generated_url": fields.String(description="Generated image URL"),
    "timestamp": fields.String(description="When it was saved")
})

@history_ns.route("")
class HistoryList(Resource):
    """The saved list"""

    @history_ns.doc("list_history")
    @history_ns.marshal_list_with(record_model)
    def get(self):
        """Saved visualizations, newest first"""
        return [record.to_dict() for record in VisualizationHistory().list()]

    @history_ns.doc("save_visualization")
    @history_ns.expect(save_model)
    @history_ns.marshal_with(record_model, code=201)
    def post(self):
        """Save a generated visualization; the oldest entry is dropped when full"""
        data = request.get_json(silent=True) or {}

        missing = [key for key in ("type", "options", "originalUrl", "generatedUrl") if not data.get(key)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        viz_type = parse_type(data["type"])
        record = VisualizationRecord.create(
            viz_type=viz_type.value,
            option=describe_option(viz_type, data["options"]),
            original_url=data["originalUrl"],
            generated_url=data["generatedUrl"]
        )
        VisualizationHistory().save(record)
        return record.to_dict(), 201

    @history_ns.doc("clear_history")
    def delete(self):
        """Remove every saved visualization"""
        removed = VisualizationHistory().clear()
        return {"success": True, "removed": removed}

@history_ns.route("/<string:record_id>")
@history_ns.param("record_id", "History entry id")
class HistoryItem(Resource):
    """One saved visualization"""

    @history_ns.doc("delete_visualization")
    def delete(self, record_id):
        """Remove a saved visualization"""
        VisualizationHistory().delete(record_id)
        return {"success": True}
