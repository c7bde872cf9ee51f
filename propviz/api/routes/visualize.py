"""AI visualization endpoint"""

from flask import request
from flask_restx import Namespace, Resource, fields

from propviz.services.visualizer import Visualizer
from propviz.utils.exceptions import ValidationError

visualize_ns = Namespace("visualize", description="AI-generated exterior previews")

visualize_request_model = visualize_ns.model("VisualizeRequest", {
    "imageUrl": fields.String(required=True, description="Public URL of the source photo"),
    "type": fields.String(required=True, description="What to change",
                          enum=["paint", "fence", "roof", "flooring"]),
    "options": fields.Raw(required=True, description="Choice for the type, e.g. {\"color\": \"sage green\"}")
})

visualize_response_model = visualize_ns.model("VisualizeResponse", {
    "success": fields.Boolean(description="Success status"),
    "originalUrl": fields.String(description="Source photo URL"),
    "generatedUrl": fields.String(description="Generated image URL, or a data URL when storage failed"),
    "temporary": fields.Boolean(description="True when generatedUrl is an inline data URL"),
    "provider": fields.String(description="Provider that produced the image"),
    "instruction": fields.String(description="Edit instruction sent to the provider")
})

@visualize_ns.route("")
class Visualize(Resource):
    """Generate an edited copy of a photo"""

    @visualize_ns.doc("visualize")
    @visualize_ns.expect(visualize_request_model)
    @visualize_ns.marshal_with(visualize_response_model)
    def post(self):
        """Apply a paint, fence, roof or flooring change to the photo"""
        data = request.get_json(silent=True) or {}

        image_url = data.get("imageUrl")
        viz_type = data.get("type")
        options = data.get("options")

        if not image_url or not viz_type or not options:
            raise ValidationError("Missing required fields: imageUrl, type, options")

        with Visualizer() as visualizer:
            result = visualizer.visualize(image_url, viz_type, options)
        return result.to_dict()
