"""Image upload endpoint"""

from flask import request
from flask_restx import Namespace, Resource, fields
from werkzeug.datastructures import FileStorage
import structlog

from propviz.config.settings import settings
from propviz.services.image_storage import ImageStorage
from propviz.utils.exceptions import ValidationError, PayloadTooLargeError

logger = structlog.get_logger(__name__)

upload_ns = Namespace("upload-image", description="Photo uploads for the visualizer")

upload_parser = upload_ns.parser()
upload_parser.add_argument("image", location="files", type=FileStorage, required=True, help="Image file")

upload_response_model = upload_ns.model("UploadResponse", {
    "success": fields.Boolean(description="Success status"),
    "url": fields.String(description="Public URL of the stored image"),
    "path": fields.String(description="Object path inside the bucket")
})

@upload_ns.route("")
class UploadImage(Resource):
    """Store a photo and return its public URL"""

    @upload_ns.doc("upload_image")
    @upload_ns.expect(upload_parser)
    @upload_ns.marshal_with(upload_response_model)
    def post(self):
        """Upload an image (image/* only, 10MB max)"""
        file = request.files.get("image")

        if file is None or not file.filename:
            raise ValidationError("No image file provided")

        content_type = file.mimetype or ""
        if not content_type.startswith("image/"):
            raise ValidationError("Only image files are allowed")

        data = file.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise PayloadTooLargeError(
                f"Image exceeds the {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit"
            )
        if not data:
            raise ValidationError("Image file is empty")

        with ImageStorage() as storage:
            stored = storage.put(data, content_type, folder="uploads")
        logger.info("Upload complete", path=stored.path, size=len(data))

        return {"success": True, "url": stored.url, "path": stored.path}
