"""Browser configuration endpoint"""

from flask_restx import Namespace, Resource, fields

from propviz.config.settings import settings
from propviz.services.visualizer import VisualizationType

config_ns = Namespace("config", description="Client configuration")

config_model = config_ns.model("ClientConfig", {
    "mapsApiKey": fields.String(description="Google Maps JavaScript API key"),
    "supabaseUrl": fields.String(description="Supabase project URL"),
    "supabaseAnonKey": fields.String(description="Supabase anonymous key"),
    "visualizationTypes": fields.List(fields.String, description="Supported visualization types"),
    "historyLimit": fields.Integer(description="Maximum saved visualizations"),
    "maxUploadBytes": fields.Integer(description="Maximum upload size in bytes")
})

@config_ns.route("")
class ClientConfig(Resource):
    """Keys and limits the browser needs"""

    @config_ns.doc("get_config")
    @config_ns.marshal_with(config_model)
    def get(self):
        """Get client configuration"""
        return {
            "mapsApiKey": settings.GOOGLE_MAPS_API_KEY,
            "supabaseUrl": settings.SUPABASE_URL,
            "supabaseAnonKey": settings.SUPABASE_ANON_KEY,
            "visualizationTypes": [t.value for t in VisualizationType],
            "historyLimit": settings.HISTORY_LIMIT,
            "maxUploadBytes": settings.MAX_UPLOAD_BYTES
        }
