"""API Routes Registration"""

from flask_restx import Api

def register_routes(api: Api) -> None:
    """Register all API routes"""

    # Import namespaces
    from propviz.api.routes.config import config_ns
    from propviz.api.routes.geocode import geocode_ns
    from propviz.api.routes.users import signup_ns, admin_ns
    from propviz.api.routes.uploads import upload_ns
    from propviz.api.routes.visualize import visualize_ns
    from propviz.api.routes.history import history_ns
    from propviz.api.routes.measurements import measurements_ns

    # Register namespaces
    api.add_namespace(config_ns, path="/config")
    api.add_namespace(geocode_ns, path="/geocode")
    api.add_namespace(signup_ns, path="/signup")
    api.add_namespace(admin_ns, path="/admin")
    api.add_namespace(upload_ns, path="/upload-image")
    api.add_namespace(visualize_ns, path="/visualize")
    api.add_namespace(history_ns, path="/history")
    api.add_namespace(measurements_ns, path="/measurements")
