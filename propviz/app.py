"""PropViz Flask Application"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_restx import Api
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_compress import Compress
from werkzeug.exceptions import RequestEntityTooLarge
import structlog
from datetime import datetime

from propviz import __version__
from propviz.config.settings import settings
from propviz.api.routes import register_routes
from propviz.services.image_generation import configured_provider_names
from propviz.utils.cache import get_cache_statistics
from propviz.utils.exceptions import PropVizException, PayloadTooLargeError
from propviz.utils.monitoring import add_performance_monitoring, get_performance_report

logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL)

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.LOG_FORMAT == "json" else structlog.dev.ConsoleRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

def _too_large_body():
    return {
        "error": PayloadTooLargeError.__name__,
        "message": f"Image exceeds the {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit"
    }

def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Create and configure Flask application"""

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.SECRET_KEY
    app.config["DEBUG"] = settings.DEBUG
    # Multipart overhead on top of the image itself
    app.config["MAX_CONTENT_LENGTH"] = settings.MAX_UPLOAD_BYTES + 1024 * 1024
    if config:
        app.config.update(config)

    CORS(app,
         origins=settings.ALLOWED_ORIGINS,
         allow_headers=["Content-Type", "Authorization", "X-Admin-Key"],
         methods=["GET", "POST", "DELETE", "OPTIONS"],
         supports_credentials=True
    )

    Compress(app)
    app.config['COMPRESS_MIN_SIZE'] = 500

    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        default_limits=[
            f"{settings.RATE_LIMIT_PER_MINUTE} per minute",
            f"{settings.RATE_LIMIT_PER_HOUR} per hour"
        ],
        storage_uri="memory://"
    )

    api = Api(
        app,
        version=__version__,
        title="PropViz API",
        description="Property measurement and AI exterior visualization",
        doc="/docs" if settings.DEBUG else False,
        prefix=settings.API_PREFIX
    )

    app.limiter = limiter
    app.api = api

    register_routes(api)
    add_performance_monitoring(app)

    @api.errorhandler(PropVizException)
    def handle_propviz_exception(error):
        """Turn service errors into JSON responses"""
        if error.status_code >= 500:
            logger.error("Request failed", error=str(error), type=type(error).__name__)
        else:
            logger.info("Request rejected", error=str(error), type=type(error).__name__)
        return {
            "error": type(error).__name__,
            "message": str(error)
        }, error.status_code

    @api.errorhandler(RequestEntityTooLarge)
    def handle_request_too_large(error):
        """Bodies over MAX_CONTENT_LENGTH never reach the upload check"""
        return _too_large_body(), 413

    @app.errorhandler(413)
    def handle_app_request_too_large(error):
        return jsonify(_too_large_body()), 413

    @app.errorhandler(404)
    def handle_not_found(error):
        """Handle 404 errors"""
        return jsonify({
            "error": "NotFound",
            "message": "The requested resource was not found"
        }), 404

    @app.route("/metrics/performance")
    def performance_metrics():
        """Get performance metrics"""
        report = get_performance_report()
        report["caches"] = get_cache_statistics()
        return jsonify(report)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Configuration-level health check; no vendor calls are made"""
        providers = configured_provider_names()
        services = {
            "geocoding": {"status": "configured" if settings.GOOGLE_MAPS_API_KEY else "missing_key"},
            "storage": {
                "status": "configured" if settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY else "missing_key",
                "bucket": settings.STORAGE_BUCKET
            },
            "users": {"status": "configured" if settings.DATABASE_URL else "missing_key"},
            "image_generation": {"status": "configured" if providers else "missing_key", "providers": providers}
        }

        healthy = all(service["status"] == "configured" for service in services.values())
        health_status = {
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.utcnow().isoformat(),
            "version": __version__,
            "services": services
        }

        return jsonify(health_status), 200 if healthy else 503

    @app.route('/')
    def welcome():
        """Welcome page with endpoint overview"""
        prefix = settings.API_PREFIX
        return jsonify({
            "message": "PropViz API",
            "version": __version__,
            "documentation": "/docs" if settings.DEBUG else None,
            "health_check": "/health",
            "endpoints": {
                "config": {"method": "GET", "url": f"{prefix}/config"},
                "geocode": {"method": "GET", "url": f"{prefix}/geocode?address=..."},
                "measure": {"method": "POST", "url": f"{prefix}/measurements"},
                "report": {"method": "POST", "url": f"{prefix}/measurements/report"},
                "upload": {"method": "POST", "url": f"{prefix}/upload-image"},
                "visualize": {"method": "POST", "url": f"{prefix}/visualize"},
                "history": {"method": "GET", "url": f"{prefix}/history"},
                "signup": {"method": "POST", "url": f"{prefix}/signup"},
                "admin_users": {"method": "GET", "url": f"{prefix}/admin/users"}
            }
        })

    logger.info(
        "PropViz app created",
        debug=settings.DEBUG,
        providers=settings.VISUALIZER_PROVIDERS,
        api_prefix=settings.API_PREFIX
    )

    return app
