#!/usr/bin/env python3
"""Run PropViz Flask application"""

from propviz.app import create_app
from propviz.config.settings import settings

if __name__ == "__main__":
    # Validate settings
    try:
        settings.validate()
        print("✓ Settings validated")
        print(f"  - Providers: {', '.join(settings.VISUALIZER_PROVIDERS)}")
        print(f"  - Storage bucket: {settings.STORAGE_BUCKET}")
    except ValueError as e:
        print(f"✗ Settings validation failed: {e}")
        exit(1)

    app = create_app()

    # Run app
    print(f"\n🚀 Starting PropViz API on http://{settings.API_HOST}:{settings.API_PORT}")
    print(f"📚 API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs\n")

    app.run(
        host=settings.API_HOST,
        port=settings.API_PORT,
        debug=settings.DEBUG
    )
