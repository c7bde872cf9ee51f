#!/usr/bin/env python3
"""WSGI entry point"""

import os

from propviz.app import create_app

app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3000))
    app.run(host="0.0.0.0", port=port)
