"""
=============================================================================
CRONOS FACIAL — APPLICATION ENTRY POINT (app.py)
=============================================================================

WHAT THIS FILE DOES:
--------------------
Starts the web server that exposes the engagement scoring pipeline and the
tracking session over HTTP. The server:

  1. Scores engagement and gaze on demand (/analysis/*).
  2. Runs a tracking session: a capture loop analyzes one frame every
     FRAME_INTERVAL_MS, streams results to the AI/ML backend, and submits
     the whole session when tracking stops (/tracking/*).
  3. Reports health and non-secret configuration.

The handlers themselves live in routes.py.

HOW TO RUN:
-----------
  - From project root:  python app.py
  - By default the app is at:  http://localhost:5000

CONFIGURATION:
--------------
  - Settings come from the .env file and config.py.
  - Set API_BASE_URL (and optionally AIML_API_BASE_URL) to your backend.
=============================================================================
"""

# ---------------------------------------------------------------------------
# Step 1: Load environment variables from .env (before anything else)
# ---------------------------------------------------------------------------
# config.py reads os.environ at import time, so .env must be loaded first.
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

# ---------------------------------------------------------------------------
# Step 2: Import the web framework and our own modules
# ---------------------------------------------------------------------------
import logging

from flask import Flask
from flask_cors import CORS
from flask_compress import Compress

from routes import register_routes
import config

# ---------------------------------------------------------------------------
# Step 3: Logging and configuration warnings
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Prints a warning when the backend URLs still point at the placeholder host.
config.warn_missing_config()


def create_app() -> Flask:
    """
    Create and configure the Flask application.

    What it does:
      - Creates the Flask app object.
      - Enables CORS so browser clients on other origins can call the API.
      - Enables compression for larger responses (e.g. /tracking/state with a
        long session).
      - Registers the URL routes from routes.py.

    Returns:
        The configured Flask application.
    """
    app = Flask(__name__)

    # In production you would restrict this to specific domains.
    CORS(app, resources={r"/*": {"origins": "*"}})

    Compress(app)

    register_routes(app)

    return app


# ---------------------------------------------------------------------------
# Create the one global Flask application
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Run the server when this file is executed directly (e.g. "python app.py")
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    # FLASK_DEBUG=true: Flask's development server with auto-reload.
    # Otherwise: Waitress with 6 threads.
    if config.FLASK_DEBUG:
        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=True
        )
    else:
        import waitress
        waitress.serve(app, host=config.FLASK_HOST, port=config.FLASK_PORT, threads=6)
