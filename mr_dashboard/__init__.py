"""MR Review Dashboard - Backend Package.

Provides the Flask application factory and all backend modules.
"""

from flask import Flask

from mr_dashboard.extensions import logger
from mr_dashboard.database import get_database
from mr_dashboard.routes import register_blueprints


def create_app():
    """Create and configure the Flask application."""
    app = Flask(__name__)
    get_database()
    register_blueprints(app)
    logger.info("MR dashboard application created")
    return app
