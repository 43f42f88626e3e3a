"""Route blueprints registration."""

from flask import jsonify

from mr_dashboard.extensions import logger


def error_response(message, status, log_message=None):
    """Log the detailed error and return a generic JSON error body."""
    logger.error(log_message or message)
    return jsonify({"error": message}), status


def register_blueprints(app):
    """Register all route blueprints with the Flask app."""
    from mr_dashboard.routes.record_routes import record_bp
    from mr_dashboard.routes.gitlab_routes import gitlab_bp
    from mr_dashboard.routes.analysis_routes import analysis_bp
    from mr_dashboard.routes.report_routes import report_bp
    from mr_dashboard.routes.settings_routes import settings_bp
    from mr_dashboard.routes.cache_routes import cache_bp

    app.register_blueprint(record_bp)
    app.register_blueprint(gitlab_bp)
    app.register_blueprint(analysis_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(cache_bp)
