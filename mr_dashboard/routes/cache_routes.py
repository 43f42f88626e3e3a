"""Cache management routes."""

from flask import Blueprint, jsonify

from mr_dashboard.extensions import logger, summary_cache, summary_cache_lock

cache_bp = Blueprint("cache", __name__)


@cache_bp.route("/api/clear-cache", methods=["POST"])
def clear_cache():
    """Drop all cached AI summaries."""
    with summary_cache_lock:
        cleared = len(summary_cache)
        summary_cache.clear()
    logger.info(f"Cleared {cleared} cached summaries")
    return jsonify({"message": "Cache cleared", "cleared": cleared})
