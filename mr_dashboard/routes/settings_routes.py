"""Settings routes: CRUD for user settings, AI provider selection."""

from flask import Blueprint, jsonify, request

from mr_dashboard.database import get_settings_db
from mr_dashboard.routes import error_response
from mr_dashboard.services.ai_service import get_ai_service

settings_bp = Blueprint("settings", __name__)


@settings_bp.route("/api/settings", methods=["GET"])
def get_all_settings():
    """Get all user settings."""
    try:
        settings_db = get_settings_db()
        settings = settings_db.get_all_settings()
        return jsonify({"settings": settings})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error getting settings: {e}")


@settings_bp.route("/api/settings/<key>", methods=["GET"])
def get_setting(key):
    """Get a specific setting by key."""
    try:
        settings_db = get_settings_db()
        value = settings_db.get_setting(key)
        if value is None:
            return jsonify({"error": "Setting not found"}), 404
        return jsonify({"key": key, "value": value})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error getting setting {key}: {e}")


@settings_bp.route("/api/settings/<key>", methods=["PUT", "POST"])
def set_setting(key):
    """Set a setting value."""
    try:
        settings_db = get_settings_db()
        data = request.get_json(silent=True)
        if data is None or "value" not in data:
            return jsonify({"error": "Missing 'value' in request body"}), 400

        settings_db.set_setting(key, data["value"])
        return jsonify({"key": key, "value": data["value"], "message": "Setting saved"})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error setting {key}: {e}")


@settings_bp.route("/api/settings/<key>", methods=["DELETE"])
def delete_setting(key):
    """Delete a setting."""
    try:
        settings_db = get_settings_db()
        deleted = settings_db.delete_setting(key)
        if not deleted:
            return jsonify({"error": "Setting not found"}), 404
        return jsonify({"message": "Setting deleted"})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error deleting setting {key}: {e}")


@settings_bp.route("/api/ai/providers", methods=["GET"])
def get_ai_providers():
    """Available summarization providers and the current selection."""
    ai_service = get_ai_service()
    return jsonify({
        "providers": ai_service.get_available_providers(),
        "current": ai_service.get_current_provider(),
    })


@settings_bp.route("/api/ai/providers/current", methods=["PUT", "POST"])
def set_ai_provider():
    """Select the summarization provider; the choice is persisted across restarts."""
    data = request.get_json(silent=True) or {}
    provider = data.get("provider")
    if not provider:
        return jsonify({"error": "Missing 'provider' in request body"}), 400

    try:
        ai_service = get_ai_service()
        if not ai_service.set_provider(provider):
            return jsonify({"error": f"Unknown provider: {provider}"}), 400
        if data.get("api_key"):
            ai_service.set_api_key(provider, data["api_key"])
        get_settings_db().set_setting("ai_provider", provider)
        return jsonify({"current": provider, "message": "Provider updated"})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error selecting AI provider {provider}: {e}")
