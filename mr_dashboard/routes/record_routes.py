"""Tracked MR record routes: list with filters, create, detail, update, delete."""

from flask import Blueprint, jsonify, request

from mr_dashboard.config import get_config
from mr_dashboard.database import get_mrs_db
from mr_dashboard.filters.mr_filter import MRFilterParams
from mr_dashboard.models import normalize_record
from mr_dashboard.routes import error_response

record_bp = Blueprint("records", __name__)


@record_bp.route("/api/records", methods=["GET"])
def list_records():
    """List records with filtering and sorting."""
    try:
        config = get_config()
        params = MRFilterParams.from_request_args(request.args, default_per_page=config.get("default_per_page", 100))
        records = get_mrs_db().list_mrs(params)
        return jsonify({"records": [r.to_dict() for r in records]})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error listing records: {e}")


@record_bp.route("/api/records", methods=["POST"])
def create_record():
    """Save a record (typically the prefilled intake form)."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    try:
        record = normalize_record(data)
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid record: {e}"}), 400
    if not record.mr_id:
        return jsonify({"error": "Missing required field: mr_id"}), 400

    # A merge date is only meaningful for merged MRs
    if record.status.lower() != "merged":
        record.merged_at = None

    try:
        record_id = get_mrs_db().create_mr(record)
        saved = get_mrs_db().get_mr(record_id)
        return jsonify({
            "record": saved.to_dict(),
            "message": f"MR {record.mr_id} successfully saved",
        }), 201
    except Exception as e:
        return error_response("Internal server error", 500, f"Error saving record for MR {record.mr_id}: {e}")


@record_bp.route("/api/records/<int:record_id>", methods=["GET"])
def get_record(record_id):
    try:
        record = get_mrs_db().get_mr(record_id)
        if not record:
            return jsonify({"error": "Record not found"}), 404
        return jsonify({"record": record.to_dict()})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error getting record {record_id}: {e}")


@record_bp.route("/api/records/<int:record_id>", methods=["PUT", "PATCH"])
def update_record(record_id):
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    data.pop("id", None)

    try:
        mrs_db = get_mrs_db()
        if not mrs_db.update_mr(record_id, data):
            return jsonify({"error": "Record not found"}), 404
        record = mrs_db.get_mr(record_id)
        # Same rule as on create: only merged MRs keep a merge date
        if record.merged_at and record.status.lower() != "merged":
            mrs_db.update_mr(record_id, {"merged_at": None})
            record = mrs_db.get_mr(record_id)
        return jsonify({"record": record.to_dict()})
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid record: {e}"}), 400
    except Exception as e:
        return error_response("Internal server error", 500, f"Error updating record {record_id}: {e}")


@record_bp.route("/api/records/<int:record_id>", methods=["DELETE"])
def delete_record(record_id):
    try:
        if not get_mrs_db().delete_mr(record_id):
            return jsonify({"error": "Record not found"}), 404
        return jsonify({"message": "Record deleted"})
    except Exception as e:
        return error_response("Internal server error", 500, f"Error deleting record {record_id}: {e}")
