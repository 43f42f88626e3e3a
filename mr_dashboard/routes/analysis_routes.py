"""Analysis and AI summary routes for a single merge request."""

from flask import Blueprint, jsonify, request

from mr_dashboard.database import get_mrs_db
from mr_dashboard.extensions import logger
from mr_dashboard.models import normalize_record
from mr_dashboard.routes import error_response
from mr_dashboard.services.ai_service import SummarizationError
from mr_dashboard.services.analysis_service import AnalysisUnavailableError, get_analyzer
from mr_dashboard.services.summary_service import get_summary_generator

analysis_bp = Blueprint("analysis", __name__)


@analysis_bp.route("/api/merge-requests/<mr_ref>/analysis", methods=["GET"])
def get_analysis(mr_ref):
    """Aggregated analysis for one MR. Fallback data is flagged with is_fallback."""
    try:
        result = get_analyzer().analyze(mr_ref)
        return jsonify(result.to_dict())
    except AnalysisUnavailableError as e:
        logger.error(str(e))
        return jsonify({"error": "GitLab API unavailable"}), 502
    except Exception as e:
        return error_response("Internal server error", 500, f"Error analyzing MR {mr_ref}: {e}")


def _resolve_record(mr_ref, data):
    """Context record: explicit body fields, a stored record id, or the latest stored record."""
    if data.get("record"):
        return normalize_record(data["record"])
    mrs_db = get_mrs_db()
    if data.get("record_id") is not None:
        return mrs_db.get_mr(int(data["record_id"]))
    return mrs_db.get_latest_for_mr(mr_ref)


@analysis_bp.route("/api/merge-requests/<mr_ref>/summary", methods=["POST"])
def generate_summary(mr_ref):
    """Generate (or serve cached) AI summary cards for one MR."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    refresh = bool(data.get("refresh")) or request.args.get("refresh", "").lower() == "true"

    try:
        record = _resolve_record(mr_ref, data)
        payload = get_summary_generator().generate(mr_ref, record=record, refresh=refresh)
        return jsonify(payload)
    except SummarizationError as e:
        logger.error(f"Error generating summary for MR {mr_ref}: {e}")
        return jsonify({"error": str(e) or "Failed to generate AI summary. Please try again."}), 502
    except AnalysisUnavailableError as e:
        logger.error(str(e))
        return jsonify({"error": "GitLab API unavailable"}), 502
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid request: {e}"}), 400
    except Exception as e:
        return error_response("Internal server error", 500, f"Error generating summary for MR {mr_ref}: {e}")
