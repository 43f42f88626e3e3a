"""Reporting routes: status counts, monthly trends, status distribution."""

from flask import Blueprint, jsonify

from mr_dashboard.database import get_mrs_db
from mr_dashboard.routes import error_response
from mr_dashboard.visualizers.report_visualizer import compute_report

report_bp = Blueprint("reports", __name__)


@report_bp.route("/api/reports", methods=["GET"])
def get_report():
    try:
        records = get_mrs_db().list_all()
        return jsonify(compute_report(records))
    except Exception as e:
        return error_response("Internal server error", 500, f"Error building report: {e}")
