"""GitLab lookup routes: recent MRs and prefilled intake form for one MR."""

from flask import Blueprint, jsonify, request

from mr_dashboard.config import GitLabSettings
from mr_dashboard.extensions import logger
from mr_dashboard.services.gitlab_service import GitLabError, get_gitlab_service
from mr_dashboard.services.intake_service import build_record_from_gitlab

gitlab_bp = Blueprint("gitlab", __name__)


@gitlab_bp.route("/api/gitlab/merge-requests", methods=["GET"])
def list_gitlab_merge_requests():
    """First page of the project's merge requests, all states."""
    per_page = min(request.args.get("per_page", 20, type=int), 100)
    page = max(request.args.get("page", 1, type=int), 1)
    state = request.args.get("state", "all")
    try:
        mrs = get_gitlab_service().list_merge_requests(per_page=per_page, page=page, state=state)
        return jsonify({"merge_requests": mrs})
    except GitLabError as e:
        logger.error(f"Failed to list GitLab merge requests: {e}")
        return jsonify({"error": "Failed to fetch merge requests from GitLab"}), 502


@gitlab_bp.route("/api/gitlab/merge-requests/<mr_id>", methods=["GET"])
def get_gitlab_merge_request(mr_id):
    """Raw MR details plus a record prefilled from them."""
    mr_id = mr_id.strip()
    if not mr_id:
        return jsonify({"error": "Please enter a valid MR ID"}), 400

    try:
        data = get_gitlab_service().get_merge_request_raw(mr_id)
    except GitLabError as e:
        logger.error(f"Failed to fetch MR {mr_id}: {e}")
        return jsonify({"error": "Failed to fetch MR data. Please check the MR ID and try again."}), 502

    record = build_record_from_gitlab(mr_id, data, GitLabSettings.from_config().reviewer_ids)
    return jsonify({"merge_request": data, "record": record.to_dict()})
