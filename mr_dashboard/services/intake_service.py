"""Prefill a tracked MR record from GitLab merge request details."""

import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from mr_dashboard.models import MRRecord, parse_timestamp

logger = logging.getLogger(__name__)

JIRA_PATTERNS = [
    re.compile(r"Story:\s*(https?://[^\s]+jira[^\s]*)", re.IGNORECASE),
    re.compile(r"https?://[^\s]*jira[^\s]*(?:/browse/[A-Z]+-\d+)", re.IGNORECASE),
    re.compile(r"(https?://[^\s]+jira[^\s]*)", re.IGNORECASE),
]

STATUS_MAP = {
    "opened": "Open",
    "merged": "Merged",
    "closed": "Closed",
    "draft": "Draft",
}

SQUAD_KEYWORDS = ("team", "squad", "frontend", "backend", "auth")
DEFAULT_SQUAD = "General"


def extract_jira_link(description: str) -> str:
    """First Jira URL in the description, preferring a "Story:" line."""
    for pattern in JIRA_PATTERNS:
        match = pattern.search(description or "")
        if match:
            return match.group(1) if match.groups() else match.group(0)
    return ""


def extract_priority(labels: Iterable[str]) -> str:
    label = next(
        (l for l in labels if any(k in l.lower() for k in ("priority", "high", "medium", "low"))),
        None,
    )
    if label:
        lowered = label.lower()
        if "high" in lowered:
            return "High"
        if "medium" in lowered:
            return "Medium"
        if "low" in lowered:
            return "Low"
    return "Medium"


def extract_squads(labels: Iterable[str]) -> str:
    label = next((l for l in labels if any(k in l.lower() for k in SQUAD_KEYWORDS)), None)
    if label:
        return re.sub(r"^team::", "", label, flags=re.IGNORECASE).strip()
    return DEFAULT_SQUAD


def map_status(gitlab_state: Optional[str]) -> str:
    return STATUS_MAP.get((gitlab_state or "").lower(), "Open")


def extract_reviewer_names(reviewers: List[Dict[str, Any]], reviewer_ids: Iterable[str]) -> str:
    """Names of the MR's reviewers that belong to the configured review group.

    With no configured ids every reviewer is listed.
    """
    allowed = {str(i) for i in reviewer_ids}
    names = [
        r.get("name", "")
        for r in reviewers or []
        if r and (not allowed or str(r.get("id")) in allowed)
    ]
    return ", ".join(n for n in names if n)


def build_record_from_gitlab(mr_id, data: Dict[str, Any], reviewer_ids: Iterable[str] = ()) -> MRRecord:
    """Map raw GitLab MR details onto an unsaved MRRecord."""
    labels = list(data.get("labels") or [])
    description = data.get("description") or ""
    state = data.get("state") or "opened"
    merged_at = parse_timestamp(data.get("merged_at")) if state == "merged" else None

    record = MRRecord(
        mr_id=str(mr_id),
        title=data.get("title") or "No title",
        description=description,
        jira_link=extract_jira_link(description),
        web_url=data.get("web_url") or "",
        priority=extract_priority(labels),
        squads=extract_squads(labels),
        status=map_status(state),
        reviewer=extract_reviewer_names(data.get("reviewers") or [], reviewer_ids),
        author=(data.get("author") or {}).get("name") or "Unknown",
        date=date.today().isoformat(),
        target_branch=data.get("target_branch") or "",
        source_branch=data.get("source_branch") or "",
        labels=labels,
        merged_at=merged_at,
    )
    logger.info(f"Prefilled record for MR {mr_id} ({record.status}, {record.priority})")
    return record
