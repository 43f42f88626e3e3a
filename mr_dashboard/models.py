"""Typed records shared by the services, the database layer and the routes.

GitLab payloads are converted into these dataclasses at the client boundary,
and persisted merge-request records are converted into ``MRRecord`` through
``normalize_record`` so that consumers never deal with raw field aliases.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed). Returns None if unparsable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, dict) and "seconds" in value:
        # Exported document-store timestamps: {"seconds": ..., "nanoseconds": ...}
        try:
            return datetime.fromtimestamp(float(value["seconds"]))
        except (TypeError, ValueError, OverflowError):
            return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# --- GitLab payloads ---

@dataclass
class Note:
    """A single discussion note. System notes are automated events, not comments."""
    author_name: str = ""
    created_at: str = ""
    body: str = ""
    is_system: bool = False
    file_position_path: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]):
        author = data.get("author") or {}
        position = data.get("position") or {}
        return cls(
            author_name=author.get("name", "") or "",
            created_at=data.get("created_at", "") or "",
            body=data.get("body", "") or "",
            is_system=bool(data.get("system", False)),
            file_position_path=position.get("new_path") or None,
        )


@dataclass
class FileChange:
    old_path: str = ""
    new_path: str = ""
    is_new: bool = False
    is_renamed: bool = False
    is_deleted: bool = False
    diff: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]):
        return cls(
            old_path=data.get("old_path", ""),
            new_path=data.get("new_path", ""),
            is_new=bool(data.get("new_file", False)),
            is_renamed=bool(data.get("renamed_file", False)),
            is_deleted=bool(data.get("deleted_file", False)),
            diff=data.get("diff", "") or "",
        )


@dataclass
class Pipeline:
    ref: str = ""
    status: str = ""
    created_at: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]):
        return cls(
            ref=data.get("ref", "") or "",
            status=data.get("status", "") or "",
            created_at=data.get("created_at", "") or "",
        )


@dataclass
class MRBasicInfo:
    """Merge request details from GET /projects/:id/merge_requests/:iid."""
    id: Any = None
    title: str = ""
    web_url: str = ""
    created_at: Optional[str] = None
    merged_at: Optional[str] = None
    state: str = ""
    author_name: Optional[str] = None
    reviewers: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    description: str = ""
    target_branch: str = ""
    source_branch: str = ""
    labels: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]):
        author = data.get("author") or {}
        return cls(
            id=data.get("id"),
            title=data.get("title", "") or "",
            web_url=data.get("web_url", "") or "",
            created_at=data.get("created_at"),
            merged_at=data.get("merged_at"),
            state=data.get("state", "") or "",
            author_name=author.get("name") or None,
            reviewers=[r["name"] for r in data.get("reviewers") or [] if r and r.get("name")],
            assignees=[a["name"] for a in data.get("assignees") or [] if a and a.get("name")],
            description=data.get("description", "") or "",
            target_branch=data.get("target_branch", "") or "",
            source_branch=data.get("source_branch", "") or "",
            labels=list(data.get("labels") or []),
        )


@dataclass
class RawMRBundle:
    """The five independent lookups for one merge request."""
    basic_info: MRBasicInfo = field(default_factory=MRBasicInfo)
    changes: List[FileChange] = field(default_factory=list)
    discussions: List[List[Note]] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    pipelines: List[Pipeline] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# --- Derived analysis ---

@dataclass(frozen=True)
class FileCommentCount:
    file: str
    count: int


@dataclass(frozen=True)
class PipelineStatus:
    name: str
    status: str


@dataclass(frozen=True)
class MRAnalysis:
    total_comments: int = 0
    creation_date: Optional[datetime] = None
    merge_date: Optional[datetime] = None
    time_to_merge_days: Optional[int] = None
    top_commented_files: tuple = ()
    pipeline_count: int = 0
    failed_pipeline_count: int = 0
    pipeline_statuses: tuple = ()
    authors: tuple = ()
    reviewers: tuple = ()
    recommendations: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_comments": self.total_comments,
            "creation_date": _isoformat(self.creation_date),
            "merge_date": _isoformat(self.merge_date),
            "time_to_merge_days": self.time_to_merge_days,
            "top_commented_files": [asdict(f) for f in self.top_commented_files],
            "pipeline_count": self.pipeline_count,
            "failed_pipeline_count": self.failed_pipeline_count,
            "pipeline_statuses": [asdict(p) for p in self.pipeline_statuses],
            "authors": list(self.authors),
            "reviewers": list(self.reviewers),
            "recommendations": list(self.recommendations),
        }


@dataclass
class AnalysisResult:
    """Aggregator output: the analysis, the raw bundle it was computed from,
    and whether the fallback record was substituted."""
    analysis: MRAnalysis
    bundle: RawMRBundle
    is_fallback: bool = False
    failed_lookups: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis": self.analysis.to_dict(),
            "bundle": self.bundle.to_dict(),
            "is_fallback": self.is_fallback,
            "failed_lookups": list(self.failed_lookups),
        }


# --- Narrative summary ---

@dataclass
class ParsedSummary:
    key_insights: List[str] = field(default_factory=list)
    decisions: List[str] = field(default_factory=list)
    action_items: List[str] = field(default_factory=list)
    technical_details: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return asdict(self)


@dataclass(frozen=True)
class SummaryCard:
    key: str
    title: str
    items: tuple
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "title": self.title, "items": list(self.items), "priority": self.priority}


# --- Persisted records ---

PRIORITIES = ("High", "Medium", "Low")

# Legacy field name -> canonical field name
RECORD_FIELD_ALIASES = {
    "mr": "mr_id",
    "mrId": "mr_id",
    "jira": "jira_link",
    "jiraLink": "jira_link",
    "thread": "web_url",
    "webUrl": "web_url",
    "targetBranch": "target_branch",
    "sourceBranch": "source_branch",
    "mergedAt": "merged_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


@dataclass
class MRRecord:
    """A merge request as tracked by the dashboard."""
    mr_id: str = ""
    title: str = ""
    id: Optional[int] = None
    description: str = ""
    jira_link: str = ""
    web_url: str = ""
    priority: str = "Medium"
    squads: str = ""
    status: str = "Open"
    reviewer: str = ""
    author: str = ""
    action: str = ""
    date: str = ""
    target_branch: str = ""
    source_branch: str = ""
    labels: List[str] = field(default_factory=list)
    merged_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("merged_at", "created_at", "updated_at"):
            data[key] = _isoformat(getattr(self, key))
        return data


RECORD_FIELDS = {f for f in MRRecord.__dataclass_fields__}


def canonical_field(key: str) -> str:
    """Canonical MRRecord field name for a possibly aliased key."""
    return RECORD_FIELD_ALIASES.get(key, key)


def normalize_record(raw: Dict[str, Any]) -> MRRecord:
    """Map a raw record (any field naming convention) onto ``MRRecord``.

    Canonical names win over aliases when both are present. Unknown keys are
    dropped. Raises ValueError if ``raw`` is not a mapping.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Record must be an object, got {type(raw).__name__}")

    data = {}
    for key, value in raw.items():
        canonical = canonical_field(key)
        if canonical not in RECORD_FIELDS:
            continue
        if canonical in data and key != canonical:
            continue
        data[canonical] = value

    reviewer = data.get("reviewer")
    if isinstance(reviewer, (list, tuple)):
        data["reviewer"] = ", ".join(str(r) for r in reviewer if r)

    labels = data.get("labels")
    if isinstance(labels, str):
        try:
            labels = json.loads(labels)
        except json.JSONDecodeError:
            labels = [label.strip() for label in labels.split(",") if label.strip()]
    data["labels"] = list(labels or [])

    priority = str(data.get("priority") or "Medium").capitalize()
    data["priority"] = priority if priority in PRIORITIES else "Medium"

    for key in ("merged_at", "created_at", "updated_at"):
        data[key] = parse_timestamp(data.get(key))

    # ids are assigned by this store; foreign document ids are discarded
    if data.get("id") is not None:
        data["id"] = int(data["id"]) if str(data["id"]).isdigit() else None
    if data.get("mr_id") is not None:
        data["mr_id"] = str(data["mr_id"])

    for key in ("title", "description", "jira_link", "web_url", "squads", "status",
                "reviewer", "author", "action", "date", "target_branch", "source_branch"):
        if data.get(key) is None:
            data.pop(key, None)
        elif not isinstance(data[key], str):
            data[key] = str(data[key])

    return MRRecord(**data)
