"""Merge request analysis: five-way GitLab fan-out merged into one MRAnalysis."""

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from mr_dashboard.models import (
    AnalysisResult,
    FileCommentCount,
    MRAnalysis,
    MRBasicInfo,
    MRRecord,
    Note,
    Pipeline,
    PipelineStatus,
    RawMRBundle,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

SOURCE_HOST = "GitLab"
UNKNOWN_AUTHOR = "Unknown Author"
TOP_FILES_LIMIT = 5
FOCUS_FILE_MIN_COMMENTS = 3

RECOMMEND_PIPELINE_FAILURES = "Address Pipeline Failures: Fix failed pipeline issues before merging"
RECOMMEND_FOCUS_FILE = "Focus on {file}: This file has received {count} comments and may need careful review"
RECOMMEND_UNIT_TESTS = "Review Unit Tests: Multiple test files have comments - ensure test coverage is adequate"
RECOMMEND_ADD_PIPELINE = "Add CI/CD Pipeline: Consider adding automated testing and deployment pipelines"
RECOMMEND_GENERAL = "General Review: Review code changes carefully and ensure all requirements are met"

# foo.spec.ts, foo.test.js, test_foo.py, foo_test.go
TEST_FILE_PATTERN = re.compile(r"\.spec\.|\.test\.|(?:^|/)test_[^/]*$|_test\.[^/.]+$")

# Bundle field -> GitLabService method
LOOKUPS = {
    "basic_info": "get_merge_request",
    "changes": "get_changes",
    "discussions": "get_discussions",
    "notes": "get_notes",
    "pipelines": "get_pipelines",
}


class AnalysisUnavailableError(RuntimeError):
    """Raised instead of returning fallback data when fallback is disabled."""


# --- Metric helpers ---

def count_comments(notes: Sequence[Note]) -> int:
    """Count human (non-system) notes."""
    return sum(1 for note in notes if not note.is_system)


def top_commented_files(discussions: Sequence[Sequence[Note]], limit: int = TOP_FILES_LIMIT) -> List[FileCommentCount]:
    """Files with the most non-system comments, descending; ties keep first-seen order."""
    counts: Dict[str, int] = {}
    for thread in discussions:
        for note in thread:
            if not note.is_system and note.file_position_path:
                counts[note.file_position_path] = counts.get(note.file_position_path, 0) + 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [FileCommentCount(file=file, count=count) for file, count in ranked[:limit]]


def time_to_merge_days(creation_date: Optional[datetime], merge_date: Optional[datetime]) -> Optional[int]:
    """Whole days between creation and merge, rounded half up. Not clamped."""
    if creation_date is None or merge_date is None:
        return None
    try:
        days = (merge_date - creation_date).total_seconds() / 86400
    except TypeError:
        # naive vs aware timestamps
        return None
    return int(math.floor(days + 0.5))


def extract_authors(basic_info: MRBasicInfo, discussions: Sequence[Sequence[Note]]) -> List[str]:
    """The MR author, else the first non-system discussion author, else nobody."""
    if basic_info.author_name:
        return [basic_info.author_name]
    for thread in discussions:
        for note in thread:
            if not note.is_system and note.author_name:
                return [note.author_name]
    return []


def _unique(names) -> List[str]:
    return list(dict.fromkeys(name for name in names if name))


def extract_reviewers(basic_info: MRBasicInfo, discussions: Sequence[Sequence[Note]]) -> List[str]:
    """First non-empty of: explicit reviewers, assignees minus the author,
    non-system discussion authors minus the author."""
    author = basic_info.author_name

    reviewers = _unique(basic_info.reviewers)
    if reviewers:
        return reviewers

    reviewers = _unique(name for name in basic_info.assignees if name != author)
    if reviewers:
        return reviewers

    return _unique(
        note.author_name
        for thread in discussions
        for note in thread
        if not note.is_system and note.author_name != author
    )


def generate_recommendations(pipeline_count: int, failed_pipeline_count: int,
                             top_files: Sequence[FileCommentCount]) -> List[str]:
    recommendations = []

    if failed_pipeline_count > 0:
        recommendations.append(RECOMMEND_PIPELINE_FAILURES)

    if top_files and top_files[0].count > FOCUS_FILE_MIN_COMMENTS:
        top = top_files[0]
        recommendations.append(RECOMMEND_FOCUS_FILE.format(file=top.file, count=top.count))

    if any(TEST_FILE_PATTERN.search(f.file) for f in top_files):
        recommendations.append(RECOMMEND_UNIT_TESTS)

    if pipeline_count == 0:
        recommendations.append(RECOMMEND_ADD_PIPELINE)

    if not recommendations:
        recommendations.append(RECOMMEND_GENERAL)

    return recommendations


def compute_analysis(bundle: RawMRBundle) -> MRAnalysis:
    """Derive the analysis record from a fetched bundle. Pure."""
    basic_info = bundle.basic_info or MRBasicInfo()
    discussions = bundle.discussions or []
    pipelines: List[Pipeline] = bundle.pipelines or []

    top_files = top_commented_files(discussions)
    creation_date = parse_timestamp(basic_info.created_at)
    merge_date = parse_timestamp(basic_info.merged_at)
    pipeline_count = len(pipelines)
    failed_pipeline_count = sum(1 for p in pipelines if p.status == "failed")

    return MRAnalysis(
        total_comments=count_comments(bundle.notes or []),
        creation_date=creation_date,
        merge_date=merge_date,
        time_to_merge_days=time_to_merge_days(creation_date, merge_date),
        top_commented_files=tuple(top_files),
        pipeline_count=pipeline_count,
        failed_pipeline_count=failed_pipeline_count,
        pipeline_statuses=tuple(
            PipelineStatus(name=p.ref or "Pipeline", status=p.status or "unknown") for p in pipelines
        ),
        authors=tuple(extract_authors(basic_info, discussions)),
        reviewers=tuple(extract_reviewers(basic_info, discussions)),
        recommendations=tuple(generate_recommendations(pipeline_count, failed_pipeline_count, top_files)),
    )


def fallback_result(mr_ref, failed_lookups: Optional[List[str]] = None) -> AnalysisResult:
    """Renderable placeholder used when the GitLab lookups could not be joined."""
    ref = str(mr_ref)
    bundle = RawMRBundle(
        basic_info=MRBasicInfo(
            id=int(ref) if ref.isdigit() else ref,
            title=f"Merge Request {ref}",
            web_url="",
            created_at=datetime.now().isoformat(),
            author_name=UNKNOWN_AUTHOR,
        ),
    )
    analysis = MRAnalysis(
        creation_date=datetime.now(),
        authors=(UNKNOWN_AUTHOR,),
        recommendations=(f"{SOURCE_HOST} API unavailable - showing mock data",),
    )
    return AnalysisResult(
        analysis=analysis,
        bundle=bundle,
        is_fallback=True,
        failed_lookups=list(failed_lookups if failed_lookups is not None else LOOKUPS),
    )


class MRAnalyzer:
    """Fetches the five GitLab lookups for an MR in parallel and aggregates them."""

    def __init__(self, gitlab, fallback_on_failure: bool = True, max_workers: int = 5):
        self.gitlab = gitlab
        self.fallback_on_failure = fallback_on_failure
        self.max_workers = max_workers

    def fetch_bundle(self, mr_ref):
        """Run all lookups concurrently. Returns (bundle, failed_lookup_names).

        A failed lookup leaves its bundle field empty; it never cancels the others.
        """
        results = {}
        failed = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                name: executor.submit(getattr(self.gitlab, method), mr_ref)
                for name, method in LOOKUPS.items()
            }
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.warning(f"Lookup {name} failed for MR {mr_ref}: {e}")
                    failed.append(name)

        bundle = RawMRBundle(
            basic_info=results.get("basic_info") or MRBasicInfo(),
            changes=results.get("changes") or [],
            discussions=results.get("discussions") or [],
            notes=results.get("notes") or [],
            pipelines=results.get("pipelines") or [],
        )
        return bundle, failed

    def analyze(self, mr_ref) -> AnalysisResult:
        """Aggregate one MR. Substitutes the fallback record when every lookup fails."""
        logger.info(f"Starting analysis for MR {mr_ref}")
        try:
            bundle, failed = self.fetch_bundle(mr_ref)
            if len(failed) == len(LOOKUPS):
                raise AnalysisUnavailableError(f"All {SOURCE_HOST} lookups failed for MR {mr_ref}")
            analysis = compute_analysis(bundle)
        except Exception as e:
            if not self.fallback_on_failure:
                if isinstance(e, AnalysisUnavailableError):
                    raise
                raise AnalysisUnavailableError(f"Analysis failed for MR {mr_ref}: {e}") from e
            logger.error(f"Analysis failed for MR {mr_ref}, returning fallback data: {e}")
            return fallback_result(mr_ref)

        logger.info(
            f"Analysis for MR {mr_ref}: {analysis.total_comments} comments, "
            f"{analysis.pipeline_count} pipelines ({analysis.failed_pipeline_count} failed)"
        )
        return AnalysisResult(analysis=analysis, bundle=bundle, failed_lookups=failed)


# --- Summarization input ---

def format_discussions_for_ai(discussions: Sequence[Sequence[Note]]) -> str:
    """Render discussion threads as plain text, skipping system notes."""
    parts = []
    for index, thread in enumerate(discussions, start=1):
        parts.append(f"\n--- Discussion {index} ---\n")
        for note in thread:
            if not note.is_system:
                parts.append(f"\n{note.author_name} ({note.created_at}):\n{note.body}\n")
    return "".join(parts)


def build_summary_context(analysis: MRAnalysis, record: Optional[MRRecord] = None,
                          basic_info: Optional[MRBasicInfo] = None) -> str:
    """Context block for the summarization prompt: MR metadata plus analysis numbers.

    Record fields take precedence; GitLab details fill in what the record lacks.
    """
    info = basic_info or MRBasicInfo()
    record = record or MRRecord()

    def pick(record_value, info_value, default):
        return record_value or info_value or default

    top_files = ", ".join(f"{f.file} ({f.count} comments)" for f in analysis.top_commented_files)
    ttm = analysis.time_to_merge_days
    lines = [
        f"MR Title: {pick(record.title, info.title, 'Unknown')}",
        f"Author: {pick(record.author, info.author_name, 'Unknown')}",
        f"Status: {pick(record.status, info.state, 'Unknown')}",
        f"Target Branch: {pick(record.target_branch, info.target_branch, 'Unknown')}",
        f"Source Branch: {pick(record.source_branch, info.source_branch, 'Unknown')}",
        f"Description: {pick(record.description, info.description, 'No description provided')}",
        "",
        "Analysis Summary:",
        f"- Creation Date: {analysis.creation_date.isoformat() if analysis.creation_date else 'Unknown'}",
        f"- Merge Date: {analysis.merge_date.isoformat() if analysis.merge_date else 'Not merged yet'}",
        f"- Time to Merge: {f'{ttm} days' if ttm is not None else 'Not calculated'}",
        f"- Pipeline Count: {analysis.pipeline_count}",
        f"- Failed Pipelines: {analysis.failed_pipeline_count}",
        f"- Top Commented Files: {top_files}",
        f"- Authors: {', '.join(analysis.authors)}",
        f"- Reviewers: {', '.join(analysis.reviewers)}",
    ]
    return "\n".join(lines)


_analyzer: Optional[MRAnalyzer] = None


def get_analyzer() -> MRAnalyzer:
    """Singleton analyzer wired to the configured GitLab client."""
    from mr_dashboard.config import get_config
    from mr_dashboard.extensions import services_lock
    from mr_dashboard.services.gitlab_service import get_gitlab_service

    global _analyzer
    if _analyzer is None:
        gitlab = get_gitlab_service()
        section = get_config().get("analysis", {})
        with services_lock:
            if _analyzer is None:
                _analyzer = MRAnalyzer(
                    gitlab,
                    fallback_on_failure=section.get("fallback_on_failure", True),
                    max_workers=section.get("max_workers", 5),
                )
    return _analyzer
