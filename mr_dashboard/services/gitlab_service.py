"""GitLab REST API wrapper: merge request details, changes, discussions, notes, pipelines."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from mr_dashboard.config import GitLabSettings
from mr_dashboard.models import FileChange, MRBasicInfo, Note, Pipeline

logger = logging.getLogger(__name__)


class GitLabError(RuntimeError):
    """A GitLab API call failed (transport error, non-2xx status or bad payload)."""


class GitLabService:
    """Thin client over the GitLab v4 API for a single project."""

    def __init__(self, api_url: str, token: str, project_id: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.project_id = str(project_id)
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    @classmethod
    def from_settings(cls, settings: GitLabSettings):
        return cls(settings.api_url, settings.token, settings.project_id, settings.timeout)

    def _project_url(self, path: str) -> str:
        project = quote(self.project_id, safe="")
        return f"{self.api_url}/projects/{project}/{path.lstrip('/')}"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self._project_url(path)
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise GitLabError(f"GitLab request failed ({status}): GET {url}") from e
        except ValueError as e:
            # requests' JSONDecodeError is also a RequestException
            raise GitLabError(f"GitLab returned invalid JSON for GET {url}") from e
        except requests.RequestException as e:
            raise GitLabError(f"GitLab request failed: GET {url}: {e}") from e

    # --- Raw lookups ---

    def get_merge_request_raw(self, mr_id) -> Dict[str, Any]:
        """Raw MR details (title, author, reviewers, labels, branches, ...)."""
        return self._get(f"merge_requests/{mr_id}") or {}

    def list_merge_requests(self, per_page: int = 20, page: int = 1, state: str = "all") -> List[Dict[str, Any]]:
        """List the project's merge requests (opened, closed and merged by default)."""
        return self._get("merge_requests", params={"per_page": per_page, "page": page, "state": state}) or []

    # --- Typed lookups used by the analyzer ---

    def get_merge_request(self, mr_id) -> MRBasicInfo:
        return MRBasicInfo.from_api(self.get_merge_request_raw(mr_id))

    def get_changes(self, mr_id) -> List[FileChange]:
        data = self._get(f"merge_requests/{mr_id}/changes") or {}
        return [FileChange.from_api(c) for c in data.get("changes", [])]

    def get_discussions(self, mr_id) -> List[List[Note]]:
        data = self._get(f"merge_requests/{mr_id}/discussions") or []
        return [[Note.from_api(n) for n in d.get("notes", [])] for d in data]

    def get_notes(self, mr_id) -> List[Note]:
        data = self._get(f"merge_requests/{mr_id}/notes") or []
        return [Note.from_api(n) for n in data]

    def get_pipelines(self, mr_id) -> List[Pipeline]:
        data = self._get(f"merge_requests/{mr_id}/pipelines") or []
        return [Pipeline.from_api(p) for p in data]

    def get_pipeline_jobs(self, pipeline_id) -> List[Dict[str, Any]]:
        """Jobs for one pipeline (name, stage, status, failure_reason, ...)."""
        return self._get(f"pipelines/{pipeline_id}/jobs") or []


_gitlab_service: Optional[GitLabService] = None


def get_gitlab_service() -> GitLabService:
    """Singleton GitLab client built from config."""
    from mr_dashboard.extensions import services_lock

    global _gitlab_service
    if _gitlab_service is None:
        with services_lock:
            if _gitlab_service is None:
                _gitlab_service = GitLabService.from_settings(GitLabSettings.from_config())
    return _gitlab_service
