"""Tests for the GitLab API client."""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_api_mr, make_api_note
from mr_dashboard.config import GitLabSettings
from mr_dashboard.services.gitlab_service import GitLabError, GitLabService


def make_response(payload=None, status_error=None, json_error=None):
    resp = MagicMock()
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    s = MagicMock()
    s.headers = {}
    return s


@pytest.fixture
def gitlab(session):
    return GitLabService("https://gitlab.test/api/v4/", "secret", "group/project", timeout=5, session=session)


def requested_url(session):
    return session.get.call_args[0][0]


def test_token_sent_as_bearer_header(session, gitlab):
    assert session.headers["Authorization"] == "Bearer secret"


def test_no_auth_header_without_token(session):
    GitLabService("https://gitlab.test/api/v4", "", "42", session=session)
    assert "Authorization" not in session.headers


def test_from_settings():
    settings = GitLabSettings(api_url="https://gitlab.test/api/v4", token="t", project_id="42", timeout=12)
    service = GitLabService.from_settings(settings)

    assert service.api_url == "https://gitlab.test/api/v4"
    assert service.project_id == "42"
    assert service.timeout == 12


def test_get_merge_request(session, gitlab):
    session.get.return_value = make_response(make_api_mr())

    info = gitlab.get_merge_request(17)

    assert requested_url(session) == "https://gitlab.test/api/v4/projects/group%2Fproject/merge_requests/17"
    assert session.get.call_args[1]["timeout"] == 5
    assert info.title == "Add login throttling"
    assert info.author_name == "Dana"
    assert info.reviewers == ["Rui", "Sam"]
    assert info.assignees == ["Dana"]
    assert info.merged_at == "2024-03-04T12:00:00.000Z"
    assert info.labels == ["team::Payments", "priority::high"]


def test_get_merge_request_without_author(session, gitlab):
    session.get.return_value = make_response(make_api_mr(author=None, reviewers=None))

    info = gitlab.get_merge_request(17)

    assert info.author_name is None
    assert info.reviewers == []


def test_get_discussions_keeps_thread_grouping(session, gitlab):
    session.get.return_value = make_response([
        {"id": "a", "notes": [make_api_note("Rui", "Rename this", path="src/app.py"), make_api_note("Dana", "Done")]},
        {"id": "b", "notes": [make_api_note("bot", "added 1 commit", system=True)]},
    ])

    threads = gitlab.get_discussions(17)

    assert requested_url(session).endswith("/merge_requests/17/discussions")
    assert [len(t) for t in threads] == [2, 1]
    assert threads[0][0].author_name == "Rui"
    assert threads[0][0].file_position_path == "src/app.py"
    assert threads[0][1].file_position_path is None
    assert threads[1][0].is_system is True


def test_get_notes_is_flat(session, gitlab):
    session.get.return_value = make_response([make_api_note(), make_api_note(system=True)])

    notes = gitlab.get_notes(17)

    assert requested_url(session).endswith("/merge_requests/17/notes")
    assert [n.is_system for n in notes] == [False, True]


def test_get_changes(session, gitlab):
    session.get.return_value = make_response({"changes": [
        {"old_path": "a.py", "new_path": "a.py", "new_file": False, "diff": "@@ -1 +1 @@"},
        {"old_path": "b.py", "new_path": "b.py", "new_file": True},
    ]})

    changes = gitlab.get_changes(17)

    assert [c.new_path for c in changes] == ["a.py", "b.py"]
    assert changes[1].is_new is True


def test_get_pipelines(session, gitlab):
    session.get.return_value = make_response([
        {"id": 1, "ref": "main", "status": "failed"},
        {"id": 2, "ref": "main", "status": "success"},
    ])

    pipelines = gitlab.get_pipelines(17)

    assert [(p.ref, p.status) for p in pipelines] == [("main", "failed"), ("main", "success")]


def test_list_merge_requests_passes_paging(session, gitlab):
    session.get.return_value = make_response([make_api_mr()])

    mrs = gitlab.list_merge_requests(per_page=50, page=2, state="opened")

    assert requested_url(session).endswith("/projects/group%2Fproject/merge_requests")
    assert session.get.call_args[1]["params"] == {"per_page": 50, "page": 2, "state": "opened"}
    assert mrs[0]["iid"] == 17


def test_get_pipeline_jobs(session, gitlab):
    session.get.return_value = make_response([{"name": "unit", "status": "failed"}])

    jobs = gitlab.get_pipeline_jobs(99)

    assert requested_url(session).endswith("/pipelines/99/jobs")
    assert jobs[0]["name"] == "unit"


def test_http_error_maps_to_gitlab_error(session, gitlab):
    error = requests.HTTPError(response=MagicMock(status_code=404))
    session.get.return_value = make_response(status_error=error)

    with pytest.raises(GitLabError, match="404"):
        gitlab.get_notes(17)


def test_connection_error_maps_to_gitlab_error(session, gitlab):
    session.get.side_effect = requests.ConnectionError("refused")

    with pytest.raises(GitLabError, match="refused"):
        gitlab.get_pipelines(17)


def test_invalid_json_maps_to_gitlab_error(session, gitlab):
    session.get.return_value = make_response(json_error=ValueError("not json"))

    with pytest.raises(GitLabError, match="invalid JSON"):
        gitlab.get_merge_request(17)
