"""Shared fixtures: temporary SQLite database, Flask client, GitLab payload builders."""

from typing import Any, Dict, List, Optional

import pytest

import mr_dashboard.config as config_module
import mr_dashboard.database as database_module
import mr_dashboard.services.ai_service as ai_service_module
import mr_dashboard.services.analysis_service as analysis_service_module
import mr_dashboard.services.gitlab_service as gitlab_service_module
from mr_dashboard.database import Database, MergeRequestsDB, SettingsDB
from mr_dashboard.extensions import summary_cache
from mr_dashboard.models import Note


@pytest.fixture
def test_config(tmp_path, monkeypatch) -> Dict[str, Any]:
    config = {
        "db_path": str(tmp_path / "test.db"),
        "gitlab": {
            "api_url": "https://gitlab.test/api/v4",
            "token": "test-token",
            "project_id": "42",
            "reviewer_ids": ["7"],
        },
        "ai": {"default_provider": "openai"},
        "analysis": {"fallback_on_failure": True, "max_workers": 5},
    }
    monkeypatch.setattr(config_module, "_config", config)
    return config


@pytest.fixture
def db(tmp_path) -> Database:
    return Database(tmp_path / "test.db")


@pytest.fixture
def mrs_db(db) -> MergeRequestsDB:
    return MergeRequestsDB(db)


@pytest.fixture
def settings_db(db) -> SettingsDB:
    return SettingsDB(db)


@pytest.fixture
def app(test_config, db, monkeypatch):
    """Flask app wired to a temporary database with service singletons reset."""
    monkeypatch.setattr(database_module, "_db_instance", db)
    monkeypatch.setattr(database_module, "_mrs_db", None)
    monkeypatch.setattr(database_module, "_settings_db", None)
    monkeypatch.setattr(gitlab_service_module, "_gitlab_service", None)
    monkeypatch.setattr(analysis_service_module, "_analyzer", None)
    monkeypatch.setattr(ai_service_module, "_ai_service", None)
    summary_cache.clear()

    from mr_dashboard import create_app

    flask_app = create_app()
    flask_app.config["TESTING"] = True
    yield flask_app
    summary_cache.clear()


@pytest.fixture
def client(app):
    return app.test_client()


# --- Payload builders ---

def make_note(author: str = "Alice", body: str = "Looks good", system: bool = False,
              path: Optional[str] = None, created_at: str = "2024-01-02T10:00:00Z") -> Note:
    return Note(author_name=author, created_at=created_at, body=body, is_system=system, file_position_path=path)


def make_api_note(author: str = "Alice", body: str = "Looks good", system: bool = False,
                  path: Optional[str] = None) -> Dict[str, Any]:
    note = {
        "id": 1,
        "author": {"id": 1, "name": author, "username": author.lower()},
        "created_at": "2024-01-02T10:00:00.000Z",
        "body": body,
        "system": system,
    }
    if path:
        note["position"] = {"new_path": path, "old_path": path}
    return note


def make_api_mr(**overrides) -> Dict[str, Any]:
    data = {
        "id": 1001,
        "iid": 17,
        "title": "Add login throttling",
        "description": "Story: https://company.atlassian.net/jira/browse/AUTH-12\nDetails",
        "web_url": "https://gitlab.test/group/project/-/merge_requests/17",
        "state": "merged",
        "created_at": "2024-03-01T09:00:00.000Z",
        "merged_at": "2024-03-04T12:00:00.000Z",
        "author": {"id": 3, "name": "Dana"},
        "reviewers": [{"id": 7, "name": "Rui"}, {"id": 8, "name": "Sam"}],
        "assignees": [{"id": 3, "name": "Dana"}],
        "labels": ["team::Payments", "priority::high"],
        "target_branch": "main",
        "source_branch": "feature/throttle",
    }
    data.update(overrides)
    return data


@pytest.fixture
def note_factory():
    return make_note


def threads(*groups: List[Note]) -> List[List[Note]]:
    return [list(g) for g in groups]
