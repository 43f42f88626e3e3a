"""Tests for record normalization and timestamp parsing."""

from datetime import datetime, timezone

import pytest

from mr_dashboard.models import MRAnalysis, MRRecord, normalize_record, parse_timestamp


@pytest.mark.parametrize("value,expected", [
    ("2024-03-01T09:00:00Z", datetime(2024, 3, 1, 9, tzinfo=timezone.utc)),
    ("2024-03-01T09:00:00.000Z", datetime(2024, 3, 1, 9, tzinfo=timezone.utc)),
    ("2024-03-01 09:00:00", datetime(2024, 3, 1, 9)),
    (datetime(2024, 1, 1), datetime(2024, 1, 1)),
    (None, None),
    ("", None),
    ("not a date", None),
])
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_parse_timestamp_document_store_shape():
    parsed = parse_timestamp({"seconds": 1700000000, "nanoseconds": 0})
    assert parsed == datetime.fromtimestamp(1700000000)


def test_normalize_legacy_aliases():
    record = normalize_record({
        "mr": 17,
        "jira": "https://company.atlassian.net/browse/AUTH-12",
        "thread": "https://gitlab.test/mr/17",
        "mergedAt": "2024-03-04T12:00:00Z",
        "title": "Add login throttling",
    })

    assert record.mr_id == "17"
    assert record.jira_link == "https://company.atlassian.net/browse/AUTH-12"
    assert record.web_url == "https://gitlab.test/mr/17"
    assert record.merged_at == datetime(2024, 3, 4, 12, tzinfo=timezone.utc)
    assert record.title == "Add login throttling"


def test_canonical_names_win_over_aliases():
    record = normalize_record({"mr": "1", "mr_id": "2", "webUrl": "old", "web_url": "new"})

    assert record.mr_id == "2"
    assert record.web_url == "new"


def test_unknown_keys_dropped():
    record = normalize_record({"mr_id": "1", "firebase_path": "/mrs/abc"})
    assert not hasattr(record, "firebase_path")


def test_defaults_applied():
    record = normalize_record({"mr_id": "1"})

    assert record == MRRecord(mr_id="1")
    assert record.priority == "Medium"
    assert record.status == "Open"
    assert record.labels == []


@pytest.mark.parametrize("raw,expected", [
    ("high", "High"),
    ("LOW", "Low"),
    ("urgent", "Medium"),
    (None, "Medium"),
])
def test_priority_normalized(raw, expected):
    assert normalize_record({"mr_id": "1", "priority": raw}).priority == expected


def test_reviewer_list_joined():
    record = normalize_record({"mr_id": "1", "reviewer": ["Rui", "", "Sam"]})
    assert record.reviewer == "Rui, Sam"


@pytest.mark.parametrize("raw,expected", [
    ('["a", "b"]', ["a", "b"]),
    ("a, b,,c", ["a", "b", "c"]),
    (["x"], ["x"]),
    (None, []),
])
def test_labels_parsed(raw, expected):
    assert normalize_record({"mr_id": "1", "labels": raw}).labels == expected


def test_foreign_document_ids_discarded():
    assert normalize_record({"mr_id": "1", "id": "AbCdEf123"}).id is None
    assert normalize_record({"mr_id": "1", "id": "42"}).id == 42


def test_none_strings_fall_back_to_defaults():
    record = normalize_record({"mr_id": "1", "title": None, "status": None})

    assert record.title == ""
    assert record.status == "Open"


def test_record_to_dict_serializes_timestamps():
    record = MRRecord(mr_id="1", merged_at=datetime(2024, 3, 4, 12))

    data = record.to_dict()

    assert data["merged_at"] == "2024-03-04T12:00:00"
    assert data["created_at"] is None


def test_analysis_to_dict_is_json_ready():
    analysis = MRAnalysis(creation_date=datetime(2024, 1, 1), authors=("Dana",))

    data = analysis.to_dict()

    assert data["creation_date"] == "2024-01-01T00:00:00"
    assert data["merge_date"] is None
    assert data["authors"] == ["Dana"]
    assert data["top_commented_files"] == []


def test_normalize_rejects_non_mapping():
    with pytest.raises(ValueError, match="list"):
        normalize_record([{"mr_id": "1"}])


def test_normalize_coerces_scalar_strings():
    record = normalize_record({"mr_id": 7, "status": 5, "author": 3.5})

    assert record.mr_id == "7"
    assert record.status == "5"
    assert record.author == "3.5"
