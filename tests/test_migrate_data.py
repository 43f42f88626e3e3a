"""Tests for importing exported document-store records."""

import json

from migrate_data import import_records, load_documents, main


def test_load_documents_accepts_list_and_mapping(tmp_path):
    as_list = tmp_path / "list.json"
    as_list.write_text(json.dumps([{"mr": "1"}]))
    as_map = tmp_path / "map.json"
    as_map.write_text(json.dumps({"doc-a": {"mr": "2"}, "doc-b": {"mr": "3"}}))

    assert load_documents(as_list) == [{"mr": "1"}]
    assert load_documents(as_map) == [{"mr": "2"}, {"mr": "3"}]


def test_import_records_maps_legacy_fields(mrs_db):
    documents = [
        {"id": "XyZ123", "mr": 17, "jira": "AUTH-12", "thread": "https://gitlab.test/mr/17",
         "priority": "high", "status": "Merged", "createdAt": {"seconds": 1700000000, "nanoseconds": 0}},
        {"title": "missing id"},
        "not a document",
    ]

    counts = import_records(documents, mrs_db)

    assert counts == {"imported": 1, "skipped": 2}
    record = mrs_db.get_latest_for_mr("17")
    assert record.jira_link == "AUTH-12"
    assert record.web_url == "https://gitlab.test/mr/17"
    assert record.priority == "High"


def test_import_skips_already_imported(mrs_db):
    import_records([{"mr": "17"}], mrs_db)

    counts = import_records([{"mr": "17"}, {"mr": "18"}], mrs_db)

    assert counts == {"imported": 1, "skipped": 1}
    assert mrs_db.count_all() == 2


def test_dry_run_writes_nothing(mrs_db):
    counts = import_records([{"mr": "17"}], mrs_db, dry_run=True)

    assert counts == {"imported": 1, "skipped": 0}
    assert mrs_db.count_all() == 0


def test_main_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.json")]) == 1
