#!/usr/bin/env python3
"""Data migration script for the MR Review Dashboard.

Imports merge request records exported from the previous document store
(a JSON array of documents, or an object mapping document ids to documents)
into the SQLite database. Legacy field names (mr, jira, thread, ...) are
mapped through normalize_record.

Usage: python migrate_data.py export.json [--dry-run]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from mr_dashboard.database import get_mrs_db
from mr_dashboard.models import normalize_record

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def load_documents(export_path: Path) -> list:
    """Read exported documents as a list of dicts."""
    with open(export_path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return list(data.values())
    return list(data)


def import_records(documents, mrs_db, dry_run: bool = False) -> dict:
    """Import documents, skipping ones without an MR id or already imported.

    Returns counts: {"imported": n, "skipped": n}.
    """
    imported = 0
    skipped = 0

    for doc in documents:
        if not isinstance(doc, dict):
            skipped += 1
            continue

        record = normalize_record(doc)
        record.id = None
        if not record.mr_id:
            logger.warning(f"Skipping document without MR id: {doc.get('title', '<untitled>')}")
            skipped += 1
            continue

        if mrs_db.get_latest_for_mr(record.mr_id):
            logger.info(f"MR {record.mr_id} already imported, skipping")
            skipped += 1
            continue

        if dry_run:
            logger.info(f"[dry-run] Would import MR {record.mr_id}: {record.title}")
        else:
            mrs_db.create_mr(record)
        imported += 1

    logger.info(f"Import finished: {imported} imported, {skipped} skipped")
    return {"imported": imported, "skipped": skipped}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import exported MR records into SQLite")
    parser.add_argument("export_file", type=Path, help="JSON export of MR documents")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be imported")
    args = parser.parse_args(argv)

    if not args.export_file.exists():
        logger.error(f"Export file not found: {args.export_file}")
        return 1

    documents = load_documents(args.export_file)
    logger.info(f"Loaded {len(documents)} documents from {args.export_file}")
    import_records(documents, get_mrs_db(), dry_run=args.dry_run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
