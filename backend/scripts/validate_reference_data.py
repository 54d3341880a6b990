#!/usr/bin/env python3
"""
Validate reference vocabularies before a running service picks them up.
Loads each vocabulary from the configured store (REGCHECK_STORE) and builds its
snapshot index; any duplicate canonical name, cross-category allergen
derivative or malformed row is reported.
Run from backend: python scripts/validate_reference_data.py [vocabulary ...]
Exit 0 if every vocabulary is valid; 1 otherwise. After an import, run this,
then POST /admin/invalidate-cache.
"""
import sys
from pathlib import Path
from typing import List, Optional, Tuple

# Add backend to path when run as script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from regcheck.config import VOCABULARY_IDS
from regcheck.errors import RegcheckError
from regcheck.vocabulary.records import record_from_dict
from regcheck.vocabulary.snapshot import VocabularySnapshot
from regcheck.vocabulary.store import ReferenceStore, build_reference_store


def check_vocabulary(store: ReferenceStore, vocabulary_id: str) -> Tuple[bool, str]:
    """Return (success, message)."""
    try:
        rows = store.list_active_records(vocabulary_id)
    except RegcheckError as e:
        return False, str(e)
    records = []
    for i, row in enumerate(rows):
        try:
            records.append(record_from_dict(vocabulary_id, row))
        except (ValueError, TypeError) as e:
            return False, f"row {i}: {e}"
    try:
        snapshot = VocabularySnapshot(vocabulary_id, records, ttl=0)
    except RegcheckError as e:
        return False, str(e)
    if not len(snapshot):
        return False, "no active records"
    return True, f"ok ({len(snapshot)} active records)"


def main(argv: Optional[List[str]] = None, store: Optional[ReferenceStore] = None) -> int:
    vocabulary_ids = list(argv if argv is not None else sys.argv[1:]) or list(VOCABULARY_IDS)
    store = store or build_reference_store()
    print("Validating reference vocabularies...")
    failed = []
    for vid in vocabulary_ids:
        ok, msg = check_vocabulary(store, vid)
        print(f"  {vid:<10} {'OK' if ok else 'FAIL'} - {msg}")
        if not ok:
            failed.append(vid)
    if failed:
        print(f"Invalid reference data: {', '.join(failed)}")
        return 1
    print("All vocabularies valid.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
