"""
Reference vocabularies: records, immutable snapshots, the snapshot cache and store adapters.
"""
from .records import AllergenCategory, AllergenRecord, IngredientRecord, record_from_dict
from .snapshot import IndexEntry, VocabularySnapshot
from .store import (
    JsonReferenceStore,
    ReferenceStore,
    SupabaseReferenceStore,
    build_reference_store,
    row_to_record_dict,
)
from .cache import VocabularyCache

__all__ = [
    "AllergenCategory",
    "AllergenRecord",
    "IngredientRecord",
    "record_from_dict",
    "IndexEntry",
    "VocabularySnapshot",
    "JsonReferenceStore",
    "ReferenceStore",
    "SupabaseReferenceStore",
    "build_reference_store",
    "row_to_record_dict",
    "VocabularyCache",
]
