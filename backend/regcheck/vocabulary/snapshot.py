"""
Immutable, fully indexed point-in-time view of one vocabulary.
The name index is built once at construction and never mutated; a refresh
replaces the whole snapshot.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
import logging
import time

from regcheck.errors import InvalidReferenceData
from regcheck.normalization.normalizer import normalize, word_tokens
from .records import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEntry:
    record: Record
    is_canonical: bool
    term: str


@dataclass(frozen=True)
class FuzzyTerm:
    record: Record
    key: str
    words: frozenset


class VocabularySnapshot:
    """
    O(1) lookup by normalized canonical name, synonym or derivative.
    Canonical terms take precedence over synonyms sharing the same key.
    Raises InvalidReferenceData when two records claim the same canonical term
    (duplicate canonical name, or a derivative under two allergen categories).
    """

    def __init__(
        self,
        vocabulary_id: str,
        records: Sequence[Record],
        ttl: float,
        loaded_at: Optional[float] = None,
        normalizer: Callable[[str], str] = normalize,
    ):
        self.vocabulary_id = vocabulary_id
        self.records: tuple = tuple(records)
        self.ttl = ttl
        self.loaded_at = time.time() if loaded_at is None else loaded_at
        self._normalize = normalizer
        self._index: dict[str, IndexEntry] = {}
        self._active: tuple = tuple(r for r in self.records if r.active)
        self._build_index()
        self._fuzzy: tuple = tuple(self._build_fuzzy_terms())

    def _build_index(self) -> None:
        problems: list[str] = []
        synonym_conflicts = 0
        for record in self._active:
            for term, is_canonical in record.index_terms():
                key = self._normalize(term)
                if not key:
                    continue
                existing = self._index.get(key)
                if existing is None:
                    self._index[key] = IndexEntry(record, is_canonical, term)
                    continue
                if existing.record is record:
                    continue
                if is_canonical and existing.is_canonical:
                    problems.append(
                        f"{key!r} claimed by {existing.record.canonical_name!r} and {record.canonical_name!r}"
                    )
                elif is_canonical:
                    self._index[key] = IndexEntry(record, is_canonical, term)
                elif not existing.is_canonical:
                    synonym_conflicts += 1
                    logger.warning(
                        "VOCAB_INDEX synonym_conflict vocabulary=%s key=%s kept=%s dropped=%s",
                        self.vocabulary_id, key, existing.record.canonical_name, record.canonical_name,
                    )
        if problems:
            logger.error(
                "VOCAB_INDEX invalid_reference_data vocabulary=%s problems=%d first=%s",
                self.vocabulary_id, len(problems), problems[:3],
            )
            raise InvalidReferenceData(self.vocabulary_id, problems)
        logger.info(
            "VOCAB_INDEX built vocabulary=%s records=%d active=%d keys=%d synonym_conflicts=%d",
            self.vocabulary_id, len(self.records), len(self._active), len(self._index), synonym_conflicts,
        )

    def _build_fuzzy_terms(self):
        for record in self._active:
            seen = set()
            for term in record.fuzzy_terms:
                key = self._normalize(term)
                if key and key not in seen:
                    seen.add(key)
                    yield FuzzyTerm(record, key, frozenset(word_tokens(key)))

    @property
    def active_records(self) -> tuple:
        return self._active

    @property
    def fuzzy_terms(self) -> tuple:
        """Pre-normalized (record, key, words) rows scanned by the fuzzy stage, in store order."""
        return self._fuzzy

    def lookup(self, normalized_name: str) -> Optional[IndexEntry]:
        return self._index.get(normalized_name)

    def normalize(self, raw: object) -> str:
        return self._normalize(raw)

    def age(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.loaded_at

    def is_expired(self, now: Optional[float] = None) -> bool:
        return self.age(now) >= self.ttl

    def __len__(self) -> int:
        return len(self._active)

    def __repr__(self) -> str:
        return f"VocabularySnapshot({self.vocabulary_id!r}, records={len(self.records)}, keys={len(self._index)})"
