"""
Caller-facing entry points. Plain lists of strings in, plain report dataclasses out.

    check_gras(ingredients)         -> ComplianceReport (any unmatched is critical)
    check_ndi_and_odi(ingredients)  -> ComplianceReport (match in NDI or ODI is compliant)
    check_allergens(ingredients)    -> AllergenReport
    invalidate(vocabulary_id=None)  -> administrative refresh hook
"""
from typing import Iterable, List, Optional, Sequence
import logging

from regcheck.config import VOCABULARY_IDS, get_strip_stereo_prefixes
from regcheck.evaluation.aggregator import (
    ComplianceAggregator,
    CriticalPolicy,
    any_unmatched_is_critical,
)
from regcheck.events import EventSink
from regcheck.matching.allergen_resolver import AllergenResolver
from regcheck.matching.matcher import Matcher
from regcheck.models.results import AllergenReport, ComplianceReport
from regcheck.normalization.normalizer import NormalizerConfig, normalize
from regcheck.vocabulary.cache import VocabularyCache
from regcheck.vocabulary.store import ReferenceStore, build_reference_store

logger = logging.getLogger(__name__)

GRAS = "gras"
NDI = "ndi"
ODI = "odi"
ALLERGENS = "allergens"


class ComplianceService:

    def __init__(
        self,
        cache: VocabularyCache,
        matcher: Optional[Matcher] = None,
        allergen_resolver: Optional[AllergenResolver] = None,
        event_sink: Optional[EventSink] = None,
    ):
        self._cache = cache
        self._aggregator = ComplianceAggregator(cache, matcher=matcher, event_sink=event_sink)
        self._allergens = allergen_resolver or AllergenResolver()

    @property
    def cache(self) -> VocabularyCache:
        return self._cache

    def check_gras(
        self,
        ingredients: Sequence[object],
        critical_policy: CriticalPolicy = any_unmatched_is_critical,
    ) -> ComplianceReport:
        return self._aggregator.aggregate(ingredients, GRAS, critical_policy)

    def check_ndi_and_odi(
        self,
        ingredients: Sequence[object],
        critical_policy: CriticalPolicy = any_unmatched_is_critical,
    ) -> ComplianceReport:
        """Unmatched here means a new dietary ingredient with no notification on file."""
        return self._aggregator.aggregate_any(ingredients, [NDI, ODI], critical_policy)

    def check_allergens(
        self,
        ingredients: Sequence[object],
        declared: Optional[Iterable] = None,
    ) -> AllergenReport:
        snapshot = self._cache.get(ALLERGENS)
        return self._allergens.resolve_allergens(list(ingredients or []), snapshot, declared=declared)

    def invalidate(self, vocabulary_id: Optional[str] = None) -> List[str]:
        return self._cache.invalidate(vocabulary_id)

    def cache_stats(self) -> dict:
        return self._cache.stats()


def build_default_service(
    store: Optional[ReferenceStore] = None,
    event_sink: Optional[EventSink] = None,
) -> ComplianceService:
    """Service wired from environment configuration (REGCHECK_* variables)."""
    config = NormalizerConfig(strip_stereo_prefixes=get_strip_stereo_prefixes())

    def normalizer(raw: object) -> str:
        return normalize(raw, config)

    cache = VocabularyCache(
        store or build_reference_store(),
        vocabulary_ids=VOCABULARY_IDS,
        event_sink=event_sink,
        normalizer=normalizer,
    )
    return ComplianceService(cache, event_sink=event_sink)
