"""
Compliance aggregation over an ingredient list.
Pipeline: one cache get per vocabulary -> normalize -> match -> bucket -> critical policy.
No per-ingredient store access; everything after the get is pure.
"""
from typing import Callable, Iterable, List, Optional, Sequence
import logging
import time

from regcheck.events import AggregateEvent, EventSink, emit
from regcheck.matching.matcher import Matcher
from regcheck.models.results import ComplianceReport, MatchResult, MatchType
from regcheck.normalization.normalizer import normalize
from regcheck.vocabulary.cache import VocabularyCache
from regcheck.vocabulary.snapshot import VocabularySnapshot

logger = logging.getLogger(__name__)

CriticalPolicy = Callable[[ComplianceReport], bool]

# Lower is better when the same ingredient matches in several vocabularies.
_TYPE_RANK = {MatchType.EXACT: 0, MatchType.SYNONYM: 1, MatchType.FUZZY: 2, MatchType.NONE: 3}


def any_unmatched_is_critical(report: ComplianceReport) -> bool:
    return bool(report.unmatched)


def never_critical(report: ComplianceReport) -> bool:
    return False


def critical_unless_notified(notified: Iterable[str]) -> CriticalPolicy:
    """
    Unmatched ingredients whose notification exists elsewhere (caller-supplied
    names) are not critical; any other unmatched ingredient is.
    """
    known = frozenset(normalize(n) for n in notified)

    def policy(report: ComplianceReport) -> bool:
        return any(normalize(u) not in known for u in report.unmatched)

    return policy


class ComplianceAggregator:

    def __init__(
        self,
        cache: VocabularyCache,
        matcher: Optional[Matcher] = None,
        event_sink: Optional[EventSink] = None,
    ):
        self._cache = cache
        self._matcher = matcher or Matcher()
        self._sink = event_sink

    def aggregate(
        self,
        ingredients: Sequence[object],
        vocabulary_id: str,
        critical_policy: CriticalPolicy = any_unmatched_is_critical,
    ) -> ComplianceReport:
        """Match every ingredient against one vocabulary."""
        return self.aggregate_any(ingredients, [vocabulary_id], critical_policy)

    def aggregate_any(
        self,
        ingredients: Sequence[object],
        vocabulary_ids: Sequence[str],
        critical_policy: CriticalPolicy = any_unmatched_is_critical,
    ) -> ComplianceReport:
        """
        Match every ingredient against several vocabularies; a match in any of
        them counts. The strongest match type wins, earlier vocabularies break ties.
        """
        started = time.perf_counter()
        snapshots = [self._cache.get(vid) for vid in vocabulary_ids]
        report = self.fold(ingredients, snapshots, critical_policy)
        duration_ms = (time.perf_counter() - started) * 1000
        emit(self._sink, AggregateEvent(
            vocabulary_id="+".join(vocabulary_ids),
            total_ingredients=report.total_ingredients,
            matched=len(report.matched),
            unmatched=len(report.unmatched),
            needs_review=len(report.needs_review),
            critical=report.critical,
            duration_ms=duration_ms,
        ))
        return report

    def best_match(self, raw: object, snapshots: Sequence[VocabularySnapshot]) -> MatchResult:
        display = raw if isinstance(raw, str) else ""
        best: Optional[MatchResult] = None
        for snap in snapshots:
            result = self._matcher.match(snap.normalize(raw), snap, display)
            if best is None or _TYPE_RANK[result.match_type] < _TYPE_RANK[best.match_type]:
                best = result
            if best.match_type is MatchType.EXACT:
                break
        return best

    def fold(
        self,
        ingredients: Sequence[object],
        snapshots: Sequence[VocabularySnapshot],
        critical_policy: CriticalPolicy = any_unmatched_is_critical,
    ) -> ComplianceReport:
        """Pure part of aggregation: snapshots in, report out."""
        items = list(ingredients or [])
        matched: List[MatchResult] = []
        unmatched: List[str] = []
        for raw in items:
            if not isinstance(raw, str) or not raw.strip():
                logger.info("COMPLIANCE_AGGREGATE invalid_input entry=%r treated as no match", raw)
                # listed by repr: None, 17 and "   " stay distinguishable
                unmatched.append(repr(raw))
                continue
            result = self.best_match(raw, snapshots)
            if result.is_match:
                matched.append(result)
            else:
                unmatched.append(result.input)
        report = ComplianceReport(
            vocabulary_ids=[s.vocabulary_id for s in snapshots],
            total_ingredients=len(items),
            matched=matched,
            unmatched=unmatched,
        )
        report.critical = bool(critical_policy(report))
        if unmatched:
            logger.info(
                "COMPLIANCE_AGGREGATE unmatched vocabularies=%s count=%d items=%s",
                report.vocabulary_ids, len(unmatched), unmatched[:20],
            )
        return report
