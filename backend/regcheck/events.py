"""
Structured observability events. The engine defines the shape; transport is
whatever sink the caller injects. The default sink writes one log line per event.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional, Union
import logging

logger = logging.getLogger(__name__)

# Cache outcomes
HIT = "hit"
MISS = "miss"
STALE = "stale"
ERROR = "error"


@dataclass(frozen=True)
class CacheEvent:
    """
    One cache get that touched the refresh path, or a hit.
    outcome: hit (live snapshot), miss (fresh snapshot loaded), stale (refresh
    failed, previous snapshot served), error (refresh failed, nothing to serve).
    shared: the caller waited on a refresh another caller was running.
    """
    vocabulary_id: str
    outcome: str
    record_count: int = 0
    duration_ms: float = 0.0
    stale: bool = False
    error: Optional[str] = None
    shared: bool = False
    kind: str = field(default="vocabulary_cache", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AggregateEvent:
    vocabulary_id: str
    total_ingredients: int
    matched: int
    unmatched: int
    needs_review: int
    critical: bool
    duration_ms: float = 0.0
    kind: str = field(default="compliance_aggregate", init=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Event = Union[CacheEvent, AggregateEvent]
EventSink = Callable[[Event], None]


def log_event(event: Event) -> None:
    """Default sink."""
    if isinstance(event, CacheEvent):
        if event.outcome == HIT:
            logger.debug(
                "VOCAB_CACHE hit vocabulary=%s records=%d",
                event.vocabulary_id, event.record_count,
            )
            return
        level = logging.INFO if event.outcome == MISS else logging.WARNING
        logger.log(
            level,
            "VOCAB_CACHE %s vocabulary=%s records=%d duration_ms=%.1f stale=%s shared=%s error=%s",
            event.outcome, event.vocabulary_id, event.record_count, event.duration_ms,
            event.stale, event.shared, event.error,
        )
        return
    logger.info(
        "COMPLIANCE_AGGREGATE vocabulary=%s total=%d matched=%d unmatched=%d needs_review=%d "
        "critical=%s duration_ms=%.1f",
        event.vocabulary_id, event.total_ingredients, event.matched, event.unmatched,
        event.needs_review, event.critical, event.duration_ms,
    )


def emit(sink: Optional[EventSink], event: Event) -> None:
    """Deliver to sink; a failing sink never breaks a lookup."""
    try:
        (sink or log_event)(event)
    except Exception as e:
        logger.warning("EVENT_SINK failed kind=%s error=%s", event.kind, e)
