"""
In-memory, time-boxed vocabulary snapshots with one slot per vocabulary.

- Readers take the slot's current snapshot reference without locking.
- Concurrent misses on one vocabulary collapse into a single in-flight refresh;
  every waiter receives that refresh's outcome.
- Stale-on-error: a failed or timed-out refresh serves the previous snapshot,
  even if expired. Only a vocabulary that never loaded raises.
- Each vocabulary fetches on its own worker, so a hung store call for one
  vocabulary never delays another.
"""
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union
import logging
import threading
import time

from regcheck.config import VOCABULARY_IDS, get_cache_ttl_seconds, get_store_timeout
from regcheck.errors import InvalidReferenceData, ReferenceStoreUnavailable, UnknownVocabulary
from regcheck.events import ERROR, HIT, MISS, STALE, CacheEvent, EventSink, emit
from regcheck.normalization.normalizer import normalize
from .records import record_from_dict
from .snapshot import VocabularySnapshot
from .store import ReferenceStore

logger = logging.getLogger(__name__)

# After a failed refresh, serve the stale snapshot this long before asking the store again.
DEFAULT_RETRY_INTERVAL = 30.0


@dataclass
class _Slot:
    vocabulary_id: str
    snapshot: Optional[VocabularySnapshot] = None
    invalidated: bool = False
    # bumped by every invalidate; a refresh that started under an older value leaves the slot invalidated
    generation: int = 0
    retry_at: Optional[float] = None
    last_error: Optional[str] = None
    inflight: Optional[Future] = None
    # store call still running after a timeout, with the generation it started under
    fetching: Optional[Tuple[Future, int]] = None
    lock: threading.Lock = field(default_factory=threading.Lock)
    executor: ThreadPoolExecutor = field(init=False)

    def __post_init__(self):
        self.executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"vocab-refresh-{self.vocabulary_id}",
        )


class VocabularyCache:
    """
    get(vocabulary_id) -> VocabularySnapshot; invalidate(vocabulary_id=None).
    ttl may be one value for all vocabularies or a mapping per vocabulary;
    unset vocabularies use REGCHECK_TTL_<ID>_HOURS / REGCHECK_CACHE_TTL_HOURS.
    """

    def __init__(
        self,
        store: ReferenceStore,
        vocabulary_ids: Iterable[str] = VOCABULARY_IDS,
        ttl: Union[None, float, Mapping[str, float]] = None,
        timeout: Optional[float] = None,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Callable[[], float] = time.time,
        event_sink: Optional[EventSink] = None,
        normalizer: Callable[[Any], str] = normalize,
    ):
        self._store = store
        self._slots: Dict[str, _Slot] = {vid: _Slot(vid) for vid in vocabulary_ids}
        if ttl is None or isinstance(ttl, Mapping):
            overrides = dict(ttl or {})
            self._ttls = {vid: overrides.get(vid, get_cache_ttl_seconds(vid)) for vid in self._slots}
        else:
            self._ttls = {vid: float(ttl) for vid in self._slots}
        self._timeout = get_store_timeout() if timeout is None else timeout
        self._retry_interval = retry_interval
        self._clock = clock
        self._sink = event_sink
        self._normalize = normalizer

    @property
    def vocabulary_ids(self) -> tuple:
        return tuple(self._slots)

    def _slot(self, vocabulary_id: str) -> _Slot:
        slot = self._slots.get(vocabulary_id)
        if slot is None:
            raise UnknownVocabulary(vocabulary_id)
        return slot

    def _servable(self, slot: _Slot, now: float) -> bool:
        snap = slot.snapshot
        if snap is None:
            return False
        if not slot.invalidated and not snap.is_expired(now):
            return True
        # a refresh just failed: keep serving the previous snapshot until retry_at
        return slot.retry_at is not None and now < slot.retry_at

    def get(self, vocabulary_id: str, timeout: Optional[float] = None) -> VocabularySnapshot:
        slot = self._slot(vocabulary_id)
        now = self._clock()
        if self._servable(slot, now):
            return self._serve(vocabulary_id, slot, now)
        return self._refresh(vocabulary_id, slot, timeout)

    def _serve(self, vocabulary_id: str, slot: _Slot, now: float) -> VocabularySnapshot:
        snap = slot.snapshot
        stale = slot.invalidated or snap.is_expired(now)
        emit(self._sink, CacheEvent(vocabulary_id, STALE if stale else HIT, len(snap), stale=stale))
        return snap

    def _refresh(self, vocabulary_id: str, slot: _Slot, timeout: Optional[float]) -> VocabularySnapshot:
        with slot.lock:
            # another caller may have swapped in a live snapshot while we waited
            servable = self._servable(slot, self._clock())
            flight = slot.inflight
            leader = not servable and flight is None
            if leader:
                flight = Future()
                slot.inflight = flight
        if servable:
            return self._serve(vocabulary_id, slot, self._clock())
        if not leader:
            return self._join(vocabulary_id, flight)
        try:
            snapshot, stale = self._load(vocabulary_id, slot, timeout)
        except BaseException as e:
            flight.set_exception(e)
            raise
        else:
            flight.set_result((snapshot, stale))
            return snapshot
        finally:
            with slot.lock:
                slot.inflight = None

    def _join(self, vocabulary_id: str, flight: Future) -> VocabularySnapshot:
        """Wait on the refresh another caller leads; the outcome is reported as this caller's get too."""
        logger.debug("VOCAB_CACHE joining in-flight refresh vocabulary=%s", vocabulary_id)
        started = time.perf_counter()
        try:
            snapshot, stale = flight.result()
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            emit(self._sink, CacheEvent(vocabulary_id, ERROR, 0, duration_ms, error=str(e), shared=True))
            raise
        duration_ms = (time.perf_counter() - started) * 1000
        emit(self._sink, CacheEvent(
            vocabulary_id, STALE if stale else MISS, len(snapshot), duration_ms, stale=stale, shared=True,
        ))
        return snapshot

    def _fetch(self, vocabulary_id: str, slot: _Slot, timeout: Optional[float]) -> Tuple[list, int]:
        """Rows from the store and the slot generation the fetch started under."""
        timeout = self._timeout if timeout is None else timeout
        try:
            if not timeout or timeout <= 0:
                generation = slot.generation
                return self._store.list_active_records(vocabulary_id), generation
            running = slot.fetching
            if running is not None and (not running[0].done() or running[0].exception() is None):
                # an earlier fetch outlived its timeout; wait on it (or take its late rows) instead of starting another
                future, generation = running
                logger.info("VOCAB_CACHE reusing earlier fetch vocabulary=%s done=%s", vocabulary_id, future.done())
            else:
                generation = slot.generation
                future = slot.executor.submit(self._store.list_active_records, vocabulary_id)
                slot.fetching = (future, generation)
            try:
                rows = future.result(timeout=timeout)
            except FuturesTimeout:
                raise ReferenceStoreUnavailable(vocabulary_id, f"timed out after {timeout:.1f}s")
            slot.fetching = None
            return rows, generation
        except ReferenceStoreUnavailable:
            raise
        except Exception as e:
            raise ReferenceStoreUnavailable(vocabulary_id, f"{type(e).__name__}: {e}") from e

    def _build(self, vocabulary_id: str, rows: list) -> VocabularySnapshot:
        records = []
        problems = []
        for i, row in enumerate(rows):
            try:
                records.append(record_from_dict(vocabulary_id, row))
            except (ValueError, TypeError) as e:
                problems.append(f"row {i}: {e}")
        if problems:
            logger.error(
                "VOCAB_INDEX invalid_rows vocabulary=%s count=%d first=%s",
                vocabulary_id, len(problems), problems[:3],
            )
            raise InvalidReferenceData(vocabulary_id, problems)
        return VocabularySnapshot(
            vocabulary_id, records, ttl=self._ttls[vocabulary_id],
            loaded_at=self._clock(), normalizer=self._normalize,
        )

    def _load(self, vocabulary_id: str, slot: _Slot, timeout: Optional[float]) -> Tuple[VocabularySnapshot, bool]:
        """(snapshot, stale): the fresh snapshot, or the previous one when the refresh failed."""
        started = time.perf_counter()
        generation = slot.generation
        try:
            rows, generation = self._fetch(vocabulary_id, slot, timeout)
            snapshot = self._build(vocabulary_id, rows)
        except (ReferenceStoreUnavailable, InvalidReferenceData) as e:
            duration_ms = (time.perf_counter() - started) * 1000
            slot.last_error = str(e)
            previous = slot.snapshot
            if previous is None:
                emit(self._sink, CacheEvent(vocabulary_id, ERROR, 0, duration_ms, error=str(e)))
                raise
            with slot.lock:
                # an invalidate issued meanwhile asks for the next get to retry, not to back off
                if slot.generation == generation:
                    slot.retry_at = self._clock() + self._retry_interval
            emit(self._sink, CacheEvent(
                vocabulary_id, STALE, len(previous), duration_ms, stale=True, error=str(e),
            ))
            return previous, True
        duration_ms = (time.perf_counter() - started) * 1000
        with slot.lock:
            # single reference swap; readers holding the old snapshot keep it
            slot.snapshot = snapshot
            slot.retry_at = None
            slot.last_error = None
            current = slot.generation == generation
            if current:
                slot.invalidated = False
        if not current:
            logger.info(
                "VOCAB_CACHE invalidated during refresh vocabulary=%s; next get fetches again", vocabulary_id,
            )
        emit(self._sink, CacheEvent(vocabulary_id, MISS, len(snapshot), duration_ms))
        return snapshot, False

    def invalidate(self, vocabulary_id: Optional[str] = None) -> list[str]:
        """Force the next get to refresh. None invalidates every vocabulary."""
        ids = list(self._slots) if vocabulary_id is None else [vocabulary_id]
        for vid in ids:
            slot = self._slot(vid)
            with slot.lock:
                slot.invalidated = True
                slot.retry_at = None
                slot.generation += 1
        logger.info("VOCAB_CACHE invalidated vocabularies=%s", ids)
        return ids
    def warm_up(self) -> Dict[str, bool]:
        """Load every vocabulary; failures are logged, not raised."""
        loaded = {}
        for vid in self._slots:
            try:
                self.get(vid)
                loaded[vid] = True
            except (ReferenceStoreUnavailable, InvalidReferenceData) as e:
                logger.warning("VOCAB_CACHE warm_up failed vocabulary=%s error=%s", vid, e)
                loaded[vid] = False
        return loaded

    def stats(self) -> Dict[str, Optional[dict]]:
        now = self._clock()
        out: Dict[str, Optional[dict]] = {}
        for vid, slot in self._slots.items():
            snap = slot.snapshot
            if snap is None:
                out[vid] = None if slot.last_error is None else {"last_error": slot.last_error}
                continue
            age = snap.age(now)
            out[vid] = {
                "count": len(snap),
                "age_seconds": round(age, 3),
                "expires_in_seconds": round(snap.ttl - age, 3),
                "is_valid": not snap.is_expired(now) and not slot.invalidated,
                "invalidated": slot.invalidated,
                "last_error": slot.last_error,
            }
        return out

    def close(self) -> None:
        for slot in self._slots.values():
            slot.executor.shutdown(wait=False)
