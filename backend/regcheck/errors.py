"""
Error taxonomy for the matching engine.
"No match found" is a normal MatchType.NONE outcome and never raised.
"""
from typing import Optional


class RegcheckError(Exception):
    """Base class for engine errors."""


class ReferenceStoreUnavailable(RegcheckError):
    """Refresh fetch failed or timed out. Surfaced only when no snapshot was ever loaded."""

    def __init__(self, vocabulary_id: str, reason: str = ""):
        self.vocabulary_id = vocabulary_id
        self.reason = reason
        super().__init__(f"reference store unavailable for {vocabulary_id}: {reason}")


class InvalidReferenceData(RegcheckError):
    """Reference data violates an index invariant; the refresh is aborted."""

    def __init__(self, vocabulary_id: str, problems: list[str]):
        self.vocabulary_id = vocabulary_id
        self.problems = list(problems)
        preview = "; ".join(self.problems[:5])
        more = f" (+{len(self.problems) - 5} more)" if len(self.problems) > 5 else ""
        super().__init__(f"invalid reference data for {vocabulary_id}: {preview}{more}")


class UnknownVocabulary(RegcheckError):
    def __init__(self, vocabulary_id: Optional[str]):
        self.vocabulary_id = vocabulary_id
        super().__init__(f"unknown vocabulary: {vocabulary_id!r}")
