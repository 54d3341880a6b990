from .results import (
    AllergenReport,
    AllergenResolution,
    ComplianceReport,
    Confidence,
    MatchResult,
    MatchType,
    confidence_for,
)

__all__ = [
    "AllergenReport",
    "AllergenResolution",
    "ComplianceReport",
    "Confidence",
    "MatchResult",
    "MatchType",
    "confidence_for",
]
