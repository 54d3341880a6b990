"""
Structured match and report types. Plain dataclasses; to_dict() for JSON.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from regcheck.vocabulary.records import AllergenCategory, Record


class MatchType(str, Enum):
    EXACT = "exact"
    SYNONYM = "synonym"
    FUZZY = "fuzzy"
    NONE = "none"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"  # part of the wire enum; the cascade itself only emits high/low
    LOW = "low"


_CONFIDENCE_BY_TYPE = {
    MatchType.EXACT: Confidence.HIGH,
    MatchType.SYNONYM: Confidence.HIGH,
    MatchType.FUZZY: Confidence.LOW,
}


def confidence_for(match_type: MatchType) -> Optional[Confidence]:
    return _CONFIDENCE_BY_TYPE.get(match_type)


def _category_order(categories) -> list[AllergenCategory]:
    order = list(AllergenCategory)
    return sorted(categories, key=order.index)


@dataclass(frozen=True)
class MatchResult:
    input: str
    match_type: MatchType = MatchType.NONE
    matched_record: Optional[Record] = None
    matched_term: Optional[str] = None
    normalized: str = ""
    vocabulary_id: str = ""

    @property
    def confidence(self) -> Optional[Confidence]:
        return confidence_for(self.match_type)

    @property
    def is_match(self) -> bool:
        return self.match_type is not MatchType.NONE

    def to_dict(self) -> dict[str, Any]:
        conf = self.confidence
        return {
            "input": self.input,
            "normalized": self.normalized,
            "vocabulary_id": self.vocabulary_id,
            "match_type": self.match_type.value,
            "confidence": conf.value if conf else None,
            "matched_term": self.matched_term,
            "matched_record": self.matched_record.to_dict() if self.matched_record else None,
        }


@dataclass
class ComplianceReport:
    vocabulary_ids: list[str]
    total_ingredients: int = 0
    matched: list[MatchResult] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    critical: bool = False

    @property
    def needs_review(self) -> list[MatchResult]:
        """Low-confidence (fuzzy) matches that must not be read as compliant without review."""
        return [m for m in self.matched if m.match_type is MatchType.FUZZY]

    def to_dict(self) -> dict[str, Any]:
        return {
            "vocabulary_ids": list(self.vocabulary_ids),
            "total_ingredients": self.total_ingredients,
            "matched": [m.to_dict() for m in self.matched],
            "unmatched": list(self.unmatched),
            "needs_review": [m.input for m in self.needs_review],
            "critical": self.critical,
        }


@dataclass(frozen=True)
class AllergenResolution:
    """One allergen concern raised by one ingredient. component is set when a sub-ingredient triggered it."""
    ingredient: str
    category: AllergenCategory
    match_type: MatchType
    matched_term: Optional[str] = None
    component: Optional[str] = None

    @property
    def confidence(self) -> Optional[Confidence]:
        return confidence_for(self.match_type)

    def to_dict(self) -> dict[str, Any]:
        conf = self.confidence
        return {
            "ingredient": self.ingredient,
            "category": self.category.value,
            "match_type": self.match_type.value,
            "confidence": conf.value if conf else None,
            "matched_term": self.matched_term,
            "component": self.component,
        }


@dataclass
class AllergenReport:
    total_ingredients: int = 0
    detected_categories: set = field(default_factory=set)
    per_ingredient: list[AllergenResolution] = field(default_factory=list)
    declared_categories: Optional[set] = None

    @property
    def declaration_required(self) -> bool:
        return bool(self.detected_categories)

    @property
    def contains_statement(self) -> Optional[str]:
        if not self.detected_categories:
            return None
        return "Contains: " + ", ".join(c.value for c in _category_order(self.detected_categories))

    @property
    def undeclared_categories(self) -> set:
        """Detected but missing from the label's declaration (empty when no declaration was given)."""
        if self.declared_categories is None:
            return set()
        return set(self.detected_categories) - set(self.declared_categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_ingredients": self.total_ingredients,
            "detected_categories": [c.value for c in _category_order(self.detected_categories)],
            "per_ingredient": [r.to_dict() for r in self.per_ingredient],
            "declaration_required": self.declaration_required,
            "contains_statement": self.contains_statement,
            "declared_categories": (
                None if self.declared_categories is None
                else [c.value for c in _category_order(self.declared_categories)]
            ),
            "undeclared_categories": [c.value for c in _category_order(self.undeclared_categories)],
        }
