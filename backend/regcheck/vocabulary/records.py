"""
Strict contract for reference vocabulary records.
Vocabulary-specific columns live in the opaque status_fields map; the matching
core only reads names, synonyms/derivatives and the active flag.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Union


class AllergenCategory(str, Enum):
    MILK = "Milk"
    EGGS = "Eggs"
    FISH = "Fish"
    CRUSTACEAN_SHELLFISH = "Crustacean Shellfish"
    TREE_NUTS = "Tree Nuts"
    PEANUTS = "Peanuts"
    WHEAT = "Wheat"
    SOYBEANS = "Soybeans"
    SESAME = "Sesame"

    @classmethod
    def parse(cls, value: Any) -> "AllergenCategory":
        """Accept enum values, member names, or the store's category slugs (milk, egg, tree_nuts...)."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        category = _CATEGORY_ALIASES.get(key)
        if category is None:
            raise ValueError(f"unknown allergen category: {value!r}")
        return category


_CATEGORY_ALIASES = {
    "milk": AllergenCategory.MILK,
    "dairy": AllergenCategory.MILK,
    "egg": AllergenCategory.EGGS,
    "eggs": AllergenCategory.EGGS,
    "fish": AllergenCategory.FISH,
    "shellfish": AllergenCategory.CRUSTACEAN_SHELLFISH,
    "crustacean_shellfish": AllergenCategory.CRUSTACEAN_SHELLFISH,
    "crustaceanshellfish": AllergenCategory.CRUSTACEAN_SHELLFISH,
    "tree_nuts": AllergenCategory.TREE_NUTS,
    "tree_nut": AllergenCategory.TREE_NUTS,
    "treenuts": AllergenCategory.TREE_NUTS,
    "peanut": AllergenCategory.PEANUTS,
    "peanuts": AllergenCategory.PEANUTS,
    "wheat": AllergenCategory.WHEAT,
    "soy": AllergenCategory.SOYBEANS,
    "soybean": AllergenCategory.SOYBEANS,
    "soybeans": AllergenCategory.SOYBEANS,
    "sesame": AllergenCategory.SESAME,
}


def _str_set(values: Iterable[Any]) -> frozenset:
    return frozenset(str(v) for v in (values or []) if v is not None and str(v).strip())


def _status_map(d: dict) -> dict[str, str]:
    return {str(k): str(v) for k, v in (d or {}).items() if v is not None}


@dataclass(frozen=True)
class IngredientRecord:
    """One canonical GRAS / NDI / ODI entry."""
    canonical_name: str
    synonyms: frozenset = field(default_factory=frozenset)
    status_fields: dict = field(default_factory=dict, compare=False, hash=False)
    active: bool = True

    def index_terms(self) -> list[tuple[str, bool]]:
        """(term, is_canonical) pairs folded into the snapshot index."""
        return [(self.canonical_name, True)] + [(s, False) for s in sorted(self.synonyms)]

    @property
    def fuzzy_terms(self) -> tuple:
        return (self.canonical_name,)

    def to_dict(self) -> dict:
        return {
            "canonical_name": self.canonical_name,
            "synonyms": sorted(self.synonyms),
            "status_fields": dict(self.status_fields),
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "IngredientRecord":
        name = str(d.get("canonical_name") or "").strip()
        if not name:
            raise ValueError("ingredient record without canonical_name")
        return cls(
            canonical_name=name,
            synonyms=_str_set(d.get("synonyms")),
            status_fields=_status_map(d.get("status_fields")),
            active=bool(d.get("active", True)),
        )


@dataclass(frozen=True)
class AllergenRecord:
    """One of the nine major allergen categories with its derivative label strings."""
    category: AllergenCategory
    derivatives: frozenset = field(default_factory=frozenset)
    display_name: str = ""
    status_fields: dict = field(default_factory=dict, compare=False, hash=False)
    active: bool = True

    @property
    def canonical_name(self) -> str:
        return self.display_name or self.category.value

    def index_terms(self) -> list[tuple[str, bool]]:
        # Derivatives are curated allergen names, so they match as exact terms.
        return [(self.canonical_name, True)] + [(d, True) for d in sorted(self.derivatives)]

    @property
    def fuzzy_terms(self) -> tuple:
        return tuple(sorted(self.derivatives)) + (self.canonical_name,)

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "display_name": self.canonical_name,
            "derivatives": sorted(self.derivatives),
            "status_fields": dict(self.status_fields),
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AllergenRecord":
        category = AllergenCategory.parse(d.get("category"))
        return cls(
            category=category,
            derivatives=_str_set(d.get("derivatives")),
            display_name=str(d.get("display_name") or category.value),
            status_fields=_status_map(d.get("status_fields")),
            active=bool(d.get("active", True)),
        )


Record = Union[IngredientRecord, AllergenRecord]


def record_from_dict(vocabulary_id: str, d: dict) -> Record:
    if vocabulary_id == "allergens":
        return AllergenRecord.from_dict(d)
    return IngredientRecord.from_dict(d)
