"""
Allergen resolution over the major-allergen vocabulary.
Same exact -> fuzzy cascade as the Matcher, against each category's derivatives,
returning the allergen category; the fuzzy stage only looks for derivatives
named inside the ingredient. Compound ingredients such as
"chocolate (sugar, milk, soy lecithin)" yield one resolution per independent concern.
"""
from typing import Iterable, List, Optional
import logging

from regcheck.models.results import AllergenReport, AllergenResolution, MatchType
from regcheck.normalization.normalizer import normalize, split_compound
from regcheck.vocabulary.records import AllergenCategory
from regcheck.vocabulary.snapshot import VocabularySnapshot
from .matcher import Matcher

logger = logging.getLogger(__name__)

# Known non-allergens that would otherwise fuzzy-match a derivative.
DEFAULT_FALSE_POSITIVES = frozenset({"royal jelly", "royal gel", "bee jelly"})


def allergen_matcher() -> Matcher:
    """
    Fuzzy stage for allergens: a derivative (4+ chars) must appear as whole words
    inside the ingredient. The reverse direction and shared words are off, so
    "salt" never points at "sesame salt".
    """
    return Matcher(either_direction=False, shared_words=False, whole_words=True)


def parse_categories(values: Optional[Iterable]) -> Optional[set]:
    """Declared allergens from a label ('milk', 'Tree Nuts', 'soy') -> set of categories; unknown names are skipped."""
    if values is None:
        return None
    out = set()
    for v in values:
        try:
            out.add(AllergenCategory.parse(v))
        except ValueError:
            logger.warning("ALLERGEN_DECLARATION unknown category=%r (ignored)", v)
    return out


class AllergenResolver:

    def __init__(
        self,
        matcher: Optional[Matcher] = None,
        false_positives: Iterable[str] = DEFAULT_FALSE_POSITIVES,
    ):
        self._matcher = matcher or allergen_matcher()
        self._false_positives = frozenset(normalize(f) for f in false_positives)

    def _resolve_component(self, raw: str, component: str, snapshot: VocabularySnapshot,
                           is_part: bool) -> Optional[AllergenResolution]:
        if not component or component in self._false_positives:
            return None
        result = self._matcher.match(component, snapshot, raw)
        if not result.is_match:
            return None
        return AllergenResolution(
            ingredient=raw,
            category=result.matched_record.category,
            match_type=result.match_type,
            matched_term=result.matched_term,
            component=component if is_part else None,
        )

    def resolve_ingredient(self, raw: object, snapshot: VocabularySnapshot) -> List[AllergenResolution]:
        """
        Resolutions for one ingredient string: at most one per category.
        Whole-string exact match wins; otherwise a compound is split into its
        head and parenthetical sub-ingredients, each resolved on its own.
        """
        display = raw if isinstance(raw, str) else ""
        normalized = snapshot.normalize(raw)
        if not normalized or normalized in self._false_positives:
            return []

        entry = snapshot.lookup(normalized)
        if entry is not None:
            return [AllergenResolution(display, entry.record.category, MatchType.EXACT, entry.term)]

        head, parts = split_compound(normalized)
        if not parts:
            res = self._resolve_component(display, normalized, snapshot, is_part=False)
            return [res] if res else []

        resolutions: List[AllergenResolution] = []
        seen = set()
        for component in [head] + parts:
            res = self._resolve_component(display, component, snapshot, is_part=True)
            if res is None or res.category in seen:
                continue
            seen.add(res.category)
            resolutions.append(res)
        return resolutions

    def resolve_allergens(
        self,
        ingredients: List[object],
        snapshot: VocabularySnapshot,
        declared: Optional[Iterable] = None,
    ) -> AllergenReport:
        per_ingredient: List[AllergenResolution] = []
        for raw in ingredients or []:
            per_ingredient.extend(self.resolve_ingredient(raw, snapshot))
        detected = {r.category for r in per_ingredient}
        report = AllergenReport(
            total_ingredients=len(ingredients or []),
            detected_categories=detected,
            per_ingredient=per_ingredient,
            declared_categories=parse_categories(declared),
        )
        if report.undeclared_categories:
            logger.warning(
                "ALLERGEN_CHECK undeclared categories=%s",
                sorted(c.value for c in report.undeclared_categories),
            )
        logger.info(
            "ALLERGEN_CHECK total=%d resolutions=%d detected=%s",
            report.total_ingredients, len(per_ingredient), sorted(c.value for c in detected),
        )
        return report
