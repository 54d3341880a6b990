"""
Unit tests for allergen resolution against the seeded major-allergen vocabulary.
Run from backend: python -m pytest tests/test_allergen_resolver.py -v
"""
import pytest

from regcheck.config import _REPO_ROOT
from regcheck.matching import AllergenResolver, parse_categories
from regcheck.models import Confidence, MatchType
from regcheck.vocabulary import AllergenCategory, JsonReferenceStore, VocabularySnapshot, record_from_dict


@pytest.fixture(scope="module")
def snapshot():
    rows = JsonReferenceStore(_REPO_ROOT / "data").list_active_records("allergens")
    return VocabularySnapshot("allergens", [record_from_dict("allergens", r) for r in rows], ttl=3600)


@pytest.fixture
def resolver():
    return AllergenResolver()


def test_seed_vocabulary_has_nine_categories(snapshot):
    assert len(snapshot) == 9
    assert {r.category for r in snapshot.active_records} == set(AllergenCategory)


def test_derivative_resolves_to_category(snapshot, resolver):
    res = resolver.resolve_ingredient("Whey Protein", snapshot)
    assert len(res) == 1
    assert res[0].category is AllergenCategory.MILK
    assert res[0].match_type is MatchType.EXACT
    assert res[0].confidence is Confidence.HIGH
    assert res[0].component is None


def test_category_name_and_label_noise(snapshot, resolver):
    assert resolver.resolve_ingredient("MILK", snapshot)[0].category is AllergenCategory.MILK
    assert resolver.resolve_ingredient("Peanut Oil*", snapshot)[0].category is AllergenCategory.PEANUTS
    assert resolver.resolve_ingredient("Sesame Seeds 2%", snapshot)[0].category is AllergenCategory.SESAME


def test_compound_yields_one_resolution_per_category(snapshot, resolver):
    res = resolver.resolve_ingredient("Chocolate (Sugar, Milk Powder, Soy Lecithin)", snapshot)
    assert [r.category for r in res] == [AllergenCategory.MILK, AllergenCategory.SOYBEANS]
    assert [r.component for r in res] == ["milk powder", "soy lecithin"]
    assert all(r.ingredient == "Chocolate (Sugar, Milk Powder, Soy Lecithin)" for r in res)


def test_compound_same_category_deduplicated(snapshot, resolver):
    res = resolver.resolve_ingredient("Whey Protein Concentrate (Milk)", snapshot)
    assert len(res) == 1
    assert res[0].category is AllergenCategory.MILK
    assert res[0].component == "whey protein concentrate"


def test_fuzzy_derivative_inside_ingredient(snapshot, resolver):
    res = resolver.resolve_ingredient("Enriched Wheat Flour (Niacin, Iron)", snapshot)
    assert len(res) == 1
    assert res[0].category is AllergenCategory.WHEAT
    assert res[0].match_type is MatchType.FUZZY
    assert res[0].confidence is Confidence.LOW
    assert res[0].matched_term == "wheat flour"
    assert res[0].component == "enriched wheat flour"


def test_ingredient_inside_derivative_is_not_a_match(snapshot, resolver):
    """'salt' is part of 'sesame salt' but says nothing about sesame."""
    assert resolver.resolve_ingredient("Salt", snapshot) == []
    assert resolver.resolve_ingredient("Water", snapshot) == []
    assert resolver.resolve_ingredient("Sugar", snapshot) == []


def test_false_positives(snapshot, resolver):
    assert resolver.resolve_ingredient("Royal Jelly", snapshot) == []
    assert resolver.resolve_ingredient("royal jelly*", snapshot) == []
    assert resolver.resolve_ingredient("Cocoa Butter", snapshot)[0].category is AllergenCategory.MILK
    custom = AllergenResolver(false_positives=["Cocoa Butter"])
    assert custom.resolve_ingredient("Cocoa Butter", snapshot) == []


def test_invalid_inputs_resolve_to_nothing(snapshot, resolver):
    for bad in (None, "", "   ", 42):
        assert resolver.resolve_ingredient(bad, snapshot) == []


def test_report_with_declaration(snapshot, resolver):
    report = resolver.resolve_allergens(
        ["Whey", "Wheat Flour", "Soy Lecithin", "Water"], snapshot, declared=["milk", "Wheat"],
    )
    assert report.total_ingredients == 4
    assert report.detected_categories == {
        AllergenCategory.MILK, AllergenCategory.WHEAT, AllergenCategory.SOYBEANS,
    }
    assert report.declaration_required
    assert report.contains_statement == "Contains: Milk, Wheat, Soybeans"
    assert report.undeclared_categories == {AllergenCategory.SOYBEANS}
    d = report.to_dict()
    assert d["detected_categories"] == ["Milk", "Wheat", "Soybeans"]
    assert d["declared_categories"] == ["Milk", "Wheat"]
    assert d["undeclared_categories"] == ["Soybeans"]
    assert len(d["per_ingredient"]) == 3


def test_report_without_allergens(snapshot, resolver):
    report = resolver.resolve_allergens(["Water", "Salt", None], snapshot)
    assert report.total_ingredients == 3
    assert report.detected_categories == set()
    assert not report.declaration_required
    assert report.contains_statement is None
    assert report.undeclared_categories == set()
    assert report.to_dict()["declared_categories"] is None


def test_parse_categories_skips_unknown():
    assert parse_categories(None) is None
    assert parse_categories(["milk", "gluten", "Tree Nuts"]) == {
        AllergenCategory.MILK, AllergenCategory.TREE_NUTS,
    }
