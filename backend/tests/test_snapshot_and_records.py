"""
Unit tests for vocabulary records and the immutable snapshot index.
Run from backend: python -m pytest tests/test_snapshot_and_records.py -v
"""
import logging

import pytest

from regcheck.errors import InvalidReferenceData
from regcheck.vocabulary.records import (
    AllergenCategory,
    AllergenRecord,
    IngredientRecord,
    record_from_dict,
)
from regcheck.vocabulary.snapshot import VocabularySnapshot


def _ing(name, *synonyms, active=True):
    return IngredientRecord(canonical_name=name, synonyms=frozenset(synonyms), active=active)


def test_lookup_canonical_and_synonym():
    snap = VocabularySnapshot("gras", [_ing("Salt", "sodium chloride", "NaCl")], ttl=60)
    entry = snap.lookup("salt")
    assert entry is not None and entry.is_canonical
    entry = snap.lookup("nacl")
    assert entry.record.canonical_name == "Salt"
    assert not entry.is_canonical
    assert entry.term == "NaCl"
    assert snap.lookup("pepper") is None


def test_canonical_overrides_synonym_in_either_order():
    """A name that is one record's canonical and another's synonym resolves to the canonical owner."""
    ascorbic = _ing("Ascorbic Acid", "Vitamin C")
    vitamin_c = _ing("Vitamin C", "L-ascorbic acid")
    for records in ([ascorbic, vitamin_c], [vitamin_c, ascorbic]):
        snap = VocabularySnapshot("odi", records, ttl=60)
        assert snap.lookup("vitamin c").record is vitamin_c
        assert snap.lookup("vitamin c").is_canonical
        assert snap.lookup("ascorbic acid").record is ascorbic


def test_duplicate_canonical_name_rejected():
    with pytest.raises(InvalidReferenceData) as exc:
        VocabularySnapshot("gras", [_ing("Salt"), _ing("  SALT ")], ttl=60)
    assert exc.value.vocabulary_id == "gras"
    assert exc.value.problems and "'salt'" in exc.value.problems[0]


def test_derivative_under_two_allergen_categories_rejected():
    milk = AllergenRecord(AllergenCategory.MILK, frozenset({"whey", "simplesse"}))
    eggs = AllergenRecord(AllergenCategory.EGGS, frozenset({"egg white", "Simplesse"}))
    with pytest.raises(InvalidReferenceData):
        VocabularySnapshot("allergens", [milk, eggs], ttl=60)


def test_synonym_conflict_keeps_first_and_warns(caplog):
    first = _ing("Vitamin C", "ascorbate")
    second = _ing("Sodium Ascorbate", "Ascorbate")
    with caplog.at_level(logging.WARNING):
        snap = VocabularySnapshot("gras", [first, second], ttl=60)
    assert snap.lookup("ascorbate").record is first
    assert "synonym_conflict" in caplog.text


def test_own_synonym_equal_to_canonical_is_not_a_conflict():
    snap = VocabularySnapshot("gras", [_ing("Gelatin", "gelatin", "gelatine")], ttl=60)
    assert snap.lookup("gelatin").is_canonical


def test_inactive_records_not_indexed():
    snap = VocabularySnapshot("gras", [_ing("Salt"), _ing("Brominated Vegetable Oil", "BVO", active=False)], ttl=60)
    assert len(snap) == 1
    assert len(snap.records) == 2
    assert snap.lookup("bvo") is None
    assert snap.lookup("brominated vegetable oil") is None
    assert all(t.record.active for t in snap.fuzzy_terms)


def test_allergen_derivatives_and_display_name_are_exact_terms():
    milk = AllergenRecord(AllergenCategory.MILK, frozenset({"whey", "casein"}), display_name="Milk")
    snap = VocabularySnapshot("allergens", [milk], ttl=60)
    assert snap.lookup("whey").is_canonical
    assert snap.lookup("milk").record is milk
    keys = [t.key for t in snap.fuzzy_terms]
    assert keys == ["casein", "whey", "milk"]


def test_fuzzy_terms_are_prenormalized_in_store_order():
    snap = VocabularySnapshot("gras", [_ing("Calcium Propionate"), _ing("Sodium Propionate")], ttl=60)
    terms = snap.fuzzy_terms
    assert [t.key for t in terms] == ["calcium propionate", "sodium propionate"]
    assert terms[0].words == frozenset({"calcium", "propionate"})


def test_expiry_uses_loaded_at():
    snap = VocabularySnapshot("gras", [_ing("Salt")], ttl=100, loaded_at=1000.0)
    assert snap.age(now=1050.0) == 50.0
    assert not snap.is_expired(now=1099.0)
    assert snap.is_expired(now=1100.0)


def test_custom_normalizer_used_for_index_and_queries():
    snap = VocabularySnapshot("gras", [_ing("Salt")], ttl=60, normalizer=lambda s: str(s).strip().upper())
    assert snap.lookup("SALT") is not None
    assert snap.normalize(" salt ") == "SALT"


def test_allergen_category_parse():
    assert AllergenCategory.parse("tree_nuts") is AllergenCategory.TREE_NUTS
    assert AllergenCategory.parse("Tree Nuts") is AllergenCategory.TREE_NUTS
    assert AllergenCategory.parse("soy") is AllergenCategory.SOYBEANS
    assert AllergenCategory.parse("shellfish") is AllergenCategory.CRUSTACEAN_SHELLFISH
    assert AllergenCategory.parse(AllergenCategory.MILK) is AllergenCategory.MILK
    with pytest.raises(ValueError):
        AllergenCategory.parse("mollusk")


def test_record_from_dict():
    rec = record_from_dict("gras", {
        "canonical_name": "Salt",
        "synonyms": ["NaCl", None, " "],
        "status_fields": {"gras_status": "affirmed", "cas_number": None},
    })
    assert isinstance(rec, IngredientRecord)
    assert rec.synonyms == frozenset({"NaCl"})
    assert rec.status_fields == {"gras_status": "affirmed"}
    assert rec.active

    allergen = record_from_dict("allergens", {"category": "egg", "derivatives": ["albumin"]})
    assert isinstance(allergen, AllergenRecord)
    assert allergen.category is AllergenCategory.EGGS
    assert allergen.canonical_name == "Eggs"

    with pytest.raises(ValueError):
        record_from_dict("ndi", {"canonical_name": ""})
    with pytest.raises(ValueError):
        record_from_dict("allergens", {"category": "mollusk"})


def test_record_to_dict_is_json_friendly():
    d = _ing("Salt", "NaCl", "table salt").to_dict()
    assert d["synonyms"] == ["NaCl", "table salt"]
    assert IngredientRecord.from_dict(d) == _ing("Salt", "NaCl", "table salt")
