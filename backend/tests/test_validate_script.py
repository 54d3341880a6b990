"""
Tests for scripts/validate_reference_data.py (exit codes and per-vocabulary report).
Run from backend: python -m pytest tests/test_validate_script.py -v
"""
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

from regcheck.config import _REPO_ROOT
from regcheck.vocabulary.store import JsonReferenceStore


def test_seed_data_is_valid(capsys):
    from scripts.validate_reference_data import main
    assert main([], store=JsonReferenceStore(_REPO_ROOT / "data")) == 0
    out = capsys.readouterr().out
    assert out.count(" OK - ") == 4
    assert "All vocabularies valid." in out


def test_duplicate_canonical_fails(capsys):
    from scripts.validate_reference_data import main
    with tempfile.TemporaryDirectory() as tmp:
        (Path(tmp) / "gras.json").write_text(json.dumps({"records": [
            {"ingredient_name": "Salt"}, {"ingredient_name": "SALT"},
        ]}), encoding="utf-8")
        assert main(["gras", "ndi"], store=JsonReferenceStore(Path(tmp))) == 1
    out = capsys.readouterr().out
    assert "gras       FAIL - invalid reference data" in out
    assert "ndi        FAIL - reference store unavailable" in out
    assert "Invalid reference data: gras, ndi" in out


def test_cross_category_derivative_fails():
    from scripts.validate_reference_data import check_vocabulary
    with tempfile.TemporaryDirectory() as tmp:
        (Path(tmp) / "allergens.json").write_text(json.dumps({"records": [
            {"allergen_name": "Milk", "allergen_category": "milk", "derivatives": ["simplesse"]},
            {"allergen_name": "Eggs", "allergen_category": "egg", "derivatives": ["simplesse"]},
        ]}), encoding="utf-8")
        ok, msg = check_vocabulary(JsonReferenceStore(Path(tmp)), "allergens")
    assert not ok
    assert "simplesse" in msg


def test_empty_and_unknown_vocabulary():
    from scripts.validate_reference_data import check_vocabulary
    with tempfile.TemporaryDirectory() as tmp:
        (Path(tmp) / "odi.json").write_text(json.dumps({"records": []}), encoding="utf-8")
        store = JsonReferenceStore(Path(tmp))
        assert check_vocabulary(store, "odi") == (False, "no active records")
        ok, msg = check_vocabulary(store, "eu_novel_foods")
    assert not ok
    assert "unknown vocabulary" in msg


def test_main_exit_code_follows_checks():
    from scripts.validate_reference_data import main
    with patch("scripts.validate_reference_data.check_vocabulary", return_value=(True, "ok")):
        assert main(["gras"], store=object()) == 0
    with patch("scripts.validate_reference_data.check_vocabulary", return_value=(False, "bad")):
        assert main(["gras"], store=object()) == 1
