"""
API tests for the FastAPI surface (seeded JSON vocabularies, no network).
Run from backend: python -m pytest tests/test_app.py -v
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

import app as app_module
from regcheck import ComplianceService
from regcheck.config import VOCABULARY_IDS, _REPO_ROOT
from regcheck.vocabulary import JsonReferenceStore, VocabularyCache


def _client(monkeypatch, store):
    cache = VocabularyCache(store, vocabulary_ids=VOCABULARY_IDS, ttl=3600, timeout=0)
    monkeypatch.setattr(app_module, "service", ComplianceService(cache))
    return TestClient(app_module.app)


@pytest.fixture
def client(monkeypatch):
    with _client(monkeypatch, JsonReferenceStore(_REPO_ROOT / "data")) as c:
        yield c


def test_health_after_warm_up(client):
    r = client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["vocabularies"] == {vid: True for vid in VOCABULARY_IDS}


def test_check_gras(client):
    r = client.post("/check/gras", json={"ingredients": ["Water", "Sugar", "Unobtainium"]})
    assert r.status_code == 200
    body = r.json()
    assert body["critical"] is True
    assert body["unmatched"] == ["Unobtainium"]
    assert [m["match_type"] for m in body["matched"]] == ["exact", "exact"]
    assert body["matched"][0]["confidence"] == "high"


def test_check_ndi_odi_with_notified(client):
    payload = {"ingredients": ["Astaxanthin", "Ginseng", "Novel Ingredient X"]}
    assert client.post("/check/ndi-odi", json=payload).json()["critical"] is True
    payload["notified"] = ["Novel Ingredient X"]
    body = client.post("/check/ndi-odi", json=payload).json()
    assert body["critical"] is False
    assert body["vocabulary_ids"] == ["ndi", "odi"]


def test_check_allergens(client):
    r = client.post("/check/allergens", json={
        "ingredients": ["Whey Protein", "Enriched Wheat Flour (Niacin, Iron)", "Salt"],
        "declared": ["Milk"],
    })
    assert r.status_code == 200
    body = r.json()
    assert body["detected_categories"] == ["Milk", "Wheat"]
    assert body["contains_statement"] == "Contains: Milk, Wheat"
    assert body["undeclared_categories"] == ["Wheat"]


def test_request_validation(client):
    assert client.post("/check/gras", json={"ingredients": "Salt"}).status_code == 422
    assert client.post("/check/gras", json={}).status_code == 422


def test_invalidate_cache(client):
    r = client.post("/admin/invalidate-cache", json={"vocabulary": "gras"})
    assert r.status_code == 200
    assert r.json() == {"invalidated": ["gras"]}
    assert client.get("/admin/cache-stats").json()["gras"]["invalidated"] is True
    r = client.post("/admin/invalidate-cache", json={})
    assert sorted(r.json()["invalidated"]) == sorted(VOCABULARY_IDS)


def test_invalidate_unknown_vocabulary_404(client):
    r = client.post("/admin/invalidate-cache", json={"vocabulary": "eu_novel_foods"})
    assert r.status_code == 404


def test_cache_stats(client):
    stats = client.get("/admin/cache-stats").json()
    assert set(stats) == set(VOCABULARY_IDS)
    assert stats["allergens"]["count"] == 9
    assert stats["gras"]["is_valid"] is True


def test_store_unavailable_maps_to_503(monkeypatch):
    store = MagicMock()
    store.list_active_records.side_effect = RuntimeError("down")
    with _client(monkeypatch, store) as c:
        assert c.get("/").json()["vocabularies"] == {vid: False for vid in VOCABULARY_IDS}
        r = c.post("/check/gras", json={"ingredients": ["Salt"]})
        assert r.status_code == 503
        assert "unavailable" in r.json()["detail"]
