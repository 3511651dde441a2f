"""Tests for the Flask JSON API."""

import pytest

from bubba.data.upgrades import FALLBACK_CATALOG, UpgradeDef
from bubba.engine.catalog import CatalogLoad
from bubba.engine.results import CatalogLoadFailure
from bubba.web import server


A = UpgradeDef(name="A", base_cost=50, benefit=0.02, max_level=5)
B = UpgradeDef(name="Big One", base_cost=10, benefit=1.0, max_level=10)


@pytest.fixture
def data_dir(tmp_path):
    server.configure(CatalogLoad(catalog={"A": A, "Big One": B}, source="fallback"), data_dir=tmp_path)
    server.app.config["TESTING"] = True
    return tmp_path


@pytest.fixture
def client(data_dir):
    return server.app.test_client()


def _money(client, amount):
    return client.post("/api/money", json={"money": amount})


# ── State ────────────────────────────────────────────────────────


def test_state_shape(client):
    resp = client.get("/api/state")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["money"] == 1_000_000
    assert data["strategy"] == "dpsPerCost"
    assert {s["tag"] for s in data["strategies"]} == {"dpsPerCost", "dps", "totalDamage", "cost"}
    assert {r["name"] for r in data["rows"]} == {"A", "Big One"}
    assert data["recommendation"]["name"] == "Big One"
    assert data["rows"][0]["recommended"]
    assert data["summary"]["total_levels"] == 0
    assert data["catalog_source"] == "fallback"
    assert data["catalog_notice"] is None


def test_state_filters(client):
    data = client.get("/api/state?search=big").get_json()
    assert [r["name"] for r in data["rows"]] == ["Big One"]
    data = client.get("/api/state?category=money").get_json()
    assert data["rows"] == []


def test_catalog_failure_notice(tmp_path):
    load = CatalogLoad(
        catalog=dict(FALLBACK_CATALOG), source="fallback", failure=CatalogLoadFailure(reason="timed out"),
    )
    server.configure(load, data_dir=tmp_path)
    data = server.app.test_client().get("/api/state").get_json()
    assert "timed out" in data["catalog_notice"]
    assert len(data["rows"]) == len(FALLBACK_CATALOG)


# ── Transactions ─────────────────────────────────────────────────


def test_buy_then_insufficient_funds(client):
    _money(client, 100)
    resp = client.post("/api/upgrade/A/buy", json={"count": 1})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["transaction"]["ok"]
    assert data["money"] == 50

    resp = client.post("/api/upgrade/A/buy", json={"count": 1})
    assert resp.status_code == 409
    txn = resp.get_json()["transaction"]
    assert txn["error"] == "insufficient_funds"
    assert txn["required"] == 57
    assert txn["available"] == 50
    assert txn["new_level"] == 1


def test_buy_max(client):
    resp = client.post("/api/upgrade/A/buy", json={"max": True})
    rows = {r["name"]: r for r in resp.get_json()["rows"]}
    assert rows["A"]["level"] == 5
    assert rows["A"]["maxed"]


def test_buy_name_with_space(client):
    resp = client.post("/api/upgrade/Big%20One/buy", json={"count": 2})
    assert resp.status_code == 200
    assert resp.get_json()["transaction"]["new_level"] == 2


def test_unknown_upgrade_is_404(client):
    resp = client.post("/api/upgrade/Nope/buy", json={"count": 1})
    assert resp.status_code == 404
    assert "Nope" in resp.get_json()["error"]


def test_bad_count_is_400(client):
    assert client.post("/api/upgrade/A/buy", json={"count": "many"}).status_code == 400
    assert client.post("/api/upgrade/A/sell", json={"count": -1}).status_code == 400


def test_sell_refunds(client):
    _money(client, 1_000)
    client.post("/api/upgrade/A/buy", json={"count": 3})
    resp = client.post("/api/upgrade/A/sell", json={"count": 2})
    data = resp.get_json()
    assert data["transaction"]["kind"] == "sell"
    assert data["transaction"]["amount"] == 97
    assert data["money"] == 1_000 - 173 + 97


def test_set_level(client):
    _money(client, 1_000)
    resp = client.post("/api/upgrade/A/level", json={"level": 3})
    assert resp.get_json()["transaction"]["new_level"] == 3
    resp = client.post("/api/upgrade/A/level", json={"level": 99})
    assert resp.get_json()["transaction"]["new_level"] == 5


def test_money_negative_clamps(client):
    assert _money(client, -50).get_json()["money"] == 0


def test_strategy_switch(client):
    data = client.post("/api/strategy", json={"strategy": "cost"}).get_json()
    assert data["strategy"] == "cost"
    assert data["recommendation"]["name"] == "Big One"
    data = client.post("/api/strategy", json={"strategy": "bogus"}).get_json()
    assert data["strategy"] == "dpsPerCost"


def test_recommendation_buy_and_ignore(client):
    data = client.post("/api/recommendation/buy").get_json()
    assert data["transaction"]["name"] == "Big One"
    data = client.post("/api/recommendation/ignore").get_json()
    assert data["ignored_name"] == "Big One"
    assert data["ignored"] == ["Big One"]
    assert data["recommendation"]["name"] == "A"


def test_reset_keeps_money(client):
    client.post("/api/upgrade/A/buy", json={"count": 2})
    money = client.get("/api/state").get_json()["money"]
    data = client.post("/api/reset").get_json()
    assert all(r["level"] == 0 for r in data["rows"])
    assert data["money"] == money


# ── Sessions & persistence ──────────────────────────────────────


def test_sessions_are_isolated(data_dir):
    one = server.app.test_client()
    two = server.app.test_client()
    one.post("/api/upgrade/A/buy", json={"count": 2})
    levels = {r["name"]: r["level"] for r in two.get("/api/state").get_json()["rows"]}
    assert levels["A"] == 0


def test_session_survives_restart(client, data_dir):
    client.post("/api/upgrade/A/buy", json={"count": 2})
    server.configure(CatalogLoad(catalog={"A": A, "Big One": B}, source="fallback"), data_dir=data_dir)
    levels = {r["name"]: r["level"] for r in client.get("/api/state").get_json()["rows"]}
    assert levels["A"] == 2


def test_clear_forgets_everything(client, data_dir):
    _money(client, 10)
    client.post("/api/upgrade/Big%20One/buy")
    data = client.post("/api/clear").get_json()
    assert data["money"] == 1_000_000
    assert all(r["level"] == 0 for r in data["rows"])
    assert list((data_dir / "sessions").glob("*.json")) == []


# ── Import / export ──────────────────────────────────────────────


def test_export_document(client):
    client.post("/api/upgrade/A/buy", json={"count": 1})
    resp = client.get("/api/export?download=1")
    doc = resp.get_json()
    assert doc["levels"] == {"A": 1, "Big One": 0}
    assert doc["version"] == "1.0.0"
    assert "timestamp" in doc
    assert "attachment" in resp.headers["Content-Disposition"]


def test_import_round_trip(client):
    resp = client.post("/api/import", json={"document": '{"money": 321, "levels": {"A": 9, "Ghost": 1}}'})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["money"] == 321
    assert data["imported"]["applied"] == {"A": 5}
    assert data["imported"]["ignored"] == ["Ghost"]


def test_import_invalid_is_400_and_changes_nothing(client):
    before = client.get("/api/state").get_json()
    resp = client.post("/api/import", data="{broken", content_type="text/plain")
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["import_error"].startswith("invalid JSON")
    assert data["money"] == before["money"]


def test_session_table_is_bounded(data_dir):
    server.configure(CatalogLoad(catalog={"A": A, "Big One": B}, source="fallback"), data_dir=data_dir,
                     max_sessions=3)
    for _ in range(10):
        server.app.test_client(use_cookies=False).get("/api/state")
    assert len(server._sessions) == 3


def test_evicted_session_reloads_from_disk(data_dir):
    server.configure(CatalogLoad(catalog={"A": A, "Big One": B}, source="fallback"), data_dir=data_dir,
                     max_sessions=2)
    keeper = server.app.test_client()
    keeper.post("/api/upgrade/A/buy", json={"count": 2})
    for _ in range(5):
        server.app.test_client().get("/api/state")
    assert len(server._sessions) == 2

    levels = {r["name"]: r["level"] for r in keeper.get("/api/state").get_json()["rows"]}
    assert levels["A"] == 2


def test_import_money_too_large_is_rejected(client):
    huge = "1" + "0" * 400
    resp = client.post("/api/import", json={"document": '{"money": ' + huge + ', "levels": {"A": 1}}'})
    assert resp.status_code == 400
    assert client.get("/api/state").status_code == 200
