"""Tests for ledger transactions: buy, sell, set level."""

import pytest

from bubba.data.upgrades import FALLBACK_CATALOG, UpgradeDef
from bubba.engine.economy import range_cost
from bubba.engine.ledger import Ledger
from bubba.engine.ranking import Strategy
from bubba.engine.results import EmptyCatalog, InsufficientFunds, TransactionKind


A = UpgradeDef(name="A", base_cost=50, benefit=0.02, max_level=5)


def _ledger(money=100, catalog=None) -> Ledger:
    ledger = Ledger(money=money)
    ledger.install_catalog(catalog or {"A": A})
    return ledger


# ── Catalog ──────────────────────────────────────────────────────


def test_install_catalog_creates_zero_levels():
    ledger = Ledger()
    assert ledger.install_catalog(FALLBACK_CATALOG) is None
    assert set(ledger.levels) == set(FALLBACK_CATALOG)
    assert all(level == 0 for level in ledger.levels.values())


def test_install_empty_catalog_is_reported_and_changes_nothing():
    ledger = _ledger()
    result = ledger.install_catalog({}, source="sheet")
    assert result == EmptyCatalog(source="sheet")
    assert "A" in ledger.catalog


def test_reinstall_keeps_levels_and_clamps_to_new_max():
    ledger = _ledger(money=10_000)
    ledger.buy("A", 4)
    smaller = UpgradeDef(name="A", base_cost=50, benefit=0.02, max_level=2)
    ledger.install_catalog({"A": smaller, "B": UpgradeDef(name="B", base_cost=10, benefit=1)})
    assert ledger.levels["A"] == 2
    assert ledger.levels["B"] == 0


# ── Buy ──────────────────────────────────────────────────────────


def test_buy_scenario_then_insufficient_funds():
    ledger = _ledger(money=100)

    first = ledger.buy("A", 1)
    assert first.ok
    assert first.amount == 50
    assert ledger.levels["A"] == 1
    assert ledger.money == 50

    second = ledger.buy("A", 1)
    assert not second.ok
    assert second.failure == InsufficientFunds(required=57, available=50)
    assert second.new_level == 1
    assert ledger.levels["A"] == 1
    assert ledger.money == 50


def test_buy_clamps_to_max_level():
    ledger = _ledger(money=10_000)
    txn = ledger.buy("A", 50)
    assert txn.ok
    assert ledger.levels["A"] == 5
    assert txn.amount == range_cost(A, 0, 5)
    assert ledger.money == 10_000 - range_cost(A, 0, 5)


def test_buy_at_max_level_is_noop():
    ledger = _ledger(money=10_000)
    ledger.buy("A", 5)
    money = ledger.money
    txn = ledger.buy("A", 1)
    assert txn.kind == TransactionKind.NOOP
    assert txn.ok
    assert ledger.levels["A"] == 5
    assert ledger.money == money


def test_buy_batch_is_all_or_nothing():
    ledger = _ledger(money=150)
    # 50 + 57 + 66 = 173 > 150
    txn = ledger.buy("A", 3)
    assert not txn.ok
    assert txn.failure.required == 173
    assert ledger.levels["A"] == 0
    assert ledger.money == 150


def test_buy_exact_money_succeeds():
    ledger = _ledger(money=50)
    assert ledger.buy("A").ok
    assert ledger.money == 0


def test_buy_one_at_a_time_matches_batch():
    udef = FALLBACK_CATALOG["Bubble Breakthrough"]
    singles = _ledger(money=1_000_000, catalog={udef.name: udef})
    batch = _ledger(money=1_000_000, catalog={udef.name: udef})

    for _ in range(25):
        assert singles.buy(udef.name, 1).ok
    assert batch.buy(udef.name, 25).ok

    assert singles.levels == batch.levels
    assert singles.money == batch.money
    assert singles.total_spent(udef.name) == batch.total_spent(udef.name) == range_cost(udef, 0, 25)


def test_buy_never_makes_money_negative():
    ledger = _ledger(money=120, catalog=dict(FALLBACK_CATALOG))
    for name in FALLBACK_CATALOG:
        for _ in range(5):
            ledger.buy(name, 1)
            assert ledger.money >= 0


def test_buy_unknown_upgrade_raises():
    ledger = _ledger()
    with pytest.raises(KeyError):
        ledger.buy("nope")


def test_buy_negative_count_raises():
    ledger = _ledger()
    with pytest.raises(ValueError):
        ledger.buy("A", -1)


def test_buy_max():
    ledger = _ledger(money=10_000)
    ledger.buy("A", 2)
    txn = ledger.buy_max("A")
    assert txn.ok
    assert txn.old_level == 2
    assert ledger.levels["A"] == 5


# ── Sell ─────────────────────────────────────────────────────────


def test_sell_refunds_80_percent_per_level():
    ledger = _ledger(money=1_000)
    ledger.buy("A", 3)
    money = ledger.money
    txn = ledger.sell("A", 2)
    assert txn.kind == TransactionKind.SELL
    # floor(66 * 0.8) + floor(57 * 0.8)
    assert txn.amount == 52 + 45
    assert ledger.levels["A"] == 1
    assert ledger.money == money + 97


def test_sell_clamps_to_current_level():
    ledger = _ledger(money=1_000)
    ledger.buy("A", 2)
    ledger.sell("A", 10)
    assert ledger.levels["A"] == 0


def test_sell_at_zero_is_noop():
    ledger = _ledger(money=100)
    txn = ledger.sell("A", 1)
    assert txn.ok
    assert txn.kind == TransactionKind.NOOP
    assert ledger.money == 100


def test_buy_then_sell_never_profits():
    for n in range(0, 6):
        ledger = _ledger(money=10_000)
        ledger.buy("A", n)
        ledger.sell("A", n)
        assert ledger.levels["A"] == 0
        if n == 0:
            assert ledger.money == 10_000
        else:
            assert ledger.money < 10_000


# ── Set level ────────────────────────────────────────────────────


def test_set_level_up_buys():
    ledger = _ledger(money=1_000)
    txn = ledger.set_level("A", 3)
    assert txn.kind == TransactionKind.BUY
    assert ledger.levels["A"] == 3
    assert ledger.money == 1_000 - 173


def test_set_level_down_sells():
    ledger = _ledger(money=1_000)
    ledger.set_level("A", 3)
    txn = ledger.set_level("A", 1)
    assert txn.kind == TransactionKind.SELL
    assert ledger.levels["A"] == 1


def test_set_level_clamps_target():
    ledger = _ledger(money=10_000)
    ledger.set_level("A", 99)
    assert ledger.levels["A"] == 5
    ledger.set_level("A", -4)
    assert ledger.levels["A"] == 0


def test_set_level_rejected_reports_current_level():
    ledger = _ledger(money=100)
    txn = ledger.set_level("A", 3)
    assert not txn.ok
    assert txn.new_level == 0
    assert txn.old_level == 0
    assert ledger.levels["A"] == 0
    assert ledger.money == 100


def test_set_level_is_idempotent():
    ledger = _ledger(money=1_000)
    ledger.buy("A", 2)
    before = (dict(ledger.levels), ledger.money)
    txn = ledger.set_level("A", ledger.levels["A"])
    assert txn.kind == TransactionKind.NOOP
    assert (dict(ledger.levels), ledger.money) == before


# ── Recommendation actions ──────────────────────────────────────


def test_buy_recommendation_buys_one_level():
    ledger = _ledger(money=1_000)
    txn = ledger.buy_recommendation()
    assert txn is not None and txn.ok
    assert ledger.levels["A"] == 1


def test_buy_recommendation_with_nothing_left():
    ledger = _ledger(money=10_000)
    ledger.buy_max("A")
    assert ledger.buy_recommendation() is None


def test_ignore_recommendation():
    ledger = _ledger(money=1_000)
    assert ledger.ignore_recommendation() == "A"
    assert ledger.recommend() is None
    ledger.clear_ignored()
    assert ledger.recommend() == "A"


# ── External assignment ─────────────────────────────────────────


def test_set_money_clamps_negative():
    ledger = _ledger()
    ledger.set_money(-5)
    assert ledger.money == 0


def test_reset_levels_keeps_money():
    ledger = _ledger(money=1_000)
    ledger.buy("A", 2)
    money = ledger.money
    ledger.reset_levels()
    assert ledger.levels["A"] == 0
    assert ledger.money == money


def test_total_output_tracks_levels():
    ledger = _ledger(money=1_000)
    ledger.buy("A", 3)
    assert ledger.total_output() == pytest.approx(0.06)
    ledger.sell("A", 1)
    assert ledger.total_output() == pytest.approx(0.04)


def test_snapshot_values():
    ledger = _ledger(money=1_000)
    ledger.buy("A", 1)
    ledger.set_strategy(Strategy.CHEAPEST_FIRST)
    assert ledger.snapshot() == {"levels": {"A": 1}, "money": 950, "strategy": "cost"}


def test_ledgers_are_independent():
    one = _ledger(money=1_000)
    two = _ledger(money=1_000)
    one.buy("A", 2)
    one.ignore("A")
    assert two.levels["A"] == 0
    assert two.ignored == set()
