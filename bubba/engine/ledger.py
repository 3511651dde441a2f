"""Upgrade ledger — single source of truth for one planning session.

Owns the catalog, owned levels, available money, the active strategy and the
session ignore-list. Every transaction is a single synchronous
read-modify-write: it is either fully applied or fully rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from bubba.data.balance import BALANCE
from bubba.data.upgrades import UpgradeDef
from bubba.engine import economy
from bubba.engine.ranking import DEFAULT_STRATEGY, Strategy, recommend
from bubba.engine.results import (
    EmptyCatalog,
    InsufficientFunds,
    Transaction,
    TransactionKind,
)

logger = logging.getLogger(__name__)


@dataclass
class Ledger:
    """Complete mutable state for one planning session."""

    # ── Catalog: name → definition (replaced wholesale on reload) ──
    catalog: dict[str, UpgradeDef] = field(default_factory=dict)

    # ── Owned levels: name → level ───────────────────────
    levels: dict[str, int] = field(default_factory=dict)

    # ── Spendable money ──────────────────────────────────
    money: float = BALANCE.economy.starting_money

    # ── Recommendation settings ──────────────────────────
    strategy: Strategy = DEFAULT_STRATEGY
    ignored: set[str] = field(default_factory=set)

    # ── Catalog ──────────────────────────────────────────

    def install_catalog(self, catalog: Mapping[str, UpgradeDef], source: str = "catalog") -> EmptyCatalog | None:
        """Replace the catalog. Returns EmptyCatalog (and changes nothing) if it has no entries."""
        if not catalog:
            return EmptyCatalog(source=source)
        self.catalog = dict(catalog)
        for name, udef in self.catalog.items():
            self.levels[name] = _clamp(self.levels.get(name, 0), 0, udef.max_level)
        logger.debug("Installed %d upgrades from %s", len(self.catalog), source)
        return None

    # ── Queries ──────────────────────────────────────────

    def level(self, name: str) -> int:
        self._require(name)
        return self.levels.get(name, 0)

    def is_maxed(self, name: str) -> bool:
        return self.level(name) >= self.catalog[name].max_level

    def next_cost(self, name: str) -> int:
        """Cost of the next level. Meaningless (but defined) once maxed."""
        return economy.level_cost(self.catalog[name], self.level(name) + 1)

    def can_afford(self, name: str) -> bool:
        return not self.is_maxed(name) and self.next_cost(name) <= self.money

    def total_spent(self, name: str) -> int:
        return economy.total_spent(self.catalog[name], self.level(name))

    def total_output(self) -> float:
        return economy.total_output(self.catalog, self.levels)

    def projected_output(self, name: str) -> float:
        self._require(name)
        return economy.projected_output(self.catalog, self.levels, name)

    def recommend(self, affordable_only: bool = False) -> str | None:
        """Best next purchase under the active strategy (advisory only)."""
        return recommend(
            self.catalog,
            self.levels,
            self.money,
            self.strategy,
            self.ignored,
            affordable_only,
        )

    # ── Transactions ─────────────────────────────────────

    def buy(self, name: str, count: int = 1) -> Transaction:
        """Buy up to ``count`` levels; clamps to the levels remaining.

        Rejected with InsufficientFunds (no state change) if the whole batch
        costs more than the money on hand.
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        udef = self.catalog[name]
        current = self.level(name)
        count = min(count, udef.max_level - current)
        if count <= 0:
            return self._noop(name, current)

        target = current + count
        cost = economy.range_cost(udef, current, target)
        if cost > self.money:
            logger.debug("Rejected %s %d→%d: need %d, have %s", name, current, target, cost, self.money)
            return Transaction(
                name=name,
                kind=TransactionKind.BUY,
                old_level=current,
                new_level=current,
                amount=cost,
                money=self.money,
                failure=InsufficientFunds(required=cost, available=self.money),
            )

        self.levels[name] = target
        self.money -= cost
        logger.debug("Bought %s %d→%d for %d", name, current, target, cost)
        return Transaction(
            name=name,
            kind=TransactionKind.BUY,
            old_level=current,
            new_level=target,
            amount=cost,
            money=self.money,
        )

    def buy_max(self, name: str) -> Transaction:
        """Buy every remaining level in one go (all or nothing)."""
        udef = self.catalog[name]
        return self.buy(name, udef.max_level - self.level(name))

    def sell(self, name: str, count: int = 1) -> Transaction:
        """Sell up to ``count`` levels for an 80% refund, floored per level. Always succeeds."""
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        udef = self.catalog[name]
        current = self.level(name)
        count = min(count, current)
        if count <= 0:
            return self._noop(name, current)

        target = current - count
        refund = economy.range_refund(udef, current, target)
        self.levels[name] = target
        self.money += refund
        logger.debug("Sold %s %d→%d for %d", name, current, target, refund)
        return Transaction(
            name=name,
            kind=TransactionKind.SELL,
            old_level=current,
            new_level=target,
            amount=refund,
            money=self.money,
        )

    def set_level(self, name: str, target: int) -> Transaction:
        """Move an upgrade to ``target`` (clamped to [0, max_level]) by buying or selling.

        On rejection the returned transaction reports the unchanged level so
        the caller can put its input back.
        """
        udef = self.catalog[name]
        target = _clamp(int(target), 0, udef.max_level)
        current = self.level(name)
        if target > current:
            return self.buy(name, target - current)
        if target < current:
            return self.sell(name, current - target)
        return self._noop(name, current)

    def buy_recommendation(self, affordable_only: bool = False) -> Transaction | None:
        """Buy one level of the current recommendation, if there is one."""
        name = self.recommend(affordable_only)
        if name is None:
            return None
        return self.buy(name, 1)

    # ── External assignment ──────────────────────────────

    def set_money(self, amount: float) -> None:
        """Assign money from outside (input box, snapshot, import); negatives clamp to 0."""
        self.money = max(0, amount)

    def set_strategy(self, strategy: Strategy) -> None:
        self.strategy = strategy

    def reset_levels(self) -> None:
        """Zero every level. Money is left alone (no refund)."""
        for name in self.levels:
            self.levels[name] = 0

    # ── Ignore list ──────────────────────────────────────

    def ignore(self, name: str) -> None:
        """Exclude an upgrade from recommendations for the rest of the session."""
        self._require(name)
        self.ignored.add(name)

    def ignore_recommendation(self, affordable_only: bool = False) -> str | None:
        """Ignore whatever is currently recommended. Returns the ignored name."""
        name = self.recommend(affordable_only)
        if name is not None:
            self.ignored.add(name)
        return name

    def clear_ignored(self) -> None:
        self.ignored.clear()

    # ── Snapshot ─────────────────────────────────────────

    def snapshot(self) -> dict:
        """Flat values for the persistence store."""
        return {
            "levels": dict(self.levels),
            "money": self.money,
            "strategy": self.strategy.value,
        }

    def restore_levels(self, levels: Mapping[str, int]) -> list[str]:
        """Apply saved levels to known upgrades, clamped. Returns the names applied."""
        applied = []
        for name, level in levels.items():
            udef = self.catalog.get(name)
            if udef is None:
                continue
            self.levels[name] = _clamp(int(level), 0, udef.max_level)
            applied.append(name)
        return applied

    # ── Helpers ──────────────────────────────────────────

    def _require(self, name: str) -> None:
        if name not in self.catalog:
            raise KeyError(f"unknown upgrade: {name!r}")

    def _noop(self, name: str, level: int) -> Transaction:
        return Transaction(
            name=name,
            kind=TransactionKind.NOOP,
            old_level=level,
            new_level=level,
            amount=0,
            money=self.money,
        )


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))
