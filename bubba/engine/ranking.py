"""Recommendation ranking — strategies, best next purchase, and the upgrade table view."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from bubba.data.upgrades import Category, UpgradeDef
from bubba.engine.economy import level_cost, total_spent

if TYPE_CHECKING:
    from bubba.engine.ledger import Ledger


class Strategy(Enum):
    """Ranking formula for the recommended next purchase.

    Values are the tags written to the persistence store.
    """

    VALUE_PER_COST = "dpsPerCost"        # benefit / next cost
    RAW_BENEFIT = "dps"                  # benefit
    TOTAL_FUTURE_OUTPUT = "totalDamage"  # benefit * (level + 1)
    CHEAPEST_FIRST = "cost"              # 1 / next cost

    @classmethod
    def parse(cls, tag: str | None) -> Strategy:
        """Look up a strategy by tag, falling back to the default."""
        try:
            return cls(tag)
        except ValueError:
            return DEFAULT_STRATEGY

    @property
    def label(self) -> str:
        return _LABELS[self]

    def next(self) -> Strategy:
        """The following strategy in declaration order (wraps around)."""
        members = list(Strategy)
        return members[(members.index(self) + 1) % len(members)]


DEFAULT_STRATEGY = Strategy.VALUE_PER_COST

_LABELS = {
    Strategy.VALUE_PER_COST: "Best DPS per cost",
    Strategy.RAW_BENEFIT: "Highest DPS gain",
    Strategy.TOTAL_FUTURE_OUTPUT: "Highest total damage",
    Strategy.CHEAPEST_FIRST: "Cheapest first",
}


def strategy_value(strategy: Strategy, udef: UpgradeDef, level: int) -> float:
    """Score an upgrade's next level (level + 1) under a strategy."""
    next_cost = level_cost(udef, level + 1)

    if strategy == Strategy.RAW_BENEFIT:
        return udef.benefit
    if strategy == Strategy.TOTAL_FUTURE_OUTPUT:
        return udef.benefit * (level + 1)
    if strategy == Strategy.CHEAPEST_FIRST:
        return 1 / next_cost if next_cost > 0 else math.inf
    # VALUE_PER_COST
    return udef.benefit / next_cost if next_cost > 0 else math.inf


def _candidates(
    catalog: Mapping[str, UpgradeDef],
    levels: Mapping[str, int],
    money: float,
    ignored: set[str] | frozenset[str],
    affordable_only: bool,
):
    for name, udef in catalog.items():
        level = levels.get(name, 0)
        if level >= udef.max_level:
            continue
        if name in ignored:
            continue
        if affordable_only and level_cost(udef, level + 1) > money:
            continue
        yield name, udef, level


def recommend(
    catalog: Mapping[str, UpgradeDef],
    levels: Mapping[str, int],
    money: float,
    strategy: Strategy,
    ignored: set[str] | frozenset[str] = frozenset(),
    affordable_only: bool = False,
) -> str | None:
    """Pick the best next purchase, or None if nothing survives filtering.

    Ties go to the upgrade seen first in catalog order. Never mutates anything.
    """
    best_name: str | None = None
    best_value = -math.inf
    for name, udef, level in _candidates(catalog, levels, money, ignored, affordable_only):
        value = strategy_value(strategy, udef, level)
        if value > best_value:
            best_value = value
            best_name = name
    return best_name


def ranked(
    catalog: Mapping[str, UpgradeDef],
    levels: Mapping[str, int],
    money: float,
    strategy: Strategy,
    ignored: set[str] | frozenset[str] = frozenset(),
    affordable_only: bool = False,
) -> list[tuple[str, float]]:
    """Every candidate with its score, best first (stable on ties)."""
    scored = [
        (name, strategy_value(strategy, udef, level))
        for name, udef, level in _candidates(catalog, levels, money, ignored, affordable_only)
    ]
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


# ── Table view ───────────────────────────────────────────────────


@dataclass(frozen=True)
class RowFilter:
    """Which upgrades the table shows."""

    search: str = ""
    category: Category | None = None
    hide_maxed: bool = False
    affordable_only: bool = False


@dataclass(frozen=True)
class UpgradeRow:
    """One row of the upgrade table."""

    name: str
    description: str
    category: Category
    level: int
    max_level: int
    base_cost: float
    next_cost: int
    benefit: float
    value_per_cost: float
    current_output: float
    total_spent: int
    maxed: bool
    affordable: bool
    recommended: bool


@dataclass(frozen=True)
class Summary:
    total_levels: int
    total_spent: int
    total_output: float


def _matches(row_filter: RowFilter, udef: UpgradeDef, level: int, next_cost: int, money: float) -> bool:
    term = row_filter.search.strip().lower()
    if term and term not in udef.name.lower() and term not in udef.description.lower():
        return False
    if row_filter.category is not None and udef.category != row_filter.category:
        return False
    if row_filter.hide_maxed and level >= udef.max_level:
        return False
    if row_filter.affordable_only and (level >= udef.max_level or next_cost > money):
        return False
    return True


def upgrade_rows(
    ledger: Ledger,
    row_filter: RowFilter = RowFilter(),
    recommendation: str | None = None,
) -> list[UpgradeRow]:
    """Build the visible table rows: recommended first, then by name."""
    rows: list[UpgradeRow] = []
    for name, udef in ledger.catalog.items():
        level = ledger.level(name)
        next_cost = level_cost(udef, level + 1)
        if not _matches(row_filter, udef, level, next_cost, ledger.money):
            continue
        rows.append(UpgradeRow(
            name=name,
            description=udef.description,
            category=udef.category,
            level=level,
            max_level=udef.max_level,
            base_cost=udef.base_cost,
            next_cost=next_cost,
            benefit=udef.benefit,
            value_per_cost=udef.benefit / next_cost if next_cost > 0 else math.inf,
            current_output=udef.benefit * level,
            total_spent=total_spent(udef, level),
            maxed=level >= udef.max_level,
            affordable=level < udef.max_level and next_cost <= ledger.money,
            recommended=name == recommendation,
        ))

    rows.sort(key=lambda r: (not r.recommended, r.name.lower()))
    return rows


def summarize(rows: list[UpgradeRow]) -> Summary:
    """Totals over the visible rows."""
    return Summary(
        total_levels=sum(r.level for r in rows),
        total_spent=sum(r.total_spent for r in rows),
        total_output=sum(r.current_output for r in rows),
    )
