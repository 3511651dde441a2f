"""Transaction outcomes and typed failures.

Engine operations report failures as values; the caller decides how to
notify the player.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class InsufficientFunds:
    """A purchase was rejected: ``required`` money needed, ``available`` on hand."""

    required: int
    available: float

    @property
    def shortfall(self) -> float:
        return self.required - self.available


@dataclass(frozen=True)
class InvalidImportDocument:
    """An import payload couldn't be parsed or had nothing usable in it."""

    reason: str


@dataclass(frozen=True)
class EmptyCatalog:
    """Catalog construction produced zero usable upgrades."""

    source: str


@dataclass(frozen=True)
class CatalogLoadFailure:
    """The catalog source failed; the built-in catalog was used instead."""

    reason: str


class TransactionKind(Enum):
    BUY = "buy"
    SELL = "sell"
    NOOP = "noop"


@dataclass(frozen=True)
class Transaction:
    """Outcome of a buy / sell / set-level call."""

    name: str
    kind: TransactionKind
    old_level: int
    # Level after the call (equals old_level when rejected)
    new_level: int
    # Money spent (buy) or refunded (sell); the would-be cost when rejected
    amount: int
    # Money after the call
    money: float
    failure: InsufficientFunds | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def levels_changed(self) -> int:
        return self.new_level - self.old_level


@dataclass(frozen=True)
class ImportReport:
    """Result of a successful import."""

    applied: dict[str, int] = field(default_factory=dict)
    ignored: list[str] = field(default_factory=list)
    money: float | None = None
