"""Balance constants — all tuning knobs in one place.

Tweak these to match the game's economy.
All level costs follow: floor(base_cost * growth_rate ^ (level - 1))
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class EconomyBalance:
    """Tuning for upgrade costs, refunds and money."""

    # Level cost scaling: cost(level) = floor(base * growth ^ (level - 1))
    cost_growth: float = 1.15

    # Selling a level refunds this fraction of its cost (floored per level)
    refund_rate: float = 0.8

    # Used when a catalog row has no usable max level
    default_max_level: int = 100

    # Money a brand-new ledger starts with
    starting_money: int = 1_000_000

    # Large number formatting thresholds
    suffixes: tuple[tuple[float, str], ...] = (
        (1e3, "K"),
        (1e6, "M"),
        (1e9, "B"),
        (1e12, "T"),
        (1e15, "Qa"),
        (1e18, "Qi"),
    )


@dataclass(frozen=True)
class CatalogBalance:
    """Where the upgrade catalog comes from."""

    # Published Google Sheets CSV with one row per upgrade
    sheet_url: str = (
        "https://docs.google.com/spreadsheets/d/e/"
        "2PACX-1vTV0t6SXTEs2ndKMVlnBssVfGQEIKZB-F5mDzLN3u7FLrOcWuslmlxITJ0T3_VONJzy7GsBi9ARQbEF"
        "/pub?output=csv"
    )
    fetch_timeout_s: float = 10.0
    user_agent: str = "bubba-planner/1.0"


@dataclass(frozen=True)
class StorageBalance:
    """Persistence keys and file locations."""

    save_dir: Path = Path.home() / ".bubba"
    store_file: str = "storage.json"

    # Snapshot keys (three independent entries)
    levels_key: str = "bubbaLevels"
    money_key: str = "bubbaMoney"
    strategy_key: str = "bubbaStrategy"

    # Written into every exported document
    export_version: str = "1.0.0"
    export_file: str = "bubba-export.json"

    # Web sessions kept in memory; least recently used are dropped (their store stays on disk)
    max_web_sessions: int = 256


@dataclass(frozen=True)
class GameBalance:
    """Top-level container for all balance constants."""

    economy: EconomyBalance = field(default_factory=EconomyBalance)
    catalog: CatalogBalance = field(default_factory=CatalogBalance)
    storage: StorageBalance = field(default_factory=StorageBalance)


# Singleton — import this everywhere
BALANCE = GameBalance()
