"""Upgrade definitions — the catalog entry type and the built-in fallback catalog."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Category(Enum):
    """Advisory grouping used for filtering and display only."""

    DAMAGE = "damage"
    MONEY = "money"
    UTILITY = "utility"
    SPECIAL = "special"


# Ordered keyword rules: first match wins, DAMAGE when nothing matches.
CATEGORY_RULES: tuple[tuple[tuple[str, ...], Category], ...] = (
    (("bubble", "damage"), Category.DAMAGE),
    (("money", "gold", "coin"), Category.MONEY),
    (("speed", "rate", "time"), Category.UTILITY),
    (("special", "bonus", "chance"), Category.SPECIAL),
)


def determine_category(name: str) -> Category:
    """Derive an upgrade's category from keywords in its name."""
    lowered = name.lower()
    for keywords, category in CATEGORY_RULES:
        if any(word in lowered for word in keywords):
            return category
    return Category.DAMAGE


@dataclass(frozen=True)
class UpgradeDef:
    """Definition of a single upgrade."""

    name: str
    base_cost: float
    # Output (DPS) gained per level owned
    benefit: float
    max_level: int = 100
    description: str = ""
    category: Category = Category.DAMAGE


# ── Built-in catalog (used when the sheet can't be loaded) ────────

BUBBLES = UpgradeDef(
    name="Bubbles",
    base_cost=50,
    benefit=0.02,
    max_level=175,
    description="Increases bubble damage",
    category=Category.DAMAGE,
)

BUBBLE_BREAKTHROUGH = UpgradeDef(
    name="Bubble Breakthrough",
    base_cost=100,
    benefit=0.10,
    max_level=90,
    description="Significantly increases damage",
    category=Category.DAMAGE,
)

BUBBLE_BOOST = UpgradeDef(
    name="Bubble Boost",
    base_cost=250,
    benefit=0.02,
    max_level=120,
    description="Increases bubble spawn rate",
    category=Category.UTILITY,
)

MORE_BUBBLES = UpgradeDef(
    name="More Bubbles",
    base_cost=2000,
    benefit=1,
    max_level=45,
    description="Increases maximum bubbles on screen",
    category=Category.UTILITY,
)

BUBBLE_BONANZA = UpgradeDef(
    name="Bubble Bonanza",
    base_cost=5000,
    benefit=0.05,
    max_level=25,
    description="Chance for double bubble spawn",
    category=Category.SPECIAL,
)

GOLDEN_BUBBLES = UpgradeDef(
    name="Golden Bubbles",
    base_cost=10000,
    benefit=0.15,
    max_level=20,
    description="Increases money from bubbles",
    category=Category.MONEY,
)

BUBBLE_SPEED = UpgradeDef(
    name="Bubble Speed",
    base_cost=500,
    benefit=0.01,
    max_level=100,
    description="Increases bubble movement speed",
    category=Category.UTILITY,
)

CRITICAL_BUBBLES = UpgradeDef(
    name="Critical Bubbles",
    base_cost=2500,
    benefit=0.25,
    max_level=50,
    description="Chance for critical hits",
    category=Category.DAMAGE,
)

MONEY_BUBBLES = UpgradeDef(
    name="Money Bubbles",
    base_cost=5000,
    benefit=0.10,
    max_level=30,
    description="Bubbles drop more money",
    category=Category.MONEY,
)

# ── Fallback registry ────────────────────────────────────────────

FALLBACK_CATALOG: dict[str, UpgradeDef] = {
    u.name: u
    for u in [
        BUBBLES,
        BUBBLE_BREAKTHROUGH,
        BUBBLE_BOOST,
        MORE_BUBBLES,
        BUBBLE_BONANZA,
        GOLDEN_BUBBLES,
        BUBBLE_SPEED,
        CRITICAL_BUBBLES,
        MONEY_BUBBLES,
    ]
}
