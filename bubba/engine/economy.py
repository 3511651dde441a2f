"""Economy engine — level costs, refunds, aggregate output, and number formatting."""

from __future__ import annotations

import math
from collections.abc import Mapping

from bubba.data.balance import BALANCE
from bubba.data.upgrades import UpgradeDef


def level_cost(udef: UpgradeDef, level: int) -> int:
    """Cost to buy a single level (1-based): going from L to L+1 costs level_cost(L+1)."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return math.floor(udef.base_cost * BALANCE.economy.cost_growth ** (level - 1))


def range_cost(udef: UpgradeDef, start: int, stop: int) -> int:
    """Total cost to go from level ``start`` up to level ``stop``."""
    return sum(level_cost(udef, lvl) for lvl in range(start + 1, stop + 1))


def total_spent(udef: UpgradeDef, level: int) -> int:
    """Money sunk into levels 1..level. Always derived, never tracked."""
    return range_cost(udef, 0, level)


def level_refund(udef: UpgradeDef, level: int) -> int:
    """Refund for selling one level, floored on its own."""
    return math.floor(level_cost(udef, level) * BALANCE.economy.refund_rate)


def range_refund(udef: UpgradeDef, start: int, stop: int) -> int:
    """Refund for selling from level ``start`` down to level ``stop``.

    Each level is floored independently, so this is generally not
    ``floor(refund_rate * range_cost(...))``.
    """
    return sum(level_refund(udef, lvl) for lvl in range(start, stop, -1))


def total_output(catalog: Mapping[str, UpgradeDef], levels: Mapping[str, int]) -> float:
    """Aggregate output (DPS) over the whole catalog.

    Recomputed from scratch on every call so it can't drift from ``levels``.
    """
    return sum(udef.benefit * levels.get(name, 0) for name, udef in catalog.items())


def projected_output(
    catalog: Mapping[str, UpgradeDef],
    levels: Mapping[str, int],
    name: str,
) -> float:
    """Aggregate output if ``name`` gained one more level."""
    return total_output(catalog, levels) + catalog[name].benefit


def format_number(n: float) -> str:
    """Format a number with suffixes for readability."""
    if n < 0:
        return f"-{format_number(-n)}"

    for threshold, suffix in reversed(BALANCE.economy.suffixes):
        if n >= threshold:
            value = n / threshold
            if value >= 100:
                return f"{value:.0f}{suffix}"
            elif value >= 10:
                return f"{value:.1f}{suffix}"
            else:
                return f"{value:.2f}{suffix}"

    if n >= 100:
        return f"{n:.0f}"
    elif n >= 10:
        return f"{n:.1f}"
    elif n == int(n):
        return str(int(n))
    else:
        return f"{n:.2f}"
