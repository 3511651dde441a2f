"""HUD widget — money, output, strategy and the current recommendation."""

from __future__ import annotations

from rich.text import Text
from textual.widget import Widget
from textual.reactive import reactive

from bubba.engine.economy import format_number
from bubba.engine.ledger import Ledger


class HUD(Widget):
    """Heads-up display showing the planner's headline numbers."""

    DEFAULT_CSS = """
    HUD {
        width: 100%;
        height: 100%;
        padding: 1;
    }
    """

    money: reactive[str] = reactive("0")
    output: reactive[str] = reactive("0")
    strategy: reactive[str] = reactive("")
    filters: reactive[str] = reactive("")
    rec_name: reactive[str] = reactive("")
    rec_detail: reactive[str] = reactive("")
    rec_affordable: reactive[bool] = reactive(False)
    rec_gain: reactive[str] = reactive("")
    ignored_count: reactive[int] = reactive(0)
    catalog_source: reactive[str] = reactive("")

    def render(self) -> Text:
        text = Text()
        text.append("  === Bubba Planner ===\n\n", style="bold cyan")

        text.append("  Money: ", style="dim")
        text.append(f"{self.money}\n", style="bold green")

        text.append("  DPS: ", style="dim")
        text.append(f"{self.output}\n", style="bold yellow")

        text.append("\n")
        text.append("  Strategy: ", style="dim")
        text.append(f"{self.strategy}\n", style="bold magenta")
        if self.filters:
            text.append(f"  Filters: {self.filters}\n", style="dim")

        text.append("\n")
        text.append("  ═══ Recommended ═══\n", style="bold magenta")
        if self.rec_name:
            name_style = "bold green" if self.rec_affordable else "bold red"
            text.append(f"  ★ {self.rec_name}\n", style=name_style)
            text.append(f"  {self.rec_detail}\n", style="dim")
            if self.rec_gain:
                text.append(f"  {self.rec_gain}\n", style="cyan")
            if not self.rec_affordable:
                text.append("  (need more money)\n", style="red")
        else:
            text.append("  Nothing to recommend\n", style="dim italic")
        if self.ignored_count:
            text.append(f"  {self.ignored_count} ignored this session\n", style="dim italic")

        text.append("\n")
        if self.catalog_source == "fallback":
            text.append("  Using built-in upgrade data\n", style="yellow")

        text.append("\n")
        text.append("  [+/-] Buy/Sell  [T] +10  [X] Max\n", style="dim italic")
        text.append("  [B] Buy rec  [I] Ignore rec\n", style="dim italic")
        text.append("  [S] Strategy  [M] Money  [L] Level\n", style="dim italic")
        text.append("  [Q] Quit\n", style="dim italic")

        return text

    def update_from_ledger(
        self,
        ledger: Ledger,
        recommendation: str | None,
        filters: str = "",
        catalog_source: str = "",
    ) -> None:
        """Sync HUD with ledger state."""
        self.money = format_number(ledger.money)
        current = ledger.total_output()
        self.output = f"{current:.2f}"
        self.strategy = ledger.strategy.label
        self.filters = filters
        self.ignored_count = len(ledger.ignored)
        self.catalog_source = catalog_source

        if recommendation is None:
            self.rec_name = ""
            self.rec_detail = ""
            self.rec_gain = ""
            self.rec_affordable = False
            return

        cost = ledger.next_cost(recommendation)
        self.rec_name = recommendation
        self.rec_detail = recommendation_detail(ledger, recommendation)
        self.rec_affordable = cost <= ledger.money

        new_output = ledger.projected_output(recommendation)
        if current > 0:
            pct = (new_output - current) / current * 100
            self.rec_gain = f"DPS → {new_output:.2f} (+{pct:.2f}%)"
        else:
            self.rec_gain = f"DPS → {new_output:.2f}"


def recommendation_detail(ledger: Ledger, name: str) -> str:
    """One-line summary of the recommended upgrade's next level."""
    udef = ledger.catalog[name]
    cost = ledger.next_cost(name)
    per_cost = f"{udef.benefit / cost:.6f}" if cost > 0 else "∞"
    return (
        f"Lv.{ledger.level(name)}/{udef.max_level} · next {format_number(cost)}"
        f" · +{udef.benefit:.4f} DPS · {per_cost} DPS/cost"
    )
