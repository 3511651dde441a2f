"""Upgrade panel — the upgrade table with a selectable cursor row."""

from __future__ import annotations

from rich.text import Text
from textual.widget import Widget
from textual.reactive import reactive

from bubba.engine.economy import format_number
from bubba.engine.ranking import Summary, UpgradeRow


class UpgradePanel(Widget):
    """Lists every visible upgrade with level, costs and value."""

    DEFAULT_CSS = """
    UpgradePanel {
        width: 100%;
        height: 100%;
        padding: 1;
        overflow-y: auto;
    }
    """

    # Serialized table data for reactivity
    table_key: reactive[str] = reactive("")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._rows: list[UpgradeRow] = []
        self._summary: Summary | None = None
        self._cursor: int = 0

    def render(self) -> Text:
        text = Text()
        text.append("  ═══ Upgrades ═══\n\n", style="bold magenta")

        if not self._rows:
            text.append("  No upgrades match the current filters.\n", style="dim italic")
            return text

        for i, row in enumerate(self._rows):
            selected = i == self._cursor
            text.append(" ▶ " if selected else "   ", style="bold cyan")
            text.append("★ " if row.recommended else "  ", style="bold yellow")

            # Name + level
            if row.maxed:
                text.append(f"{row.name} ", style="dim")
                text.append("MAX", style="bold green")
            else:
                name_style = "bold green" if row.affordable else "bold red"
                if selected:
                    name_style += " reverse"
                text.append(f"{row.name} ", style=name_style)
                text.append(f"Lv.{row.level}/{row.max_level}", style="dim")
            text.append(f"  [{row.category.value}]\n", style="dim")

            if selected and row.description:
                text.append(f"        {row.description}\n", style="dim italic")

            # Costs and value
            text.append("        ")
            if not row.maxed:
                cost_style = "green" if row.affordable else "red"
                text.append(f"Next: {format_number(row.next_cost)}  ", style=cost_style)
                text.append(f"DPS/cost: {row.value_per_cost:.6f}  ", style="cyan")
            text.append(f"+{row.benefit:.4f}/lvl  ", style="dim")
            text.append(f"Now: {row.current_output:.2f}  ", style="yellow")
            text.append(f"Spent: {format_number(row.total_spent)}\n", style="dim")

        if self._summary is not None:
            s = self._summary
            text.append("\n")
            text.append(
                f"  Total levels: {s.total_levels}   Spent: {format_number(s.total_spent)}"
                f"   DPS: {s.total_output:.2f}\n",
                style="bold",
            )

        return text

    @property
    def selected(self) -> str | None:
        if not self._rows:
            return None
        return self._rows[self._cursor].name

    def move(self, delta: int) -> None:
        if not self._rows:
            return
        self._cursor = (self._cursor + delta) % len(self._rows)
        self.refresh()

    def update_from_rows(self, rows: list[UpgradeRow], summary: Summary) -> None:
        """Sync panel with the latest table rows, keeping the cursor on the same upgrade."""
        previous = self.selected
        self._rows = rows
        self._summary = summary
        names = [r.name for r in rows]
        if previous in names:
            self._cursor = names.index(previous)
        else:
            self._cursor = min(self._cursor, max(len(rows) - 1, 0))
        # Trigger re-render via reactive
        self.table_key = "|".join(
            f"{r.name}:{r.level}:{int(r.affordable)}:{int(r.recommended)}" for r in rows
        ) + f"|c:{self._cursor}|t:{summary.total_spent}"
