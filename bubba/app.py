"""Bubba — Main Textual Application.

Wires the upgrade ledger and the UI widgets into a terminal planner.
"""

from __future__ import annotations

from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Header, Footer

from bubba.data.balance import BALANCE
from bubba.engine.catalog import CatalogLoad
from bubba.engine.economy import format_number
from bubba.engine.ledger import Ledger
from bubba.engine.ranking import RowFilter, summarize, upgrade_rows
from bubba.engine.results import InvalidImportDocument, Transaction
from bubba.engine.save import (
    KeyValueStore,
    import_file,
    load_snapshot,
    save_snapshot,
    write_export,
)

from bubba.ui.hud import HUD
from bubba.ui.number_prompt import NumberPrompt
from bubba.ui.upgrade_panel import UpgradePanel


class BubbaApp(App):
    """The Bubba upgrade planner TUI."""

    TITLE = "Bubba Upgrade Planner"
    SUB_TITLE = "Spend wisely. Pop harder."

    CSS = """
    #planner {
        height: 1fr;
    }

    #hud-panel {
        width: 44;
        border-right: solid $accent;
    }

    #upgrade-panel {
        width: 1fr;
    }
    """

    BINDINGS = [
        Binding("up,k", "cursor(-1)", "Up", show=False),
        Binding("down,j", "cursor(1)", "Down", show=False),
        Binding("plus,equals_sign", "buy(1)", "Buy", show=True),
        Binding("minus", "sell(1)", "Sell", show=True),
        Binding("t", "buy(10)", "+10", show=False),
        Binding("x", "buy_max", "Max", show=False),
        Binding("0", "sell_all", "Sell all", show=False),
        Binding("l", "set_level", "Set level", show=False),
        Binding("b", "buy_recommendation", "Buy rec", show=True),
        Binding("i", "ignore_recommendation", "Ignore rec", show=False),
        Binding("s", "cycle_strategy", "Strategy", show=True),
        Binding("m", "edit_money", "Money", show=True),
        Binding("f", "toggle_affordable", "Affordable", show=False),
        Binding("h", "toggle_hide_maxed", "Hide maxed", show=False),
        Binding("e", "export", "Export", show=False),
        Binding("o", "import", "Import", show=False),
        Binding("r", "reset_levels", "Reset", show=False),
        Binding("q", "quit_planner", "Quit", show=True),
    ]

    def __init__(self, catalog_load: CatalogLoad, store: KeyValueStore, export_path: Path | None = None) -> None:
        super().__init__()
        self._catalog_load = catalog_load
        self._store = store
        self._export_path = export_path or BALANCE.storage.save_dir / BALANCE.storage.export_file
        self._filter = RowFilter()
        self._ledger = Ledger()
        empty = self._ledger.install_catalog(catalog_load.catalog, source=catalog_load.source)
        if empty is not None:
            raise RuntimeError(f"no upgrades available from {empty.source}")
        load_snapshot(self._ledger, self._store)

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="planner"):
            yield HUD(id="hud-panel")
            yield UpgradePanel(id="upgrade-panel")
        yield Footer()

    def on_mount(self) -> None:
        if self._catalog_load.failure is not None:
            self.notify(
                f"Couldn't load the upgrade sheet, using built-in data. ({self._catalog_load.failure.reason})",
                severity="warning", timeout=5,
            )
        self._sync_ui()

    # ── Sync ─────────────────────────────────────────

    def _filter_label(self) -> str:
        parts = []
        if self._filter.affordable_only:
            parts.append("affordable")
        if self._filter.hide_maxed:
            parts.append("hide maxed")
        return ", ".join(parts)

    def _sync_ui(self) -> None:
        """Push ledger state to all UI widgets."""
        recommendation = self._ledger.recommend(self._filter.affordable_only)
        rows = upgrade_rows(self._ledger, self._filter, recommendation)

        hud = self.query_one("#hud-panel", HUD)
        hud.update_from_ledger(
            self._ledger,
            recommendation,
            filters=self._filter_label(),
            catalog_source=self._catalog_load.source,
        )

        panel = self.query_one("#upgrade-panel", UpgradePanel)
        panel.update_from_rows(rows, summarize(rows))

    def _selected(self) -> str | None:
        return self.query_one("#upgrade-panel", UpgradePanel).selected

    def _after(self, txn: Transaction) -> None:
        """Report a transaction, persist on success, and redraw."""
        if txn.failure is not None:
            self.notify(
                f"Need {format_number(txn.failure.required)} money for {txn.name}!",
                severity="error", timeout=2,
            )
        elif txn.levels_changed > 0:
            save_snapshot(self._ledger, self._store)
            self.notify(
                f"{txn.name} → Lv.{txn.new_level} for {format_number(txn.amount)}",
                severity="information", timeout=1,
            )
        elif txn.levels_changed < 0:
            save_snapshot(self._ledger, self._store)
            self.notify(
                f"Refunded {format_number(txn.amount)} from {txn.name}",
                severity="information", timeout=1,
            )
        elif self._ledger.is_maxed(txn.name):
            self.notify(f"{txn.name} is already at max level!", severity="warning", timeout=1)
        self._sync_ui()

    # ── Actions ──────────────────────────────────────

    def action_cursor(self, delta: int) -> None:
        self.query_one("#upgrade-panel", UpgradePanel).move(delta)

    def action_buy(self, count: int) -> None:
        name = self._selected()
        if name is not None:
            self._after(self._ledger.buy(name, count))

    def action_sell(self, count: int) -> None:
        name = self._selected()
        if name is not None:
            self._after(self._ledger.sell(name, count))

    def action_buy_max(self) -> None:
        name = self._selected()
        if name is not None:
            self._after(self._ledger.buy_max(name))

    def action_sell_all(self) -> None:
        name = self._selected()
        if name is not None:
            self._after(self._ledger.set_level(name, 0))

    def action_set_level(self) -> None:
        name = self._selected()
        if name is None:
            return

        def _apply(target: int | None) -> None:
            if target is not None:
                self._after(self._ledger.set_level(name, target))

        udef = self._ledger.catalog[name]
        self.push_screen(
            NumberPrompt(f"Level for {name} (0-{udef.max_level}):", self._ledger.level(name)),
            _apply,
        )

    def action_buy_recommendation(self) -> None:
        txn = self._ledger.buy_recommendation(self._filter.affordable_only)
        if txn is None:
            self.notify("Nothing to recommend.", severity="warning", timeout=1)
            return
        self._after(txn)

    def action_ignore_recommendation(self) -> None:
        name = self._ledger.ignore_recommendation(self._filter.affordable_only)
        if name is not None:
            self.notify(f"Ignored {name} for this session", severity="information", timeout=2)
        self._sync_ui()

    def action_cycle_strategy(self) -> None:
        self._ledger.set_strategy(self._ledger.strategy.next())
        save_snapshot(self._ledger, self._store)
        self._sync_ui()

    def action_edit_money(self) -> None:
        def _apply(amount: int | None) -> None:
            if amount is not None:
                self._ledger.set_money(amount)
                save_snapshot(self._ledger, self._store)
                self._sync_ui()

        self.push_screen(NumberPrompt("Available money:", int(self._ledger.money)), _apply)

    def action_toggle_affordable(self) -> None:
        f = self._filter
        self._filter = RowFilter(f.search, f.category, f.hide_maxed, not f.affordable_only)
        self._sync_ui()

    def action_toggle_hide_maxed(self) -> None:
        f = self._filter
        self._filter = RowFilter(f.search, f.category, not f.hide_maxed, f.affordable_only)
        self._sync_ui()

    def action_export(self) -> None:
        if write_export(self._ledger, self._export_path):
            self.notify(f"Exported to {self._export_path}", severity="information", timeout=3)
        else:
            self.notify("Export failed.", severity="error", timeout=2)

    def action_import(self) -> None:
        result = import_file(self._ledger, self._export_path)
        if isinstance(result, InvalidImportDocument):
            self.notify(f"Import failed: {result.reason}", severity="error", timeout=3)
            return
        save_snapshot(self._ledger, self._store)
        self.notify(f"Imported {len(result.applied)} upgrade levels", severity="information", timeout=2)
        self._sync_ui()

    def action_reset_levels(self) -> None:
        self._ledger.reset_levels()
        save_snapshot(self._ledger, self._store)
        self.notify("All levels reset to 0", severity="information", timeout=2)
        self._sync_ui()

    def action_quit_planner(self) -> None:
        save_snapshot(self._ledger, self._store)
        self.exit()
