"""Save/load — the key-value snapshot store and JSON import/export documents."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path

from bubba.data.balance import BALANCE
from bubba.engine.ledger import Ledger
from bubba.engine.ranking import Strategy
from bubba.engine.results import ImportReport, InvalidImportDocument

logger = logging.getLogger(__name__)


def default_store_path() -> Path:
    return BALANCE.storage.save_dir / BALANCE.storage.store_file


# ── Key-value store ──────────────────────────────────────────────


class KeyValueStore:
    """String keys to string values, kept in one JSON file.

    Reads never fail: a missing or corrupt file is just empty. Write failures
    are logged and otherwise ignored.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_store_path()
        self._data: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2))
        except OSError as exc:
            logger.warning("Could not write store %s: %s", self.path, exc)

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()

    def clear(self) -> None:
        self._data.clear()
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete store %s: %s", self.path, exc)

    def __contains__(self, key: str) -> bool:
        return key in self._data


# ── Snapshot ─────────────────────────────────────────────────────


def save_snapshot(ledger: Ledger, store: KeyValueStore) -> None:
    """Persist levels, money and strategy as three independent entries."""
    keys = BALANCE.storage
    store.set(keys.levels_key, json.dumps(ledger.levels))
    store.set(keys.money_key, str(int(ledger.money)))
    store.set(keys.strategy_key, ledger.strategy.value)


def load_snapshot(ledger: Ledger, store: KeyValueStore) -> bool:
    """Apply whatever snapshot entries exist. Returns True if any were applied.

    Call after the catalog is installed; levels for unknown upgrades are dropped.
    """
    keys = BALANCE.storage
    loaded = False

    raw_levels = store.get(keys.levels_key)
    if raw_levels is not None:
        try:
            levels = json.loads(raw_levels)
            if not isinstance(levels, dict):
                raise ValueError("levels entry is not an object")
            ledger.restore_levels({name: int(level) for name, level in levels.items()})
            loaded = True
        except (ValueError, TypeError, OverflowError) as exc:
            logger.warning("Skipping saved levels: %s", exc)

    raw_money = store.get(keys.money_key)
    if raw_money is not None:
        try:
            ledger.set_money(int(float(raw_money)))
            loaded = True
        except (ValueError, OverflowError):
            logger.warning("Skipping saved money: %r", raw_money)

    raw_strategy = store.get(keys.strategy_key)
    if raw_strategy is not None:
        ledger.set_strategy(Strategy.parse(raw_strategy))
        loaded = True

    return loaded


# ── Import / export ──────────────────────────────────────────────


def export_document(ledger: Ledger, now: datetime | None = None) -> dict:
    """The user-facing export document."""
    now = now or datetime.now(timezone.utc)
    return {
        "money": ledger.money,
        "levels": dict(ledger.levels),
        "timestamp": now.isoformat(),
        "version": BALANCE.storage.export_version,
    }


def export_json(ledger: Ledger, now: datetime | None = None) -> str:
    return json.dumps(export_document(ledger, now), indent=2)


def _is_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _is_finite_float(value) -> bool:
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _as_level(value) -> int | None:
    if not _is_number(value):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return int(value)


def import_document(ledger: Ledger, text: str) -> ImportReport | InvalidImportDocument:
    """Apply an exported document. All or nothing: nothing changes on failure.

    Only upgrades in the current catalog are applied, clamped to
    [0, max_level]; unknown names are reported but otherwise ignored. A
    successful import clears the ignore-list.
    """
    if not text or not text.strip():
        return InvalidImportDocument(reason="document is empty")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return InvalidImportDocument(reason=f"invalid JSON: {exc.msg}")
    if not isinstance(data, dict):
        return InvalidImportDocument(reason="document must be a JSON object")
    if "levels" not in data and "money" not in data:
        return InvalidImportDocument(reason="document has no levels or money")

    levels: dict[str, int] = {}
    raw_levels = data.get("levels", {})
    if not isinstance(raw_levels, dict):
        return InvalidImportDocument(reason="levels must be an object")
    for name, value in raw_levels.items():
        level = _as_level(value)
        if level is None:
            return InvalidImportDocument(reason=f"level for {name!r} is not an integer")
        levels[name] = level

    money = data.get("money")
    if money is not None and not _is_number(money):
        return InvalidImportDocument(reason="money must be a number")
    if money is not None and not _is_finite_float(money):
        return InvalidImportDocument(reason="money is out of range")

    # Validated, now apply.
    applied_names = ledger.restore_levels(levels)
    ignored = [name for name in levels if name not in ledger.catalog]
    if money is not None:
        ledger.set_money(money)
    ledger.clear_ignored()

    logger.info("Imported %d levels (%d unknown ignored)", len(applied_names), len(ignored))
    return ImportReport(
        applied={name: ledger.levels[name] for name in applied_names},
        ignored=ignored,
        money=ledger.money if money is not None else None,
    )


def import_file(ledger: Ledger, path: Path) -> ImportReport | InvalidImportDocument:
    """Read a document from disk and import it."""
    try:
        text = path.read_text()
    except OSError as exc:
        return InvalidImportDocument(reason=f"could not read {path}: {exc}")
    return import_document(ledger, text)


def write_export(ledger: Ledger, path: Path) -> bool:
    """Write the export document to ``path``. Returns False if it couldn't be written."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(export_json(ledger))
    except OSError as exc:
        logger.warning("Could not write export %s: %s", path, exc)
        return False
    return True
