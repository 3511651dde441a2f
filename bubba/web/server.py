"""Bubba Web — Flask server that wraps the upgrade ledger.

Serves a single-page planner UI and exposes a JSON API for ledger actions.
Every browser session gets its own Ledger and its own snapshot store; the
catalog is loaded once at startup and shared read-only between sessions.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import uuid
from collections import OrderedDict
from pathlib import Path

from flask import Flask, Response, abort, jsonify, render_template, request, session

from bubba.data.balance import BALANCE
from bubba.data.upgrades import Category, UpgradeDef
from bubba.engine.catalog import CatalogLoad, fallback_catalog, load_catalog
from bubba.engine.economy import format_number
from bubba.engine.ledger import Ledger
from bubba.engine.ranking import RowFilter, Strategy, ranked, summarize, upgrade_rows
from bubba.engine.results import InvalidImportDocument, Transaction
from bubba.engine.save import (
    KeyValueStore,
    export_document,
    import_document,
    load_snapshot,
    save_snapshot,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Flask app
# ---------------------------------------------------------------------------

_DIR = Path(__file__).parent
app = Flask(__name__, template_folder=str(_DIR / "templates"))
app.secret_key = os.environ.get("BUBBA_SECRET_KEY", "bubba-web-secret")
app.config["TEMPLATES_AUTO_RELOAD"] = True

# ---------------------------------------------------------------------------
# Sessions: one ledger + store per browser session
# ---------------------------------------------------------------------------


class PlannerSession:
    """A ledger paired with the store it persists to."""

    def __init__(self, ledger: Ledger, store: KeyValueStore) -> None:
        self.ledger = ledger
        self.store = store
        self.lock = threading.Lock()

    def save(self) -> None:
        save_snapshot(self.ledger, self.store)


_lock = threading.Lock()
_sessions: OrderedDict[str, PlannerSession] = OrderedDict()
_max_sessions: int = BALANCE.storage.max_web_sessions
_catalog: dict[str, UpgradeDef] = {}
_catalog_source: str = "fallback"
_catalog_notice: str | None = None
_data_dir: Path = BALANCE.storage.save_dir


def configure(
    catalog_load: CatalogLoad,
    data_dir: Path | None = None,
    max_sessions: int | None = None,
) -> None:
    """Install the shared catalog and where session stores live. Drops existing sessions."""
    global _catalog, _catalog_source, _catalog_notice, _data_dir, _max_sessions
    with _lock:
        _catalog = dict(catalog_load.catalog)
        _catalog_source = catalog_load.source
        _catalog_notice = None
        if catalog_load.failure is not None:
            _catalog_notice = f"Using built-in data: {catalog_load.failure.reason}"
        if data_dir is not None:
            _data_dir = data_dir
        _max_sessions = max(1, max_sessions or BALANCE.storage.max_web_sessions)
        _sessions.clear()


def _new_session(sid: str) -> PlannerSession:
    store = KeyValueStore(_data_dir / "sessions" / f"{sid}.json")
    ledger = Ledger()
    empty = ledger.install_catalog(_catalog or fallback_catalog(), source=_catalog_source)
    if empty is not None:
        # Only reachable if the built-in catalog is empty.
        raise RuntimeError(f"no upgrades available from {empty.source}")
    load_snapshot(ledger, store)
    return PlannerSession(ledger, store)


def _current() -> PlannerSession:
    sid = session.get("sid")
    if not sid:
        sid = uuid.uuid4().hex
        session["sid"] = sid
    with _lock:
        planner = _sessions.get(sid)
        if planner is None:
            planner = _new_session(sid)
            _sessions[sid] = planner
            logger.debug("Started planner session %s", sid)
            while len(_sessions) > _max_sessions:
                evicted, _ = _sessions.popitem(last=False)
                logger.debug("Evicted planner session %s", evicted)
        else:
            _sessions.move_to_end(sid)
    return planner


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def _row_filter() -> RowFilter:
    args = request.args
    category = None
    raw_category = args.get("category", "all")
    if raw_category and raw_category != "all":
        try:
            category = Category(raw_category)
        except ValueError:
            category = None
    return RowFilter(
        search=args.get("search", ""),
        category=category,
        hide_maxed=_flag(args.get("hide_maxed", "")),
        affordable_only=_flag(args.get("affordable", "")),
    )


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def _state_json(planner: PlannerSession) -> dict:
    """Build the JSON blob sent to the frontend."""
    ledger = planner.ledger
    row_filter = _row_filter()
    rec_name = ledger.recommend(row_filter.affordable_only)

    rows = upgrade_rows(ledger, row_filter, rec_name)
    summary = summarize(rows)
    current_output = ledger.total_output()

    recommendation = None
    if rec_name is not None:
        next_cost = ledger.next_cost(rec_name)
        udef = ledger.catalog[rec_name]
        new_output = ledger.projected_output(rec_name)
        gain_pct = (new_output - current_output) / current_output * 100 if current_output > 0 else None
        recommendation = {
            "name": rec_name,
            "level": ledger.level(rec_name),
            "max_level": udef.max_level,
            "next_cost": next_cost,
            "next_cost_text": format_number(next_cost),
            "benefit": udef.benefit,
            "value_per_cost": _finite(udef.benefit / next_cost) if next_cost > 0 else None,
            "affordable": next_cost <= ledger.money,
            "new_output": new_output,
            "gain_pct": gain_pct,
        }

    runners_up = [
        name for name, _ in ranked(
            ledger.catalog, ledger.levels, ledger.money, ledger.strategy,
            ledger.ignored, row_filter.affordable_only,
        )[1:4]
    ]

    return {
        "money": ledger.money,
        "money_text": format_number(ledger.money),
        "strategy": ledger.strategy.value,
        "strategies": [{"tag": s.value, "label": s.label} for s in Strategy],
        "categories": [c.value for c in Category],
        "current_output": current_output,
        "recommendation": recommendation,
        "runners_up": runners_up,
        "ignored": sorted(ledger.ignored),
        "rows": [
            {
                "name": r.name,
                "description": r.description,
                "category": r.category.value,
                "level": r.level,
                "max_level": r.max_level,
                "base_cost": r.base_cost,
                "next_cost": r.next_cost,
                "benefit": r.benefit,
                "value_per_cost": _finite(r.value_per_cost),
                "current_output": r.current_output,
                "total_spent": r.total_spent,
                "maxed": r.maxed,
                "affordable": r.affordable,
                "recommended": r.recommended,
            }
            for r in rows
        ],
        "summary": {
            "total_levels": summary.total_levels,
            "total_spent": summary.total_spent,
            "total_output": summary.total_output,
        },
        "catalog_source": _catalog_source,
        "catalog_notice": _catalog_notice,
    }


def _transaction_json(txn: Transaction) -> dict:
    data = {
        "name": txn.name,
        "kind": txn.kind.value,
        "ok": txn.ok,
        "old_level": txn.old_level,
        "new_level": txn.new_level,
        "amount": txn.amount,
    }
    if txn.failure is not None:
        data["error"] = "insufficient_funds"
        data["required"] = txn.failure.required
        data["available"] = txn.failure.available
    return data


def _respond(planner: PlannerSession, txn: Transaction | None = None, status: int = 200, **extra):
    data = _state_json(planner)
    if txn is not None:
        data["transaction"] = _transaction_json(txn)
        if not txn.ok:
            status = 409
    data.update(extra)
    return jsonify(data), status


def _body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _int_field(body: dict, key: str, default: int) -> int:
    try:
        return int(body.get(key, default))
    except (TypeError, ValueError):
        abort(400, description=f"{key} must be an integer")


def _require_upgrade(planner: PlannerSession, name: str) -> None:
    if name not in planner.ledger.catalog:
        abort(404, description=f"unknown upgrade: {name}")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route("/")
def index():
    return render_template("index.html")


@app.route("/api/state")
def api_state():
    planner = _current()
    with planner.lock:
        return _respond(planner)


@app.route("/api/money", methods=["POST"])
def action_money():
    planner = _current()
    body = _body()
    with planner.lock:
        try:
            amount = int(float(body.get("money", 0)))
        except (TypeError, ValueError, OverflowError):
            amount = 0
        planner.ledger.set_money(amount)
        planner.save()
        return _respond(planner)


@app.route("/api/strategy", methods=["POST"])
def action_strategy():
    planner = _current()
    body = _body()
    with planner.lock:
        planner.ledger.set_strategy(Strategy.parse(body.get("strategy")))
        planner.save()
        return _respond(planner)


@app.route("/api/upgrade/<path:name>/buy", methods=["POST"])
def action_buy(name: str):
    planner = _current()
    body = _body()
    with planner.lock:
        _require_upgrade(planner, name)
        if _flag(body.get("max", False)):
            txn = planner.ledger.buy_max(name)
        else:
            count = _int_field(body, "count", 1)
            if count < 0:
                abort(400, description="count must be >= 0")
            txn = planner.ledger.buy(name, count)
        if txn.ok:
            planner.save()
        return _respond(planner, txn)


@app.route("/api/upgrade/<path:name>/sell", methods=["POST"])
def action_sell(name: str):
    planner = _current()
    body = _body()
    with planner.lock:
        _require_upgrade(planner, name)
        count = _int_field(body, "count", 1)
        if count < 0:
            abort(400, description="count must be >= 0")
        txn = planner.ledger.sell(name, count)
        planner.save()
        return _respond(planner, txn)


@app.route("/api/upgrade/<path:name>/level", methods=["POST"])
def action_set_level(name: str):
    planner = _current()
    body = _body()
    with planner.lock:
        _require_upgrade(planner, name)
        txn = planner.ledger.set_level(name, _int_field(body, "level", planner.ledger.level(name)))
        if txn.ok:
            planner.save()
        return _respond(planner, txn)


@app.route("/api/recommendation/buy", methods=["POST"])
def action_buy_recommendation():
    planner = _current()
    with planner.lock:
        txn = planner.ledger.buy_recommendation(_row_filter().affordable_only)
        if txn is None:
            return _respond(planner, recommendation_result=None)
        if txn.ok:
            planner.save()
        return _respond(planner, txn)


@app.route("/api/recommendation/ignore", methods=["POST"])
def action_ignore_recommendation():
    planner = _current()
    with planner.lock:
        ignored = planner.ledger.ignore_recommendation(_row_filter().affordable_only)
        return _respond(planner, ignored_name=ignored)


@app.route("/api/reset", methods=["POST"])
def action_reset():
    planner = _current()
    with planner.lock:
        planner.ledger.reset_levels()
        planner.save()
        return _respond(planner)


@app.route("/api/clear", methods=["POST"])
def action_clear():
    """Forget everything saved for this session and start over."""
    planner = _current()
    with planner.lock:
        planner.store.clear()
        fresh = Ledger()
        fresh.install_catalog(planner.ledger.catalog, source=_catalog_source)
        planner.ledger = fresh
        return _respond(planner)


@app.route("/api/import", methods=["POST"])
def action_import():
    planner = _current()
    body = request.get_json(silent=True)
    if isinstance(body, dict) and isinstance(body.get("document"), str):
        text = body["document"]
    else:
        text = request.get_data(as_text=True)
    with planner.lock:
        result = import_document(planner.ledger, text)
        if isinstance(result, InvalidImportDocument):
            return _respond(planner, status=400, import_error=result.reason)
        planner.save()
        return _respond(planner, imported={
            "applied": result.applied,
            "ignored": result.ignored,
        })


@app.route("/api/export")
def action_export():
    planner = _current()
    with planner.lock:
        doc = export_document(planner.ledger)
    response = jsonify(doc)
    if _flag(request.args.get("download", "")):
        response.headers["Content-Disposition"] = (
            f"attachment; filename={BALANCE.storage.export_file}"
        )
    return response


@app.errorhandler(400)
@app.errorhandler(404)
def _json_error(error) -> tuple[Response, int]:
    return jsonify({"error": error.description}), error.code


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run_server(
    host: str = "127.0.0.1",
    port: int = 5000,
    debug: bool = False,
    sheet_url: str | None = None,
    offline: bool = False,
    data_dir: Path | None = None,
) -> None:
    """Load the catalog, then start the Flask development server."""
    configure(load_catalog(sheet_url, offline=offline), data_dir)
    app.run(host=host, port=port, debug=debug, use_reloader=False)
