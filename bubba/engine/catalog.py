"""Catalog loading — turn a spreadsheet (or a plain dict) into upgrade definitions.

Malformed rows are dropped rather than aborting the load. If the remote sheet
can't be fetched or yields nothing usable, the built-in catalog is used and
the failure is handed back to the caller to surface.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import requests

from bubba.data.balance import BALANCE
from bubba.data.upgrades import FALLBACK_CATALOG, Category, UpgradeDef, determine_category
from bubba.engine.results import CatalogLoadFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogLoad:
    """What load_catalog ended up with and where it came from."""

    catalog: dict[str, UpgradeDef]
    source: str  # "remote" | "fallback"
    failure: CatalogLoadFailure | None = None


# ── Value parsing ────────────────────────────────────────────────


def _to_float(value) -> float:
    """Parse a numeric cell; anything unparseable is 0."""
    if value is None:
        return 0.0
    try:
        number = float(str(value).strip().replace(",", ""))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_max_level(value) -> int:
    """Parse a max-level cell; anything that isn't a positive integer gives the default."""
    default = BALANCE.economy.default_max_level
    if value is None:
        return default
    try:
        level = int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default
    return level if level > 0 else default


# ── Row → catalog ────────────────────────────────────────────────


def build_catalog(rows: Iterable[Mapping]) -> dict[str, UpgradeDef]:
    """Validate rows into a catalog.

    Each row maps ``name``, ``base_cost``, ``benefit``, ``max_level`` and
    ``description``. Rows without a name or with a non-positive base cost
    are skipped. Later rows with the same name replace earlier ones.
    """
    catalog: dict[str, UpgradeDef] = {}
    skipped = 0
    for row in rows:
        name = str(row.get("name") or "").strip()
        base_cost = _to_float(row.get("base_cost"))
        if not name or base_cost <= 0:
            skipped += 1
            continue

        category = row.get("category")
        catalog[name] = UpgradeDef(
            name=name,
            base_cost=base_cost,
            benefit=max(0.0, _to_float(row.get("benefit"))),
            max_level=_to_max_level(row.get("max_level")),
            description=str(row.get("description") or "").strip(),
            category=_parse_category(category) if category else determine_category(name),
        )
    if skipped:
        logger.debug("Skipped %d unusable catalog rows", skipped)
    return catalog


def _parse_category(value) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        return Category.DAMAGE


def catalog_from_mapping(mapping: Mapping[str, Mapping]) -> dict[str, UpgradeDef]:
    """Build a catalog from the object form ``{name: {baseCost, benefit|dps, maxLevel, description}}``."""
    rows = []
    for name, data in mapping.items():
        if not isinstance(data, Mapping):
            continue
        benefit = data.get("benefit", data.get("dps"))
        rows.append({
            "name": name,
            "base_cost": data.get("baseCost"),
            "benefit": benefit,
            "max_level": data.get("maxLevel"),
            "description": data.get("description"),
            "category": data.get("category"),
        })
    return build_catalog(rows)


# ── CSV ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Columns:
    """Column indices resolved from a header row (None = missing)."""

    name: int | None
    base_cost: int | None
    benefit: int | None
    max_level: int | None
    description: int | None


def _find(headers: list[str], predicate) -> int | None:
    for i, header in enumerate(headers):
        if predicate(header.lower()):
            return i
    return None


def resolve_columns(headers: list[str]) -> Columns:
    """Match columns by case-insensitive keywords in the header text."""
    return Columns(
        name=_find(headers, lambda h: "upgrade" in h or "name" in h),
        base_cost=_find(headers, lambda h: "base" in h and "cost" in h),
        benefit=_find(headers, lambda h: "dps" in h or "benefit" in h),
        max_level=_find(headers, lambda h: "max" in h and "level" in h),
        description=_find(headers, lambda h: "desc" in h),
    )


def _cell(cells: list[str], index: int | None) -> str | None:
    if index is None or index >= len(cells):
        return None
    return cells[index]


def parse_csv(text: str) -> list[dict]:
    """Parse sheet CSV text into catalog rows (unvalidated)."""
    records = [
        [cell.strip().replace('"', "") for cell in record]
        for record in csv.reader(io.StringIO(text))
        if any(cell.strip() for cell in record)
    ]
    if not records:
        return []

    columns = resolve_columns(records[0])
    rows = []
    for cells in records[1:]:
        rows.append({
            "name": _cell(cells, columns.name),
            "base_cost": _cell(cells, columns.base_cost),
            "benefit": _cell(cells, columns.benefit),
            "max_level": _cell(cells, columns.max_level),
            "description": _cell(cells, columns.description),
        })
    return rows


def catalog_from_csv(text: str) -> dict[str, UpgradeDef]:
    return build_catalog(parse_csv(text))


# ── Remote fetch ─────────────────────────────────────────────────


def fetch_csv(url: str, timeout_s: float = BALANCE.catalog.fetch_timeout_s) -> str:
    """Download the sheet as CSV text. Raises requests.RequestException on failure."""
    r = requests.get(url, timeout=timeout_s, headers={"User-Agent": BALANCE.catalog.user_agent})
    r.raise_for_status()
    return r.text


def fallback_catalog() -> dict[str, UpgradeDef]:
    return dict(FALLBACK_CATALOG)


def load_catalog(url: str | None = None, offline: bool = False) -> CatalogLoad:
    """Load the remote catalog, falling back to the built-in one on any failure."""
    if offline:
        logger.info("Offline mode: using built-in catalog")
        return CatalogLoad(catalog=fallback_catalog(), source="fallback")

    url = url or BALANCE.catalog.sheet_url
    try:
        catalog = catalog_from_csv(fetch_csv(url))
    except requests.RequestException as exc:
        logger.warning("Failed to load catalog from %s: %s", url, exc)
        return CatalogLoad(
            catalog=fallback_catalog(),
            source="fallback",
            failure=CatalogLoadFailure(reason=str(exc)),
        )

    if not catalog:
        logger.warning("Catalog at %s had no usable rows", url)
        return CatalogLoad(
            catalog=fallback_catalog(),
            source="fallback",
            failure=CatalogLoadFailure(reason="sheet had no usable rows"),
        )

    logger.info("Loaded %d upgrades from sheet", len(catalog))
    return CatalogLoad(catalog=catalog, source="remote")
