"""Entry point for Bubba: python -m bubba"""

import argparse
import logging
from pathlib import Path

from bubba.app import BubbaApp
from bubba.data.balance import BALANCE
from bubba.engine.catalog import load_catalog
from bubba.engine.save import KeyValueStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Bubba Upgrade Planner")
    parser.add_argument("--sheet-url", default=None, help="CSV URL of the upgrade sheet")
    parser.add_argument("--offline", action="store_true", help="Skip the sheet and use built-in data")
    parser.add_argument("--data-dir", type=Path, default=BALANCE.storage.save_dir, help="Where saves are kept")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = parser.parse_args()

    # The TUI owns the terminal, so log to a file in the data dir.
    args.data_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=args.data_dir / "bubba.log",
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    catalog_load = load_catalog(args.sheet_url, offline=args.offline)
    store = KeyValueStore(args.data_dir / BALANCE.storage.store_file)
    app = BubbaApp(catalog_load, store, export_path=args.data_dir / BALANCE.storage.export_file)
    app.run()


if __name__ == "__main__":
    main()
