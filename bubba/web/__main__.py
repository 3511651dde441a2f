"""Entry point for the web version: python -m bubba.web"""

import argparse
import logging
from pathlib import Path

from bubba.web.server import run_server


def main() -> None:
    parser = argparse.ArgumentParser(description="Bubba Upgrade Planner — Web Version")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=5000, help="Port (default: 5000)")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--sheet-url", default=None, help="CSV URL of the upgrade sheet")
    parser.add_argument("--offline", action="store_true", help="Skip the sheet and use built-in data")
    parser.add_argument("--data-dir", type=Path, default=None, help="Where session saves are kept")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"\n  🫧 Bubba Upgrade Planner (Web Edition)")
    print(f"  ➜ http://{args.host}:{args.port}/\n")

    run_server(
        host=args.host,
        port=args.port,
        debug=args.debug,
        sheet_url=args.sheet_url,
        offline=args.offline,
        data_dir=args.data_dir,
    )


if __name__ == "__main__":
    main()
