"""Entry point for the Deja Window preferences window."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from settings_store import ENV_SETTINGS_PATH, SettingsStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage which application windows get their size and position restored.")
    parser.add_argument(
        "--settings",
        default=None,
        help=f"Settings JSON file (default: ${ENV_SETTINGS_PATH} or ~/.config/deja-window/settings.json)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        from PySide6.QtWidgets import QApplication
        from prefs_gui import PrefsWindow
    except ImportError:
        print("PySide6 is required for the preferences window. Install with: pip install PySide6")
        return 1

    store = SettingsStore(args.settings)
    logging.getLogger(__name__).info("Using settings file %s", store.path)

    app = QApplication(sys.argv[:1])
    win = PrefsWindow(store)
    win.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
