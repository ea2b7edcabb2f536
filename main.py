#!/usr/bin/env python3
"""BeamMP Server Console — Entry Point"""

import argparse
import faulthandler
import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path

from provisioning import SERVER_RELEASE_URL


def setup_logging() -> tuple[logging.Logger, Path]:
    log_dir = Path(os.environ.get("APPDATA", "~")).expanduser() / "BeamMPServerConsole"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "beammpconsole.log"

    handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,  # 1 MB
        backupCount=2,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)-8s  %(message)s"))

    logger = logging.getLogger("beammpconsole")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)

    # Module loggers (mod_repository, provisioning, ...) share the file
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)
    logger.propagate = False
    return logger, log_dir


def install_crash_handler(logger: logging.Logger, log_dir: Path):
    def handle_exception(exc_type, exc_value, exc_tb):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        logger.critical(
            "Unhandled exception:\n%s",
            "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        )

    sys.excepthook = handle_exception

    # faulthandler can't go through logging after a C-level crash
    crash_file = log_dir / "crash.log"
    faulthandler.enable(open(crash_file, "w"), all_threads=True)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BeamMP Server Console")
    parser.add_argument("--server-dir", default=".",
                        help="BeamMP server installation directory (default: current directory)")
    parser.add_argument("--server-url", default=SERVER_RELEASE_URL,
                        help="download URL for the server binary")
    parser.add_argument("--no-update", action="store_true",
                        help="don't download the server binary at startup when it is missing")
    parser.add_argument("--window-title-suffix")
    return parser.parse_args()


def run():
    args = parse_args()

    logger, log_dir = setup_logging()
    install_crash_handler(logger, log_dir)
    logger.info("Starting BeamMP Server Console")

    from gui import main
    main(
        logger,
        server_dir=args.server_dir,
        server_url=args.server_url,
        check_updates=not args.no_update,
        window_title_suffix=args.window_title_suffix,
    )


if __name__ == "__main__":
    run()
