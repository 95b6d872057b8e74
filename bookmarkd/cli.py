from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from typing import Any, Sequence

from .app import create_app, start_reload_thread
from .bookmarks import BookmarkStore, ParseError
from .log import configure_logging
from .settings import ConfigError, load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookmarkd",
        description="Browse a Chromium bookmark file from a web browser.",
    )
    parser.add_argument("--config", help="YAML settings file (default: ./bookmarkd.yml)")
    parser.add_argument("--bookmarkfile", dest="bookmark_file", help="The bookmark file")
    parser.add_argument("--logfile", dest="log_file", help="The log file")
    parser.add_argument("--host", help="Interface to listen on")
    parser.add_argument("--port", type=int, help="The listening port")
    parser.add_argument("--root", dest="root_name", help="Root folder to browse (default: bookmark_bar)")
    parser.add_argument(
        "--use-sort",
        dest="use_sort",
        action="store_true",
        default=None,
        help="Sort bookmarks alphabetically",
    )
    parser.add_argument(
        "--reload-on-root",
        dest="reload_on_root",
        action="store_true",
        default=None,
        help="Re-read the bookmark file whenever the top level is requested",
    )
    parser.add_argument(
        "--reload-interval",
        dest="reload_interval",
        type=float,
        help="Re-read the bookmark file every N seconds (0 disables)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Log at DEBUG level and run Flask in debug mode",
    )
    return parser


def _shutdown_handler(signum: int | None = None, frame: Any | None = None) -> None:
    logger.info("Received signal %s, shutting down", signum)
    logging.shutdown()
    os._exit(0)


def main(argv: Sequence[str] | None = None) -> int:
    args = vars(build_parser().parse_args(argv))
    config_file = args.pop("config")
    try:
        settings = load_settings(cli=args, config_file=config_file).validate()
    except ConfigError as exc:
        print(f"bookmarkd: {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_file, level=logging.DEBUG if settings.debug else logging.INFO)

    store = BookmarkStore(settings.bookmark_file)
    try:
        store.load()
    except (OSError, ParseError) as exc:
        print(f"bookmarkd: cannot load {settings.bookmark_file}: {exc}", file=sys.stderr)
        return 1

    if settings.reload_interval > 0:
        start_reload_thread(store, settings.reload_interval)

    signal.signal(signal.SIGINT, _shutdown_handler)
    signal.signal(signal.SIGTERM, _shutdown_handler)

    app = create_app(settings, store)
    logger.info("Start listening on %s:%d", settings.host, settings.port)
    app.run(host=settings.host, port=settings.port, debug=settings.debug, use_reloader=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
