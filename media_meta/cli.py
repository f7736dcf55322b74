from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml
from pydantic import ValidationError

from .app import MediaMetaApp
from .commands import query as cmd_query
from .commands import show as cmd_show
from .config import Settings, find_config
from .models import ProcessingError
from .reader import MetaReaderError
from .source import SourceError
from .stream.errors import StreamError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ShortPathFormatter(logging.Formatter):
    """Strips the library root from log messages so item paths stay readable."""

    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        return self._shorten(super().format(record))


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="media-meta", description="Query metadata attached to a media library tree"
    )
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")
    parser.add_argument(
        "--no-color", action="store_true", help="Disable coloured log output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    show_parser = subparsers.add_parser("show", help="Print the merged metadata of one item")
    show_parser.add_argument("item", type=Path, help="File or directory to describe")
    show_parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Library root; enables fallback composition from the enclosing directories",
    )
    query_parser = subparsers.add_parser(
        "query", help="Stream one key across a tree and apply operators to it"
    )
    query_parser.add_argument("key", help="Metadata key to stream")
    query_parser.add_argument("root", type=Path, help="Directory to walk")
    query_parser.add_argument(
        "--op",
        dest="ops",
        action="append",
        default=[],
        metavar="NAME",
        help="Operator to apply, in order (e.g. dedup, sort, count); repeatable",
    )
    return parser


def _configure_logging(level_name: str, roots: list[Path], color: bool) -> WarningBufferHandler:
    log_level = getattr(logging, level_name.upper(), logging.WARNING)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    formatter_cls = ColorFormatter if color else ShortPathFormatter
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter_cls(LOG_FORMAT, roots))
    root_logger.addHandler(stream_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(warn_buffer)
    return warn_buffer


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    display_root = args.root if args.command == "query" else (args.root or args.item.parent)
    warn_buffer = _configure_logging(
        args.log_level, [display_root.resolve()], color=not args.no_color
    )

    try:
        config_path = find_config(args.config)
        settings = Settings.load(config_path) if config_path else Settings()
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        logger.error("Cannot load configuration: %s", exc)
        return 2

    app = MediaMetaApp.create(settings)
    try:
        match args.command:
            case "show":
                cmd_show.run(app, args.item, root=args.root)
            case "query":
                cmd_query.run(app, args.key, args.root, op_names=args.ops)
            case _:
                parser.error("Unknown command")
    except (SourceError, MetaReaderError, ProcessingError, StreamError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        app.close()
        if warn_buffer.records:
            print("\n\033[33mWarnings summary:\033[0m", file=sys.stderr)
            for line in warn_buffer.records:
                print(f" - {line}", file=sys.stderr)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
