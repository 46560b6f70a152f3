from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .app import AbzSubmitApp
from .commands import doctor as cmd_doctor
from .commands.output import colorize
from .config import Settings, find_config

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
    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
            message = message.replace(root, "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return self._shorten(message)


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
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def configure_logging(level_name: str, roots: list[Path]) -> tuple[WarningBufferHandler, Path]:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    if sys.stderr.isatty():
        color_handler.setFormatter(ColorFormatter(LOG_FORMAT, roots))
    else:
        color_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(warn_buffer)

    warn_log_path = Path.cwd() / "abz-submit-warnings.log"
    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8", delay=True)
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(file_handler)

    logging.getLogger("musicbrainzngs").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    return warn_buffer, warn_log_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract AcousticBrainz features and submit them")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    submit_parser = subparsers.add_parser("submit", help="Analyze and submit the given audio files")
    submit_parser.add_argument("files", nargs="+", type=Path, help="Audio files to submit")
    subparsers.add_parser("scan", help="Analyze and submit every track in the library roots")
    subparsers.add_parser("daemon", help="Scan, then keep watching the library roots for new files")
    doctor_parser = subparsers.add_parser("doctor", help="Run basic config/extractor checks")
    doctor_parser.add_argument(
        "--providers",
        action="store_true",
        help="Also validate providers with network calls",
    )
    return parser


def load_settings(explicit: Optional[Path]) -> tuple[Settings, Optional[Path]]:
    try:
        config_path = find_config(explicit)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc
    if config_path is None:
        return Settings(), None
    try:
        return Settings.load(config_path), config_path
    except Exception as exc:
        raise SystemExit(f"Invalid config {config_path}: {exc}") from exc


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings, config_path = load_settings(args.config)
    display_roots = [root.resolve() for root in settings.library.roots]
    warn_buffer, warn_log_path = configure_logging(args.log_level, display_roots)

    if args.command == "doctor":
        report = cmd_doctor.run(
            settings,
            config_path=config_path,
            validate_providers_online=args.providers,
        )
        lines = colorize(report.checks) if sys.stdout.isatty() else report.checks
        for line in lines:
            print(line)
        if not report.ok:
            raise SystemExit(1)
        return

    app = AbzSubmitApp.create(settings)
    daemon = app.get_daemon()
    try:
        match args.command:
            case "submit":
                for path in args.files:
                    daemon.process_path(path)
            case "scan":
                asyncio.run(daemon.run_scan())
            case "daemon":
                try:
                    asyncio.run(daemon.run_daemon())
                except KeyboardInterrupt:
                    pass
            case _:
                parser.error("Unknown command")
    finally:
        daemon.report()
        app.close()
        messages = app.messages.messages
        if messages:
            print("\n\033[33mFailed submissions:\033[0m")
            for message in messages:
                print(f" - {message.text}")
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")
    if app.messages.messages:
        raise SystemExit(1)
