"""Command line interface for the liquidity monitor."""
from __future__ import annotations

import argparse
import logging
import logging.config
import os
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

from liqmon import StageContext, StageRunner, bootstrap, create_default_context, registry
from liqmon.history import InsufficientDataError
from liqmon.settings import Settings


def load_environment() -> None:
    candidates = []
    if env_file := os.getenv("ENV_FILE"):
        candidates.append(Path(env_file))
    candidates.append(Path(".env"))

    for path in candidates:
        if not path.exists():
            continue
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip().strip('"'))


load_environment()

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure logging from an INI file when present, else basic configuration."""

    config_candidates = []
    if config_env := os.getenv("LOGGING_CONFIG"):
        config_candidates.append(Path(config_env))
    config_candidates.append(Path("logging.ini"))

    for config_path in config_candidates:
        if not config_path.exists():
            continue
        if config_path.suffix.lower() not in {".ini", ".cfg"}:
            print(f"Skipping unsupported logging config {config_path}.")
            continue
        try:
            logging.config.fileConfig(config_path, disable_existing_loggers=False)
            return
        except (OSError, KeyError, ValueError) as exc:
            print(f"Failed to load logging config {config_path}: {exc}. Falling back to basic logging.")
            break

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


configure_logging()
bootstrap()
runner = StageRunner(registry)


def _context(settings: Settings | None = None) -> tuple[Settings, StageContext]:
    settings = settings or Settings.load()
    settings.ensure_directories()
    return settings, create_default_context(settings)


def _execute(stages: List[str], settings: Settings | None = None) -> None:
    settings, context = _context(settings)
    logger.info(
        "Running stages %s with database %s and output %s.",
        stages,
        settings.sqlite_path,
        settings.output_dir,
    )
    try:
        runner.run(stages, context)
    except InsufficientDataError as exc:
        print(f"Error: {exc}")
        raise SystemExit(1) from exc


def command_run(args: argparse.Namespace) -> None:
    try:
        resolved = runner.resolve(args.stages or None)
    except ValueError as exc:
        print(f"Error: {exc}")
        raise SystemExit(2) from exc
    _execute(resolved)


def command_stages(_: argparse.Namespace) -> None:
    print("Registered stages:")
    for definition in registry:
        print(f"- {definition.name}: {definition.description} ({definition.module})")


def command_stage(args: argparse.Namespace) -> None:
    _execute([args.command])


def command_backfill(args: argparse.Namespace) -> None:
    settings = Settings.load()
    if args.start:
        settings.history_start = args.start
    _execute(["backfill"], settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the global liquidity monitor.")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    parser_run = subparsers.add_parser("run", help="Run the full pipeline")
    parser_run.add_argument(
        "stages",
        nargs="*",
        help="Optional ordered list of stages to run instead of all registered stages.",
    )
    parser_run.set_defaults(func=command_run)

    parser_stages = subparsers.add_parser("stages", help="List registered stages")
    parser_stages.set_defaults(func=command_stages)

    for name in ("ingest", "score", "alerts", "export"):
        sub = subparsers.add_parser(name, help=f"Run only the {name} stage")
        sub.set_defaults(func=command_stage)

    parser_backfill = subparsers.add_parser("backfill", help="Rebuild the weekly score history")
    parser_backfill.add_argument(
        "--start",
        type=date.fromisoformat,
        help="First reference date (YYYY-MM-DD); defaults to LIQMON_HISTORY_START.",
    )
    parser_backfill.set_defaults(func=command_backfill)
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(None if argv is None else list(argv))
    args.func(args)
    return 0


if __name__ == "__main__":  # pragma: no cover - entry point for CLI usage
    raise SystemExit(main())
