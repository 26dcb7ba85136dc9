"""
Command-line entry point.

Usage:
    dash                                   # ./.dash/workflows/config.yml
    dash --config pipelines/ingest.yml
    python -m dashpipe -c pipelines/ingest.yml --log-level DEBUG

Exit codes:
    0   every step completed
    1   a step failed (the run stopped at that step)
    2   the configuration could not be loaded or validated
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Sequence

from dashpipe import __version__
from dashpipe.core.config import settings
from dashpipe.core.logging import get_logger, setup_logging
from dashpipe.pipeline.context import RunContext
from dashpipe.pipeline.dispatcher import Dispatcher, PipelineResult
from dashpipe.pipeline.errors import ConfigError
from dashpipe.pipeline.loader import load_config

EXIT_OK = 0
EXIT_STEP_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dash",
        description="Automation tool for data ingestion",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=settings.DASH_CONFIG_PATH,
        help="Path to the workflow file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help="Log level (default: %(default)s)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=settings.LOG_JSON,
        help="Emit logs as JSON lines",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def run_pipeline(config_path: str) -> PipelineResult:
    """Load `config_path` and run it to completion or first failure."""
    config = load_config(config_path)
    ctx = RunContext()
    try:
        return await Dispatcher().run_config(config, ctx)
    finally:
        ctx.cache.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, json_logs=args.json_logs)
    logger = get_logger("cli")

    try:
        result = asyncio.run(run_pipeline(args.config))
    except ConfigError as exc:
        logger.error("Configuration error", error=str(exc), path=args.config)
        print(f"dash: configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if result.ok:
        print(
            f"dash: pipeline completed ({result.steps_completed}/{result.total_steps} steps, "
            f"{result.total_duration_ms}ms)",
            file=sys.stderr,
        )
        return EXIT_OK

    print(
        f"dash: step {result.failed_step_index} ({result.failed_step_name}) failed "
        f"with {result.error_kind}: {result.error}",
        file=sys.stderr,
    )
    return EXIT_STEP_FAILED


if __name__ == "__main__":
    sys.exit(main())
