"""
Command-line entry point: vodpack <source-file>
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from . import __version__
from .config import load_config, set_config
from .logging_setup import configure_logging
from .pipeline import PipelineOrchestrator

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="vodpack",
        description="Prepare fragmented ABR assets and a DASH/HLS manifest from one media file",
    )
    parser.add_argument("source", type=str, help="Path to the source media file")
    parser.add_argument("-c", "--config", type=str, default=None, help="Path to vodpack.yaml")
    parser.add_argument(
        "-o",
        "--output-root",
        type=str,
        default=None,
        help="Directory in which the job directory is created (default: working directory)",
    )
    parser.add_argument(
        "--concurrent",
        action="store_true",
        help="Process video and audio streams concurrently",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"vodpack: cannot load configuration: {e}", file=sys.stderr)
        return 2

    if args.output_root:
        config.pipeline.output_root = args.output_root
    if args.concurrent:
        config.pipeline.concurrent_categories = True
    if args.verbose:
        config.logging.level = "DEBUG"

    set_config(config)
    configure_logging(config.logging)

    orchestrator = PipelineOrchestrator(config)
    try:
        result = asyncio.run(orchestrator.run(Path(args.source)))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    for warning in result.warnings:
        logger.warning(warning)

    if not result.success:
        print(f"vodpack: {result.describe()}", file=sys.stderr)
        return 1

    print(result.manifest_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
