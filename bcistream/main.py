"""Offline replay: push a recorded two-column trace through a detector chain."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.config import PipelineConfig
from core.pipeline import Pipeline
from core.presets import PRESETS
from shared.window import Window

logger = logging.getLogger(__name__)


def _load_pipeline(args: argparse.Namespace, parser: argparse.ArgumentParser) -> Optional[Pipeline]:
    if args.preset is not None:
        return PRESETS[args.preset]().build()
    if args.config is not None:
        try:
            config = PipelineConfig.from_dict(json.loads(args.config.read_text(encoding="utf-8")))
            return config.build()
        except (OSError, ValueError, TypeError) as exc:
            parser.error(f"invalid pipeline config {args.config}: {exc}")
    return None


def _replay(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    pipeline = _load_pipeline(args, parser)
    if args.window is not None and args.window < 1:
        parser.error("--window must be at least 1")

    try:
        text = args.input.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.input, exc)
        return 1

    # Keep every row unless a window size was requested.
    size = args.window if args.window is not None else max(1, text.count("\n") + 1)
    window = Window(size, pipeline)
    try:
        count = window.from_csv(text)
    except ValueError as exc:
        logger.error("Malformed input %s: %s", args.input, exc)
        return 1
    logger.info("Replayed %d samples from %s", count, args.input)

    if args.output is None:
        sys.stdout.write(window.to_csv())
    else:
        window.save(args.output)
        logger.info("Wrote %d samples to %s", len(window), args.output)
    return 0


def _list_presets(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    for name, factory in sorted(PRESETS.items()):
        kinds = " -> ".join(stage.kind for stage in factory().stages)
        print(f"{name}: {kinds}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bcistream", description=__doc__)
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Process a two-column text trace")
    replay.add_argument("input", type=Path)
    replay.add_argument("-o", "--output", type=Path, default=None)
    source = replay.add_mutually_exclusive_group()
    source.add_argument("--preset", choices=sorted(PRESETS))
    source.add_argument("--config", type=Path, help="JSON pipeline description")
    replay.add_argument("--window", type=int, default=None, help="Keep only the last N samples")
    replay.set_defaults(func=_replay)

    presets = sub.add_parser("presets", help="List built-in detector chains")
    presets.set_defaults(func=_list_presets)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args, parser)


if __name__ == "__main__":
    raise SystemExit(main())
