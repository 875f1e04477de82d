#!/usr/bin/env python3
"""
playcheck main entry point.

    python3 -m playcheck verify <scenario-file> [--only NAME] [--source-factory MODULE:CALLABLE]
    python3 -m playcheck update <scenario-file> [--only NAME] [--source-factory MODULE:CALLABLE]

verify compares every scenario with its reference dump; update rewrites the
reference dumps from fresh runs. Exit codes: 0 success, 1 verification or
harness failure, 2 scenario authoring or configuration error.

The committed playlist dumps use declared stand-ins for Matroska and MP4
media; regenerate them with:

    PLAYCHECK_ASSET_ROOT=playcheck/tests/assets \\
    PLAYCHECK_DUMP_ROOT=playcheck/tests/playbackdumps \\
    python3 -m playcheck update playcheck/tests/scenarios/playlists.json \\
        --source-factory playcheck.tests.contracts.test_doubles:create_media_source_factory
"""

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from playcheck.config import HarnessConfig
from playcheck.driver.playback_driver import PlaybackDriver
from playcheck.driver.scenario import ScenarioError, load_scenarios
from playcheck.errors import HarnessError
from playcheck.golden.dump_file_asserts import ComparisonMode

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SCENARIO_ERROR = 2

logger = logging.getLogger("playcheck")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playcheck",
        description="Deterministic playback verification against golden dumps",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command, help_text in (
        ("verify", "Run scenarios and compare them with their reference dumps"),
        ("update", "Run scenarios and overwrite their reference dumps"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("scenario_file", help="JSON scenario file")
        sub.add_argument(
            "--only",
            metavar="NAME",
            action="append",
            help="Run only the named scenario (repeatable)",
        )
        sub.add_argument(
            "--source-factory",
            metavar="MODULE:CALLABLE",
            help="Build the media source factory with this callable (overrides PLAYCHECK_SOURCE_FACTORY)",
        )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = HarnessConfig.load_config()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_SCENARIO_ERROR
    if args.source_factory:
        config = dataclasses.replace(config, source_factory=args.source_factory)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    try:
        scenarios = load_scenarios(args.scenario_file)
    except ScenarioError as e:
        logger.error(f"[DRIVER] {e}")
        return EXIT_SCENARIO_ERROR

    if args.only:
        known = {s.name for s in scenarios}
        unknown = [name for name in args.only if name not in known]
        if unknown:
            logger.error(f"[DRIVER] Unknown scenario(s): {', '.join(unknown)}")
            return EXIT_SCENARIO_ERROR
        scenarios = [s for s in scenarios if s.name in args.only]

    mode = ComparisonMode.UPDATE if args.command == "update" else ComparisonMode.ASSERT
    try:
        driver = PlaybackDriver(config)
    except ValueError as e:
        logger.error(f"[DRIVER] {e}")
        return EXIT_SCENARIO_ERROR

    failures = 0
    for scenario in scenarios:
        try:
            driver.verify(scenario, mode)
        except (AssertionError, HarnessError) as e:
            failures += 1
            logger.error(f"[DRIVER] {scenario.name}: FAILED\n{e}")
            continue
        logger.info(f"[DRIVER] {scenario.name}: {'UPDATED' if mode is ComparisonMode.UPDATE else 'OK'}")

    logger.info(f"[DRIVER] {len(scenarios) - failures}/{len(scenarios)} scenarios passed")
    return EXIT_FAILED if failures else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
