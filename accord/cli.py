"""Command line entry point: build or run the native accord binary."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import LaunchAborted, SpawnFailed, ToolchainMissing
from .planner import LaunchRequest, Mode
from .session import run_launch
from .toolchain import get_toolchain

# The Cargo crate lives next to this file; cargo is always run from here.
LAUNCHER_DIR = Path(__file__).resolve().parent


def get_default_verbosity() -> int:
    """Get the default verbosity from ACCORD_VERBOSE, defaulting to 0."""
    value = os.environ.get("ACCORD_VERBOSE", "0")
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


def get_features() -> Tuple[str, ...]:
    """Get cargo features from ACCORD_FEATURES, comma or space separated."""
    value = os.environ.get("ACCORD_FEATURES", "")
    return tuple(name for name in re.split(r"[\s,]+", value) if name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accord",
        description="Build or run the accord native binary against the current directory.",
    )
    parser.add_argument(
        "mode",
        nargs="?",
        default=Mode.RUN.value,
        help="cargo subcommand: 'build' or 'run' (default). Other values are passed to cargo as-is.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="relay cargo's stderr (-v) and stdout too (-vv)",
    )
    parser.add_argument(
        "--verbosity",
        type=int,
        default=None,
        help="set the verbosity level directly",
    )
    return parser


def _configure_logging(verbosity: int) -> None:
    levels = {0: logging.WARNING, 1: logging.INFO}
    logging.basicConfig(
        level=levels.get(verbosity, logging.DEBUG),
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Run the launcher and exit with the child's status."""
    caller_dir = os.getcwd()
    args = build_parser().parse_args(argv)

    if args.verbosity is None and not args.verbose:
        verbosity = get_default_verbosity()
    else:
        verbosity = max(args.verbose, args.verbosity or 0)
    _configure_logging(verbosity)

    request = LaunchRequest(
        working_dir=str(LAUNCHER_DIR),
        caller_dir=caller_dir,
        mode=args.mode,
        verbosity=verbosity,
        toolchain=get_toolchain(),
        features=get_features(),
    )

    try:
        outcome = asyncio.run(run_launch(request))
    except ToolchainMissing as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    except SpawnFailed as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    except LaunchAborted as e:
        sys.exit(128 + (e.signum or 15))
    except KeyboardInterrupt:
        sys.exit(130)

    sys.exit(outcome.exit_status())


if __name__ == "__main__":
    main()
