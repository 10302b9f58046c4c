"""Locate cargo and check that it actually runs."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from .errors import ToolchainMissing

logger = logging.getLogger(__name__)

DEFAULT_TOOLCHAIN = "cargo"


def _cargo_binary_name() -> str:
    return "cargo.exe" if sys.platform == "win32" else "cargo"


def find_cargo() -> str:
    """Find cargo on PATH, then in the rustup default location."""
    found = shutil.which(DEFAULT_TOOLCHAIN)
    if found:
        return found

    cargo_home = os.environ.get("CARGO_HOME")
    base = Path(cargo_home) if cargo_home else Path.home() / ".cargo"
    candidate = base / "bin" / _cargo_binary_name()
    if candidate.exists():
        logger.debug("Using cargo from conventional location %s", candidate)
        return str(candidate)

    return DEFAULT_TOOLCHAIN


def get_toolchain() -> str:
    """Get the cargo executable from ACCORD_CARGO, falling back to discovery."""
    return os.environ.get("ACCORD_CARGO") or find_cargo()


def probe(executable: str = DEFAULT_TOOLCHAIN, timeout: Optional[float] = 30.0) -> None:
    """Run ``<executable> -h`` and raise ToolchainMissing unless it succeeds.

    Nothing is retried or cached: a missing toolchain is an environment
    problem that the caller reports and exits on.
    """
    cmd = [executable, "-h"]
    logger.debug("Probing toolchain: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise ToolchainMissing(executable, str(exc)) from exc

    if result.returncode != 0:
        logger.debug("Toolchain probe exited with %s: %s", result.returncode, result.stderr)
        raise ToolchainMissing(executable)
