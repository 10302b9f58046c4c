"""Exception types raised by the accord launcher."""

from __future__ import annotations

from typing import Optional

RUST_INSTALL_URL = "https://www.rust-lang.org/"


class LauncherError(Exception):
    """Base class for launcher failures."""


class ToolchainMissing(LauncherError):
    """The cargo toolchain could not be invoked."""

    def __init__(self, executable: str, detail: Optional[str] = None):
        self.executable = executable
        self.detail = detail
        message = (
            f"`{executable} -h` returned a non-zero exit status, which probably means "
            f"Rust isn't properly installed. This package requires Rust: {RUST_INSTALL_URL}"
        )
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class SpawnFailed(LauncherError):
    """The child process could not be started."""

    def __init__(self, argv, cause: Exception):
        self.argv = list(argv)
        self.cause = cause
        super().__init__(f"{self.argv[0]} returned an error: {cause}")


class StreamError(LauncherError):
    """Reading from or relaying one of the child's streams failed."""

    def __init__(self, stream: str, cause: BaseException):
        self.stream = stream
        self.cause = cause
        super().__init__(f"error on child {stream}: {cause}")


class LaunchAborted(LauncherError):
    """Waiting on the child was cancelled by a termination signal."""

    def __init__(self, signum: Optional[int] = None):
        self.signum = signum
        super().__init__(f"launch aborted (signal {signum})" if signum else "launch aborted")
