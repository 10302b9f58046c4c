"""Turn a launch request into the exact cargo invocation.

Cargo always runs in the launcher's own directory, but the native binary
has to work on the files of whoever invoked us, so the caller's directory
is forwarded after ``--`` where cargo hands it to the binary untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union

SEPARATOR = "--"
RELEASE_FLAG = "--release"
FEATURES_FLAG = "--features"


class Mode(str, Enum):
    BUILD = "build"
    RUN = "run"

    @classmethod
    def parse(cls, value: Union["Mode", str]) -> Union["Mode", str]:
        """Return the matching member, or the raw value for unknown subcommands."""
        try:
            return cls(value)
        except ValueError:
            return value


@dataclass(frozen=True)
class LaunchRequest:
    working_dir: str
    caller_dir: str
    mode: Union[Mode, str] = Mode.RUN
    verbosity: int = 0
    toolchain: str = "cargo"
    features: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.verbosity < 0:
            raise ValueError(f"verbosity must be >= 0, got {self.verbosity}")
        object.__setattr__(self, "mode", Mode.parse(self.mode))
        object.__setattr__(self, "working_dir", str(self.working_dir))
        object.__setattr__(self, "caller_dir", str(self.caller_dir))
        object.__setattr__(self, "features", tuple(self.features))

    @property
    def subcommand(self) -> str:
        return self.mode.value if isinstance(self.mode, Mode) else str(self.mode)

    @property
    def announces_compile(self) -> bool:
        return self.mode is Mode.BUILD


@dataclass(frozen=True)
class ToolchainCommand:
    executable: str
    args: List[str] = field(default_factory=list)
    cwd: str = "."

    @property
    def argv(self) -> List[str]:
        return [self.executable, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


def plan(request: LaunchRequest) -> ToolchainCommand:
    """Compute the toolchain command for ``request``. Performs no I/O."""
    args = [request.subcommand, RELEASE_FLAG]
    if request.features:
        # one comma-separated value, so no feature name is read as a positional
        args += [FEATURES_FLAG, ",".join(request.features)]
    args += [request.working_dir, SEPARATOR, request.caller_dir]
    return ToolchainCommand(executable=request.toolchain, args=args, cwd=request.working_dir)
