"""Launcher for the accord native binary (GraphQL to TypeScript generator)."""

from .errors import LaunchAborted, LauncherError, SpawnFailed, StreamError, ToolchainMissing
from .launcher import ChildExited, ChildProcessHandle, launch
from .planner import LaunchRequest, Mode, ToolchainCommand, plan
from .session import LaunchSession, LaunchState, run_launch
from .toolchain import probe

__version__ = "0.1.0"

__all__ = [
    "ChildExited",
    "ChildProcessHandle",
    "LaunchAborted",
    "LaunchRequest",
    "LaunchSession",
    "LaunchState",
    "LauncherError",
    "Mode",
    "SpawnFailed",
    "StreamError",
    "ToolchainCommand",
    "ToolchainMissing",
    "launch",
    "plan",
    "probe",
    "run_launch",
]
