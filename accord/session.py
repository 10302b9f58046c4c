"""One launch from start to finish: probe, plan, spawn, relay, wait."""

from __future__ import annotations

import asyncio
import enum
import logging
import sys
from typing import Iterable, Optional, TextIO

from .cancellation import DEFAULT_SIGNALS, CancellationToken, bridge
from .errors import LaunchAborted
from .launcher import ChildExited, ChildProcessHandle, launch
from .planner import LaunchRequest, plan
from .relay import attach
from .toolchain import probe

logger = logging.getLogger(__name__)

COMPILE_NOTICE = "Compiling rust dependency. This may take a moment..."


class LaunchState(enum.Enum):
    IDLE = "idle"
    PROBING = "probing"
    PLANNING = "planning"
    SPAWNED = "spawned"
    STREAMING = "streaming"
    TERMINATED = "terminated"


_ORDER = [
    LaunchState.IDLE,
    LaunchState.PROBING,
    LaunchState.PLANNING,
    LaunchState.SPAWNED,
    LaunchState.STREAMING,
    LaunchState.TERMINATED,
]


class LaunchSession:
    """Drives a single launch. A session can only be run once."""

    def __init__(
        self,
        request: LaunchRequest,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        signals: Iterable[int] = DEFAULT_SIGNALS,
        terminate_on_abort: bool = False,
    ):
        self.request = request
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.signals = tuple(signals)
        self.terminate_on_abort = terminate_on_abort
        self.state = LaunchState.IDLE
        self.handle: Optional[ChildProcessHandle] = None
        self.outcome: Optional[ChildExited] = None

    def _advance(self, state: LaunchState) -> None:
        if self.state is LaunchState.TERMINATED:
            raise RuntimeError(f"launch already terminated, cannot move to {state.value}")
        if state is not LaunchState.TERMINATED and _ORDER.index(state) <= _ORDER.index(self.state):
            raise RuntimeError(f"invalid launch transition {self.state.value} -> {state.value}")
        logger.debug("Launch state %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self) -> ChildExited:
        """Run the launch and return how the child exited.

        ToolchainMissing, SpawnFailed and LaunchAborted propagate to the
        caller; a non-zero exit of the child is returned, not raised.
        """
        if self.state is not LaunchState.IDLE:
            raise RuntimeError("a LaunchSession can only be run once")
        try:
            self._advance(LaunchState.PROBING)
            # probe blocks on subprocess.run; keep the loop free while it does
            await asyncio.to_thread(probe, self.request.toolchain)

            self._advance(LaunchState.PLANNING)
            command = plan(self.request)
            if self.request.announces_compile:
                print(COMPILE_NOTICE, file=self.stdout, flush=True)

            self._advance(LaunchState.SPAWNED)
            self.handle = launch(command)
            attach(self.handle, self.request.verbosity, stdout=self.stdout, stderr=self.stderr)

            token = CancellationToken()
            with bridge(self.handle, token, self.signals):
                self._advance(LaunchState.STREAMING)
                try:
                    self.outcome = await self.handle.wait(token)
                except LaunchAborted:
                    if self.terminate_on_abort:
                        self.handle.request_termination()
                    raise
            return self.outcome
        finally:
            self._advance(LaunchState.TERMINATED)


async def run_launch(request: LaunchRequest, **kwargs) -> ChildExited:
    return await LaunchSession(request, **kwargs).run()
