"""Spawn the toolchain as a child process and follow it until it exits."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .cancellation import CancellationToken
from .errors import LaunchAborted, SpawnFailed, StreamError
from .planner import ToolchainCommand

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

ChunkListener = Callable[[bytes], None]


@dataclass(frozen=True)
class ChildExited:
    code: Optional[int]
    signal: Optional[int] = None

    @classmethod
    def from_returncode(cls, returncode: int) -> "ChildExited":
        # asyncio reports death by signal N as -N
        if returncode < 0:
            return cls(code=None, signal=-returncode)
        return cls(code=returncode, signal=None)

    @property
    def success(self) -> bool:
        return self.code == 0

    def exit_status(self) -> int:
        if self.signal is not None:
            return 128 + self.signal
        return self.code


class ChildProcessHandle:
    """Live view of one spawned child.

    Created by :func:`launch`. Listeners registered with ``on_stdout`` and
    ``on_stderr`` before control returns to the event loop see every chunk,
    followed by an empty chunk once the stream reaches EOF.
    """

    def __init__(self, command: ToolchainCommand):
        self.command = command
        self.process: Optional[asyncio.subprocess.Process] = None
        self._stdout_listeners: List[ChunkListener] = []
        self._stderr_listeners: List[ChunkListener] = []
        loop = asyncio.get_running_loop()
        self._outcome: asyncio.Future = loop.create_future()
        self._task = loop.create_task(self._run())

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    def on_stdout(self, listener: ChunkListener) -> None:
        self._stdout_listeners.append(listener)

    def on_stderr(self, listener: ChunkListener) -> None:
        self._stderr_listeners.append(listener)

    def add_done_callback(self, callback: Callable[["ChildProcessHandle"], None]) -> None:
        self._outcome.add_done_callback(lambda _future: callback(self))

    def done(self) -> bool:
        return self._outcome.done()

    def request_termination(self) -> None:
        """Send SIGTERM to the child if it is still running."""
        if self.process is None or self.process.returncode is not None:
            return
        try:
            self.process.terminate()
        except ProcessLookupError:
            pass

    async def wait(self, token: Optional[CancellationToken] = None) -> ChildExited:
        """Wait for the child to exit.

        Raises SpawnFailed if the child never started, and LaunchAborted if
        ``token`` fires first. Aborting only stops the wait; the child is
        left running.
        """
        if token is None:
            return await asyncio.shield(self._outcome)

        cancelled = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {self._outcome, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()

        if self._outcome in done:
            return self._outcome.result()
        raise LaunchAborted(token.signum)

    async def _run(self) -> None:
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.command.argv,
                cwd=self.command.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            # ValueError covers arguments the OS cannot take, e.g. an embedded NUL
            logger.debug("Failed to spawn %s: %s", self.command, exc)
            self._outcome.set_exception(SpawnFailed(self.command.argv, exc))
            return
        except asyncio.CancelledError:
            self._outcome.cancel()
            raise

        logger.debug("Spawned %s (pid %s) in %s", self.command, self.process.pid, self.command.cwd)
        pumps = [
            asyncio.ensure_future(self._pump("stdout", self.process.stdout, self._stdout_listeners)),
            asyncio.ensure_future(self._pump("stderr", self.process.stderr, self._stderr_listeners)),
        ]
        try:
            returncode = await self.process.wait()
            await asyncio.gather(*pumps)
        except asyncio.CancelledError:
            for pump in pumps:
                pump.cancel()
            if not self._outcome.done():
                self._outcome.cancel()
            raise
        except Exception as exc:
            for pump in pumps:
                pump.cancel()
            logger.error("Lost track of %s: %s", self.command, exc)
            if not self._outcome.done():
                self._outcome.set_exception(exc)
            return

        outcome = ChildExited.from_returncode(returncode)
        logger.debug("%s exited: %s", self.command, outcome)
        self._outcome.set_result(outcome)

    async def _pump(self, name: str, stream: asyncio.StreamReader, listeners: List[ChunkListener]) -> None:
        while True:
            try:
                chunk = await stream.read(CHUNK_SIZE)
            except OSError as exc:
                logger.warning("%s", StreamError(name, exc))
                chunk = b""
            # listeners get one final empty chunk at end of stream
            for listener in list(listeners):
                try:
                    listener(chunk)
                except StreamError as exc:
                    logger.warning("%s; no longer relaying it", exc)
                    listeners.remove(listener)
                except Exception as exc:
                    logger.warning("%s; no longer relaying it", StreamError(name, exc))
                    listeners.remove(listener)
            if not chunk:
                return


def launch(command: ToolchainCommand) -> ChildProcessHandle:
    """Start ``command`` without blocking. Must be called inside a running loop."""
    return ChildProcessHandle(command)
