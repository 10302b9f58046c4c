"""Forward host termination signals into a running launch as cancellation."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGTERM,)


class CancellationToken:
    """One-shot cancellation flag that a wait can race against."""

    def __init__(self):
        self._event = asyncio.Event()
        self._callbacks: List[Callable[[], None]] = []
        self.signum: Optional[int] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def cancel(self, signum: Optional[int] = None) -> bool:
        """Fire the token. Returns False if it had already fired."""
        if self._event.is_set():
            return False
        self.signum = signum
        self._event.set()
        for callback in self._callbacks:
            callback()
        return True

    async def wait(self) -> None:
        await self._event.wait()


class SignalBridge:
    """Cancels ``token`` when one of ``signals`` reaches this process.

    Listeners are removed on ``dispose()``, on leaving the ``with`` block, or
    as soon as the handle's child terminates, whichever happens first.
    """

    def __init__(self, handle, token: CancellationToken, signals: Iterable[int] = DEFAULT_SIGNALS):
        self._handle = handle
        self._token = token
        self._loop = asyncio.get_running_loop()
        self._loop_signals: List[Tuple[int, object]] = []
        self._raw_signals: List[Tuple[int, object]] = []
        self.disposed = False

        if handle.done():
            self.disposed = True
            return

        for signum in signals:
            self._install(signum)
        handle.add_done_callback(lambda _handle: self.dispose())

    def _install(self, signum: int) -> None:
        try:
            previous = signal.getsignal(signum)
            self._loop.add_signal_handler(signum, self.handle_signal, signum)
            self._loop_signals.append((signum, previous))
            return
        except NotImplementedError:
            pass
        except (RuntimeError, ValueError) as exc:
            logger.debug("Cannot bridge signal %s: %s", signum, exc)
            return

        # Loops without add_signal_handler (Windows) get a plain handler.
        try:
            previous = signal.signal(signum, self._on_raw_signal)
        except (OSError, ValueError) as exc:
            logger.debug("Cannot bridge signal %s: %s", signum, exc)
            return
        self._raw_signals.append((signum, previous))

    def _on_raw_signal(self, signum, frame) -> None:
        self._loop.call_soon_threadsafe(self.handle_signal, signum)

    def handle_signal(self, signum: int) -> None:
        if self.disposed or self._handle.done():
            logger.debug("Ignoring signal %s, child already terminated", signum)
            return
        if self._token.cancel(signum):
            logger.info("Received signal %s, aborting wait on %s", signum, self._handle.command)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        for signum, previous in self._loop_signals:
            self._loop.remove_signal_handler(signum)
            # remove_signal_handler leaves SIG_DFL behind; put the host handler back
            if previous is not None:
                signal.signal(signum, previous)
        for signum, previous in self._raw_signals:
            signal.signal(signum, previous)
        self._loop_signals.clear()
        self._raw_signals.clear()

    def __enter__(self) -> "SignalBridge":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


def bridge(handle, token: CancellationToken, signals: Iterable[int] = DEFAULT_SIGNALS) -> SignalBridge:
    return SignalBridge(handle, token, signals)
