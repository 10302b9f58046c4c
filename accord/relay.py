"""Copy the child's output onto our own stdout/stderr, gated by verbosity."""

from __future__ import annotations

import codecs
import sys
from typing import Optional, TextIO

from .errors import StreamError

STDERR_VERBOSITY = 1
STDOUT_VERBOSITY = 2


class StreamRelay:
    """Relays stderr at verbosity >= 1 and stdout as well at >= 2.

    Each chunk is decoded and written as-is, then flushed; nothing is
    buffered or reformatted. A multi-byte character split across two chunks
    is held back until its remaining bytes arrive; one left incomplete at
    end of stream is written as U+FFFD.
    """

    def __init__(
        self,
        verbosity: int,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        encoding: str = "utf-8",
    ):
        self.verbosity = verbosity
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.encoding = encoding

    @property
    def relays_stderr(self) -> bool:
        return self.verbosity >= STDERR_VERBOSITY

    @property
    def relays_stdout(self) -> bool:
        return self.verbosity >= STDOUT_VERBOSITY

    def attach(self, handle) -> "StreamRelay":
        if self.relays_stderr:
            handle.on_stderr(self._writer("stderr", self.stderr))
        if self.relays_stdout:
            handle.on_stdout(self._writer("stdout", self.stdout))
        return self

    def _writer(self, name: str, target: TextIO):
        decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")

        def write(chunk: bytes) -> None:
            # an empty chunk marks EOF and flushes any incomplete sequence
            text = decoder.decode(chunk, final=not chunk)
            if not text:
                return
            try:
                target.write(text)
                target.flush()
            except (OSError, ValueError) as exc:
                raise StreamError(name, exc) from exc

        return write


def attach(handle, verbosity: int, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> StreamRelay:
    return StreamRelay(verbosity, stdout=stdout, stderr=stderr).attach(handle)
