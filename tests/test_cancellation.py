import asyncio
import os
import signal
import sys

import pytest

from accord.cancellation import CancellationToken, bridge
from accord.errors import LaunchAborted
from accord.launcher import launch
from accord.planner import ToolchainCommand

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")


def _python(code, cwd):
    return ToolchainCommand(executable=sys.executable, args=["-c", code], cwd=str(cwd))


class TestCancellationToken:
    def test_cancel_once(self):
        async def scenario():
            token = CancellationToken()
            calls = []
            token.add_callback(lambda: calls.append(token.signum))
            assert token.cancel(15)
            assert not token.cancel(2)
            await token.wait()
            return token, calls

        token, calls = asyncio.run(scenario())
        assert token.cancelled
        assert token.signum == 15
        assert calls == [15]


@posix_only
def test_signal_before_exit_aborts_wait_once(tmp_path):
    async def scenario():
        handle = launch(_python("import time; time.sleep(30)", tmp_path))
        token = CancellationToken()
        aborts = []
        token.add_callback(lambda: aborts.append(1))
        with bridge(handle, token, signals=(signal.SIGUSR1,)) as sig_bridge:
            waiter = asyncio.ensure_future(handle.wait(token))
            while handle.pid is None:
                await asyncio.sleep(0.01)
            os.kill(os.getpid(), signal.SIGUSR1)
            os.kill(os.getpid(), signal.SIGUSR1)
            with pytest.raises(LaunchAborted) as exc_info:
                await waiter
            # the child is left running: only the wait was abandoned
            assert not handle.done()
        assert sig_bridge.disposed
        handle.request_termination()
        outcome = await handle.wait()
        return aborts, exc_info.value, outcome

    aborts, error, outcome = asyncio.run(scenario())
    assert aborts == [1]
    assert error.signum == signal.SIGUSR1
    assert outcome.signal == signal.SIGTERM


def test_signal_after_exit_is_noop(tmp_path):
    async def scenario():
        handle = launch(_python("pass", tmp_path))
        token = CancellationToken()
        sig_bridge = bridge(handle, token, signals=(signal.SIGTERM,))
        outcome = await handle.wait(token)
        await asyncio.sleep(0)
        assert sig_bridge.disposed
        sig_bridge.handle_signal(signal.SIGTERM)
        sig_bridge.dispose()
        return token, outcome

    token, outcome = asyncio.run(scenario())
    assert outcome.success
    assert not token.cancelled


def test_bridge_on_terminated_handle_installs_nothing(tmp_path):
    async def scenario():
        handle = launch(_python("pass", tmp_path))
        await handle.wait()
        token = CancellationToken()
        sig_bridge = bridge(handle, token)
        sig_bridge.handle_signal(signal.SIGTERM)
        return sig_bridge, token

    sig_bridge, token = asyncio.run(scenario())
    assert sig_bridge.disposed
    assert not token.cancelled


def test_wait_prefers_outcome_when_already_exited(tmp_path):
    async def scenario():
        handle = launch(_python("import sys; sys.exit(2)", tmp_path))
        await handle.wait()
        token = CancellationToken()
        token.cancel(15)
        return await handle.wait(token)

    assert asyncio.run(scenario()).code == 2


@posix_only
def test_host_handler_restored_after_bridge(tmp_path):
    def host_handler(signum, frame):
        pass

    async def scenario():
        handle = launch(_python("pass", tmp_path))
        with bridge(handle, CancellationToken(), signals=(signal.SIGTERM,)):
            await handle.wait()
        return signal.getsignal(signal.SIGTERM)

    original = signal.signal(signal.SIGTERM, host_handler)
    try:
        current = asyncio.run(scenario())
    finally:
        signal.signal(signal.SIGTERM, original)
    assert current is host_handler
