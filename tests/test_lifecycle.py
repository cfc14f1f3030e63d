"""Tests for job polling."""

import asyncio
import logging

import pytest

from qcs_client import lifecycle
from qcs_client.exceptions import RemoteCancellationError, RemoteExecutionError
from qcs_client.lifecycle import (
    GENERIC_ERROR_MESSAGE,
    AsyncJobLifecycle,
    JobLifecycle,
    raise_for_status,
)
from qcs_client.types import JobHandle, JobInfo, JobStatus

from .conftest import FakeAsyncChannel, FakeChannel

NEW, RUNNING, DONE = JobStatus.NEW, JobStatus.RUNNING, JobStatus.DONE
HANDLE = JobHandle("job-1")


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(lifecycle.time, "sleep", calls.append)
    return calls


class TestWait:
    def test_polls_until_terminal(self, sleeps):
        channel = FakeChannel(statuses=[NEW, NEW, RUNNING, DONE])
        info = JobLifecycle(channel, interval=2.5).wait(HANDLE)

        assert info.status == DONE
        assert info.is_success
        assert channel.status_calls == 4
        assert sleeps == [2.5, 2.5, 2.5]

    def test_terminal_on_first_check(self, sleeps):
        channel = FakeChannel(statuses=[DONE])
        JobLifecycle(channel, interval=1.0).wait(HANDLE)
        assert channel.status_calls == 1
        assert sleeps == []

    def test_progress_callback(self, sleeps):
        seen = []
        channel = FakeChannel(statuses=[NEW, RUNNING, DONE])
        JobLifecycle(channel, interval=0, progress_callback=seen.append).wait(HANDLE)
        assert [i.status for i in seen] == [NEW, RUNNING, DONE]

    def test_wait_returns_error_status(self, sleeps):
        channel = FakeChannel(statuses=[RUNNING, (JobStatus.ERROR, "boom")])
        info = JobLifecycle(channel, interval=0).wait(HANDLE)
        assert info.status == JobStatus.ERROR
        assert info.is_terminal and not info.is_success

    def test_unexpected_transition_is_logged(self, sleeps, caplog):
        channel = FakeChannel(statuses=[RUNNING, NEW, DONE])
        with caplog.at_level(logging.WARNING, logger="qcs_client.lifecycle"):
            JobLifecycle(channel, interval=0).wait(HANDLE)
        assert "went from RUNNING to NEW" in caplog.text


class TestWaitUntilDone:
    def test_done(self, sleeps):
        channel = FakeChannel(statuses=[NEW, DONE])
        assert JobLifecycle(channel, interval=0).wait_until_done(HANDLE).status == DONE

    def test_error_with_message(self, sleeps):
        channel = FakeChannel(statuses=[RUNNING, (JobStatus.ERROR, "Out of memory")])
        with pytest.raises(RemoteExecutionError) as excinfo:
            JobLifecycle(channel, interval=0).wait_until_done(HANDLE)
        assert str(excinfo.value) == "Out of memory"
        assert excinfo.value.job_id == "job-1"

    def test_error_without_message(self, sleeps):
        channel = FakeChannel(statuses=[JobStatus.ERROR])
        with pytest.raises(RemoteExecutionError, match="contact support"):
            JobLifecycle(channel, interval=0).wait_until_done(HANDLE)

    def test_canceled(self, sleeps):
        channel = FakeChannel(statuses=[NEW, JobStatus.CANCELED])
        with pytest.raises(RemoteCancellationError, match="canceled") as excinfo:
            JobLifecycle(channel, interval=0).wait_until_done(HANDLE)
        assert not isinstance(excinfo.value, RemoteExecutionError)


class TestRaiseForStatus:
    def test_generic_message(self):
        info = JobInfo("job-1", JobStatus.ERROR, error_message="")
        with pytest.raises(RemoteExecutionError) as excinfo:
            raise_for_status(info)
        assert excinfo.value.message == GENERIC_ERROR_MESSAGE

    @pytest.mark.parametrize("status", [NEW, RUNNING])
    def test_not_terminal(self, status):
        with pytest.raises(ValueError, match="not finished"):
            raise_for_status(JobInfo("job-1", status))


class TestAsyncWait:
    @pytest.mark.asyncio
    async def test_polls_until_terminal(self):
        channel = FakeChannel(statuses=[NEW, RUNNING, DONE])
        info = await AsyncJobLifecycle(FakeAsyncChannel(channel), interval=0).wait(HANDLE)
        assert info.status == DONE
        assert channel.status_calls == 3

    @pytest.mark.asyncio
    async def test_error(self):
        channel = FakeChannel(statuses=[(JobStatus.ERROR, "bad circuit")])
        poller = AsyncJobLifecycle(FakeAsyncChannel(channel), interval=0)
        with pytest.raises(RemoteExecutionError, match="bad circuit"):
            await poller.wait_until_done(HANDLE)

    @pytest.mark.asyncio
    async def test_jobs_are_polled_concurrently(self):
        order = []

        class Recording(FakeAsyncChannel):
            async def status(self, handle):
                order.append(handle.job_id)
                return await super().status(handle)

        a = Recording(FakeChannel(statuses=[NEW, RUNNING, DONE]))
        b = Recording(FakeChannel(statuses=[NEW, RUNNING, DONE]))
        infos = await asyncio.gather(
            AsyncJobLifecycle(a, interval=0.01).wait(JobHandle("a")),
            AsyncJobLifecycle(b, interval=0.01).wait(JobHandle("b")),
        )

        assert [i.status for i in infos] == [DONE, DONE]
        assert order[:2] == ["a", "b"]
        assert sorted(order) == ["a"] * 3 + ["b"] * 3
