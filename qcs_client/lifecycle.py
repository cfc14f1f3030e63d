"""Polling of remote jobs until they reach a terminal state."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from . import constants
from .exceptions import RemoteCancellationError, RemoteExecutionError
from .types import JobHandle, JobInfo, JobStatus

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Remote job errored. If the error persists, please contact support."

# states reachable from each state; terminal states have no successor
TRANSITIONS = {
    JobStatus.NEW: frozenset(
        {JobStatus.NEW, JobStatus.RUNNING, JobStatus.DONE, JobStatus.ERROR, JobStatus.CANCELED}
    ),
    JobStatus.RUNNING: frozenset(
        {JobStatus.RUNNING, JobStatus.DONE, JobStatus.ERROR, JobStatus.CANCELED}
    ),
    JobStatus.DONE: frozenset(),
    JobStatus.ERROR: frozenset(),
    JobStatus.CANCELED: frozenset(),
}


def raise_for_status(info: JobInfo) -> JobInfo:
    """Turn a terminal ERROR or CANCELED status into the matching exception.

    Returns:
        ``info`` unchanged when the job is DONE

    Raises:
        RemoteExecutionError: If the job errored
        RemoteCancellationError: If the job was canceled
        ValueError: If the job is not in a terminal state
    """
    if info.status == JobStatus.DONE:
        return info
    if info.status == JobStatus.ERROR:
        message = info.error_message or GENERIC_ERROR_MESSAGE
        raise RemoteExecutionError(info.job_id, message)
    if info.status == JobStatus.CANCELED:
        raise RemoteCancellationError(info.job_id)
    raise ValueError(f"Job {info.job_id} is not finished ({info.status.value})")


class _PollState:
    """Bookkeeping shared by the sync and async lifecycles."""

    def __init__(self, handle: JobHandle):
        self.handle = handle
        self.last: Optional[JobStatus] = None
        self.polls = 0

    def observe(self, info: JobInfo) -> bool:
        """Record a status report; return True once it is terminal."""
        self.polls += 1
        if self.last is None:
            logger.debug("Job %s starts as %s", self.handle.job_id, info.status.value)
        elif info.status != self.last:
            if info.status not in TRANSITIONS[self.last]:
                logger.warning(
                    "Job %s went from %s to %s",
                    self.handle.job_id,
                    self.last.value,
                    info.status.value,
                )
            else:
                logger.debug(
                    "Job %s: %s -> %s",
                    self.handle.job_id,
                    self.last.value,
                    info.status.value,
                )
        self.last = info.status

        if info.is_terminal:
            logger.info(
                "Job %s finished as %s after %d status checks",
                self.handle.job_id,
                info.status.value,
                self.polls,
            )
            return True
        return False


class JobLifecycle:
    """Blocking poller for a :class:`~qcs_client.channel.SubmissionChannel`.

    Args:
        channel: Channel used for status checks
        interval: Seconds to wait between two status checks (default: 1.0)
        progress_callback: Optional callable receiving every JobInfo
    """

    def __init__(
        self,
        channel,
        interval: float = constants.DEFAULT_POLL_INTERVAL,
        progress_callback: Optional[Callable[[JobInfo], None]] = None,
    ):
        self.channel = channel
        self.interval = interval
        self.progress_callback = progress_callback

    def wait(self, handle: JobHandle) -> JobInfo:
        """Poll until the job reaches DONE, ERROR or CANCELED.

        Returns:
            The terminal JobInfo
        """
        state = _PollState(handle)
        while True:
            info = self.channel.status(handle)
            if self.progress_callback:
                self.progress_callback(info)
            if state.observe(info):
                return info
            time.sleep(self.interval)

    def wait_until_done(self, handle: JobHandle) -> JobInfo:
        """Like :meth:`wait`, raising unless the job finished as DONE."""
        return raise_for_status(self.wait(handle))


class AsyncJobLifecycle:
    """Cooperative poller for an :class:`~qcs_client.channel.AsyncSubmissionChannel`.

    Waiting uses ``asyncio.sleep`` so other jobs can be polled from the same
    event loop in the meantime.
    """

    def __init__(
        self,
        channel,
        interval: float = constants.DEFAULT_POLL_INTERVAL,
        progress_callback: Optional[Callable[[JobInfo], None]] = None,
    ):
        self.channel = channel
        self.interval = interval
        self.progress_callback = progress_callback

    async def wait(self, handle: JobHandle) -> JobInfo:
        state = _PollState(handle)
        while True:
            info = await self.channel.status(handle)
            if self.progress_callback:
                self.progress_callback(info)
            if state.observe(info):
                return info
            await asyncio.sleep(self.interval)

    async def wait_until_done(self, handle: JobHandle) -> JobInfo:
        return raise_for_status(await self.wait(handle))
