"""Async QCS client implementation."""

from __future__ import annotations

import logging
import tempfile
from typing import Callable, List, Optional, Sequence

from . import constants
from .channel import AsyncHttpChannel
from .client import JobRef, as_handle, prepare_request
from .codec import CircuitCodec, ProtoCircuitCodec, ProtoResultCodec, ResultCodec
from .config import ClientConfig
from .lifecycle import AsyncJobLifecycle
from .request import RequestBuilder
from .results import AsyncResultDecoder, first_input, first_result
from .types import ExecutionParameters, JobHandle, JobInfo, ResultEntry
from .validation import check_timelimit

logger = logging.getLogger(__name__)


class AsyncQCSClient:
    """Async client for the QCS service.

    Polling waits with ``asyncio.sleep``, so many jobs can be followed
    concurrently from one event loop.

    Example:
        >>> async with AsyncQCSClient(ClientConfig.from_env()) as client:
        ...     jobs = [await client.execute(c, algorithm="mps") for c in circuits]
        ...     results = await asyncio.gather(*(client.get_result(j) for j in jobs))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        channel=None,
        circuit_codec: Optional[CircuitCodec] = None,
        result_codec: Optional[ResultCodec] = None,
    ):
        self.config = config or ClientConfig()
        self._owns_channel = channel is None
        if channel is None:
            channel = AsyncHttpChannel(
                token=self.config.token,
                base_url=self.config.url,
                timeout=self.config.timeout,
            )
        self.channel = channel
        self.circuit_codec = circuit_codec or ProtoCircuitCodec()
        self.result_codec = result_codec or ProtoResultCodec()
        self.builder = RequestBuilder(self.circuit_codec)
        self.decoder = AsyncResultDecoder(self.channel, self.result_codec, self.circuit_codec)
        self._max_timelimit = self.config.max_timelimit

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the channel if the client created it."""
        if self._owns_channel:
            await self.channel.close()

    async def max_timelimit(self) -> int:
        """Maximum time limit in minutes, asked to the service once."""
        if self._max_timelimit is None:
            limit = await self.channel.max_time_limit()
            self._max_timelimit = limit or constants.DEFAULT_MAX_TIME_LIMIT
        return self._max_timelimit

    async def execute(
        self,
        circuits,
        *,
        label: Optional[str] = None,
        algorithm: str = constants.DEFAULT_ALGORITHM,
        nsamples: int = constants.DEFAULT_SAMPLES,
        bitstrings: Sequence[str] = (),
        timelimit: float = constants.DEFAULT_TIME_LIMIT,
        bonddim: Optional[int] = None,
        entdim: Optional[int] = None,
        seed: Optional[int] = None,
        force: bool = False,
        **extra,
    ) -> JobHandle:
        """Submit one or more circuits, see :meth:`QCSClient.execute`."""
        params = ExecutionParameters(
            algorithm=algorithm,
            samples=nsamples,
            bitstrings=tuple(bitstrings),
            timelimit=timelimit,
            bonddim=bonddim,
            entdim=entdim,
            seed=seed,
            label=label,
            force=force,
            extra=extra,
        )
        infos, validated = prepare_request(circuits, params, self.circuit_codec)
        check_timelimit(validated.timelimit, await self.max_timelimit())

        with self.builder.build(infos, validated) as bundle:
            handle = await self.channel.submit(
                bundle,
                validated.algorithm.value,
                validated.label,
                validated.timelimit,
            )

        logger.info(
            "Submitted job %s (%d circuits, algorithm %s)",
            handle.job_id,
            len(infos),
            validated.algorithm.value,
        )
        return handle

    async def status(self, job: JobRef) -> JobInfo:
        return await self.channel.status(as_handle(job))

    async def cancel(self, job: JobRef) -> bool:
        handle = as_handle(job)
        logger.info("Canceling job %s", handle.job_id)
        return await self.channel.cancel(handle)

    async def wait(
        self,
        job: JobRef,
        interval: Optional[float] = None,
        progress_callback: Optional[Callable[[JobInfo], None]] = None,
    ) -> JobInfo:
        return await self._lifecycle(interval, progress_callback).wait(as_handle(job))

    async def get_results(
        self,
        job: JobRef,
        interval: Optional[float] = None,
        dest_dir: Optional[str] = None,
    ) -> List[ResultEntry]:
        """Wait for a job and return its results, see :meth:`QCSClient.get_results`."""
        handle = as_handle(job)
        await self._lifecycle(interval).wait_until_done(handle)

        if dest_dir is not None:
            return await self.decoder.decode(handle, dest_dir)
        with tempfile.TemporaryDirectory(prefix="qcs_res_") as tmpdir:
            return await self.decoder.decode(handle, tmpdir)

    async def get_result(self, job: JobRef, interval: Optional[float] = None) -> ResultEntry:
        return first_result(await self.get_results(job, interval=interval))

    async def get_inputs(self, job: JobRef, dest_dir: Optional[str] = None):
        if dest_dir is None:
            dest_dir = tempfile.mkdtemp(prefix="qcs_in_")
        return await self.decoder.decode_inputs(as_handle(job), dest_dir)

    async def get_input(self, job: JobRef, dest_dir: Optional[str] = None):
        return first_input(*(await self.get_inputs(job, dest_dir=dest_dir)))

    def _lifecycle(self, interval=None, progress_callback=None) -> AsyncJobLifecycle:
        if interval is None:
            interval = self.config.poll_interval
        return AsyncJobLifecycle(self.channel, interval, progress_callback)
