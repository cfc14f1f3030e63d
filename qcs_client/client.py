"""QCS client implementation."""

from __future__ import annotations

import logging
import tempfile
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from . import constants
from .channel import HttpChannel
from .codec import CircuitCodec, ProtoCircuitCodec, ProtoResultCodec, ResultCodec
from .config import ClientConfig
from .formats import inspect
from .lifecycle import JobLifecycle
from .request import RequestBuilder
from .results import ResultDecoder, first_input, first_result
from .types import (
    CircuitInfo,
    ExecutionParameters,
    JobHandle,
    JobInfo,
    ResultEntry,
    ValidatedParameters,
    as_source,
)
from .validation import check_timelimit, validate

logger = logging.getLogger(__name__)

JobRef = Union[JobHandle, str]


def as_handle(job: JobRef) -> JobHandle:
    """Accept a handle or a bare job id."""
    if isinstance(job, JobHandle):
        return job
    return JobHandle.from_id(job)


def as_circuit_list(circuits) -> List[Any]:
    if isinstance(circuits, (list, tuple)):
        return list(circuits)
    return [circuits]


def prepare_request(
    circuits,
    params: ExecutionParameters,
    codec: CircuitCodec,
) -> Tuple[List[CircuitInfo], ValidatedParameters]:
    """Inspect circuit sources and validate parameters, without any I/O
    other than reading the circuit files.

    The account time limit ceiling is not checked here; it may need the
    service, so callers check it once every local rule has passed.
    """
    infos = [inspect(as_source(c), codec) for c in as_circuit_list(circuits)]
    return infos, validate(params, infos, max_timelimit=None)


class QCSClient:
    """Client for the QCS remote circuit simulation service.

    Args:
        config: Connection and polling settings (default: ``ClientConfig()``)
        channel: Transport to use instead of an :class:`HttpChannel` built
            from ``config``
        circuit_codec: Codec for in-memory circuits (default: protobuf)
        result_codec: Codec for result files (default: protobuf)

    Example:
        >>> client = QCSClient(ClientConfig.from_env())
        >>> job = client.execute("bell.qasm", algorithm="statevector", nsamples=1000)
        >>> result = client.get_result(job)
        >>> print(result.counts)
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
            channel = HttpChannel(
                token=self.config.token,
                base_url=self.config.url,
                timeout=self.config.timeout,
            )
        self.channel = channel
        self.circuit_codec = circuit_codec or ProtoCircuitCodec()
        self.result_codec = result_codec or ProtoResultCodec()
        self.builder = RequestBuilder(self.circuit_codec)
        self.decoder = ResultDecoder(self.channel, self.result_codec, self.circuit_codec)
        self._max_timelimit = self.config.max_timelimit

    def close(self):
        """Close the channel if the client created it."""
        if self._owns_channel:
            self.channel.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def max_timelimit(self) -> int:
        """Maximum time limit in minutes, asked to the service once."""
        if self._max_timelimit is None:
            limit = self.channel.max_time_limit()
            self._max_timelimit = limit or constants.DEFAULT_MAX_TIME_LIMIT
        return self._max_timelimit

    def execute(
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
        """Submit one or more circuits for remote simulation.

        Args:
            circuits: A circuit object, a path to a QASM 2.0 or Stim file, a
                :class:`~qcs_client.types.CircuitFile`, or a list of these
            label: Name of the job shown by the service
            algorithm: "auto", "statevector" or "mps" (default: "auto",
                not allowed with more than one circuit)
            nsamples: Number of samples (default: 1000, maximum: 2^16)
            bitstrings: Bitstrings whose amplitudes are returned
            timelimit: Minutes before the computation is stopped (default: 5)
            bonddim: MPS bond dimension (default: 256, maximum: 4096)
            entdim: MPS entangling dimension (default: 16, range: [4, 64])
            seed: Seed of the simulation (default: random)
            force: Allow an entangling dimension below the minimum
            **extra: Additional parameters forwarded to the service

        Returns:
            JobHandle of the submitted job

        Raises:
            ValidationError: If circuits or parameters are invalid; nothing
                is submitted
            TransportError: If the submission fails
        """
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
        check_timelimit(validated.timelimit, self.max_timelimit())

        with self.builder.build(infos, validated) as bundle:
            handle = self.channel.submit(
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

    def status(self, job: JobRef) -> JobInfo:
        """Get the current status of a job."""
        return self.channel.status(as_handle(job))

    def cancel(self, job: JobRef) -> bool:
        """Ask the service to cancel a job."""
        handle = as_handle(job)
        logger.info("Canceling job %s", handle.job_id)
        return self.channel.cancel(handle)

    def wait(
        self,
        job: JobRef,
        interval: Optional[float] = None,
        progress_callback: Optional[Callable[[JobInfo], None]] = None,
    ) -> JobInfo:
        """Block until a job reaches a terminal state and return its status."""
        return self._lifecycle(interval, progress_callback).wait(as_handle(job))

    def get_results(
        self,
        job: JobRef,
        interval: Optional[float] = None,
        dest_dir: Optional[str] = None,
    ) -> List[ResultEntry]:
        """Block until a job is finished and return its results.

        Args:
            job: JobHandle or job id
            interval: Seconds between status checks (default: from config)
            dest_dir: Keep the downloaded files in this directory instead of
                a temporary one

        Returns:
            One SimulationResult or RemoteError per submitted circuit

        Raises:
            RemoteExecutionError: If the job errored
            RemoteCancellationError: If the job was canceled
            ResultIntegrityError: If the result bundle is incomplete
        """
        handle = as_handle(job)
        self._lifecycle(interval).wait_until_done(handle)

        if dest_dir is not None:
            return self.decoder.decode(handle, dest_dir)
        with tempfile.TemporaryDirectory(prefix="qcs_res_") as tmpdir:
            return self.decoder.decode(handle, tmpdir)

    def get_result(
        self, job: JobRef, interval: Optional[float] = None
    ) -> ResultEntry:
        """Like :meth:`get_results` but return only the first result."""
        return first_result(self.get_results(job, interval=interval))

    def get_inputs(self, job: JobRef, dest_dir: Optional[str] = None):
        """Return the circuits and parameters submitted with a job.

        Text circuits are returned as CircuitFile objects pointing to the
        downloaded copies, which are kept in ``dest_dir`` (default: a new
        temporary directory).
        """
        if dest_dir is None:
            dest_dir = tempfile.mkdtemp(prefix="qcs_in_")
        return self.decoder.decode_inputs(as_handle(job), dest_dir)

    def get_input(self, job: JobRef, dest_dir: Optional[str] = None):
        """Like :meth:`get_inputs` but return only the first circuit."""
        return first_input(*self.get_inputs(job, dest_dir=dest_dir))

    def _lifecycle(self, interval=None, progress_callback=None) -> JobLifecycle:
        if interval is None:
            interval = self.config.poll_interval
        return JobLifecycle(self.channel, interval, progress_callback)
