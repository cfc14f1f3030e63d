"""QCS Client Library.

This package provides a Python client for the QCS remote quantum circuit
simulation service: circuits are validated and staged locally, submitted as
a request bundle, polled until the job finishes, and the result bundle is
decoded into typed results.

Supports both synchronous and asynchronous APIs:
- QCSClient: Synchronous blocking client
- AsyncQCSClient: Async/await client, polling cooperatively
"""

from ._version import __version__
from .async_client import AsyncQCSClient
from .channel import AsyncHttpChannel, AsyncSubmissionChannel, HttpChannel, SubmissionChannel
from .client import QCSClient
from .codec import CircuitCodec, ProtoCircuitCodec, ProtoResultCodec, ResultCodec
from .config import ClientConfig
from .exceptions import (
    QCSError,
    RemoteCancellationError,
    RemoteExecutionError,
    ResultIntegrityError,
    TransportError,
    ValidationError,
)
from .types import (
    Algorithm,
    CircuitFile,
    CircuitType,
    ExecutionParameters,
    InMemoryCircuit,
    JobHandle,
    JobInfo,
    JobStatus,
    RemoteError,
    SimulationResult,
    ValidatedParameters,
)

__all__ = [
    "__version__",
    "QCSClient",
    "AsyncQCSClient",
    "ClientConfig",
    "SubmissionChannel",
    "AsyncSubmissionChannel",
    "HttpChannel",
    "AsyncHttpChannel",
    "CircuitCodec",
    "ResultCodec",
    "ProtoCircuitCodec",
    "ProtoResultCodec",
    "Algorithm",
    "CircuitFile",
    "CircuitType",
    "ExecutionParameters",
    "InMemoryCircuit",
    "JobHandle",
    "JobInfo",
    "JobStatus",
    "RemoteError",
    "SimulationResult",
    "ValidatedParameters",
    "QCSError",
    "ValidationError",
    "TransportError",
    "RemoteExecutionError",
    "RemoteCancellationError",
    "ResultIntegrityError",
]
