"""Type definitions for the QCS client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class Algorithm(str, Enum):
    """Simulation algorithm requested from the service."""
    AUTO = "auto"
    STATEVECTOR = "statevector"
    MPS = "mps"

    @property
    def uses_mps_dimensions(self) -> bool:
        """Whether bond and entangling dimensions apply to this algorithm."""
        return self in (Algorithm.AUTO, Algorithm.MPS)


class CircuitType(str, Enum):
    """Format of a staged circuit file."""
    PROTO = "proto"
    QASM = "qasm"
    STIM = "stim"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @classmethod
    def from_filename(cls, name: str) -> "CircuitType":
        """Recover the circuit type from a staged file name."""
        for ctype, ext in _EXTENSIONS.items():
            if name.endswith(ext):
                return ctype
        raise ValueError(f"Unsupported circuit file type for file: {name}")


_EXTENSIONS = {
    CircuitType.PROTO: ".pb",
    CircuitType.QASM: ".qasm",
    CircuitType.STIM: ".stim",
}


class JobStatus(str, Enum):
    """Remote job state."""
    NEW = "NEW"
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR, JobStatus.CANCELED)


@dataclass(frozen=True)
class InMemoryCircuit:
    """A circuit object held in memory, serialized through a circuit codec."""
    circuit: Any


@dataclass(frozen=True)
class CircuitFile:
    """A circuit stored in a QASM 2.0 or Stim text file.

    ``dialect`` is optional; when given it must agree with what is detected
    from the file contents. ``includes`` lists QASM include files that are
    uploaded next to the circuit instead of the ones cached by the service.
    """
    path: str
    dialect: Optional[str] = None
    includes: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "path", os.fspath(self.path))
        object.__setattr__(
            self, "includes", tuple(os.fspath(f) for f in self.includes)
        )


CircuitSource = Union[InMemoryCircuit, CircuitFile]


def as_source(circuit: Any) -> CircuitSource:
    """Wrap a bare circuit object or path into a :data:`CircuitSource`."""
    if isinstance(circuit, (InMemoryCircuit, CircuitFile)):
        return circuit
    if isinstance(circuit, (str, os.PathLike)):
        return CircuitFile(circuit)
    return InMemoryCircuit(circuit)


@dataclass(frozen=True)
class CircuitInfo:
    """What the client learned about a circuit source before staging it."""
    source: CircuitSource
    type: CircuitType
    num_qubits: Optional[int]
    is_empty: bool


@dataclass
class ExecutionParameters:
    """Execution parameters as supplied by the caller."""
    algorithm: Union[str, Algorithm] = Algorithm.AUTO
    samples: int = 1000
    bitstrings: Tuple[str, ...] = ()
    timelimit: Union[int, float] = 5
    bonddim: Optional[int] = None
    entdim: Optional[int] = None
    seed: Optional[int] = None
    label: Optional[str] = None
    force: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidatedParameters:
    """Fully resolved execution parameters with defaults filled in."""
    algorithm: Algorithm
    samples: int
    seed: int
    bitstrings: Tuple[str, ...]
    timelimit: Union[int, float]
    label: str
    bonddim: Optional[int] = None
    entdim: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_manifest(self) -> Dict[str, Any]:
        """Parameter section of the staged circuits manifest."""
        pars: Dict[str, Any] = {
            "algorithm": self.algorithm.value,
            "samples": self.samples,
            "seed": self.seed,
            "bitstrings": list(self.bitstrings),
        }
        if self.bonddim is not None:
            pars["bondDimension"] = self.bonddim
        if self.entdim is not None:
            pars["entDimension"] = self.entdim
        pars.update(self.extra)
        return pars


@dataclass(frozen=True)
class JobHandle:
    """Identifier of a remote job.

    The connection reference is informational; two handles with the same
    ``job_id`` designate the same job.
    """
    job_id: str
    connection: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_id(cls, job_id: str) -> "JobHandle":
        return cls(job_id=job_id)

    def __str__(self) -> str:
        return self.job_id


@dataclass
class JobInfo:
    """Job status as reported by the service."""
    job_id: str
    status: JobStatus
    error_message: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        """Check if the job is in a terminal state."""
        return self.status.is_terminal

    @property
    def is_pending(self) -> bool:
        """Check if the job is still pending."""
        return not self.status.is_terminal

    @property
    def is_success(self) -> bool:
        """Check if the job completed successfully."""
        return self.status == JobStatus.DONE


@dataclass
class SimulationResult:
    """Decoded result of one simulated circuit."""
    simulator: str
    version: str
    fidelity: Optional[float] = None
    avg_gate_error: Optional[float] = None
    timings: Dict[str, float] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    amplitudes: Dict[str, complex] = field(default_factory=dict)

    @property
    def total_samples(self) -> int:
        return sum(self.counts.values())

    def probabilities(self) -> Dict[str, float]:
        """Get probabilities for each sampled bitstring."""
        total = self.total_samples
        if total == 0:
            return {}
        return {k: v / total for k, v in self.counts.items()}

    def most_frequent(self) -> Optional[Tuple[str, float]]:
        """Get the most frequent sampled bitstring and its frequency."""
        total = self.total_samples
        if total == 0:
            return None
        most = max(self.counts.items(), key=lambda x: x[1])
        return (most[0], most[1] / total)

    def __str__(self) -> str:
        fidelity = "unknown" if self.fidelity is None else f"{self.fidelity:g}"
        return (
            f"SimulationResult({self.simulator} {self.version}, "
            f"fidelity={fidelity}, "
            f"{len(self.counts)} sampled bitstrings, "
            f"{len(self.amplitudes)} amplitudes)"
        )


@dataclass(frozen=True)
class RemoteError:
    """Per-circuit failure reported inside a finished job."""
    message: str


ResultEntry = Union[SimulationResult, RemoteError]
