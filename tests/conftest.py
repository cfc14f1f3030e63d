"""Shared fixtures: a small circuit model and in-memory channels."""

import os
from dataclasses import dataclass, field
from typing import Dict, List

import pytest
from google.protobuf import json_format, struct_pb2

from qcs_client import ProtoCircuitCodec, ProtoResultCodec
from qcs_client.types import JobHandle, JobInfo, JobStatus, SimulationResult

BELL_QASM = """// bell state
OPENQASM 2.0;
include "qelib1.inc";

qreg q[2];
creg c[2];
h q[0];
cx q[0],q[1];
measure q -> c;
"""

GHZ_STIM = """# three qubit GHZ
H 0
CX 0 1 1 2
M 0 1 2
"""


class FakeCircuit:
    """Minimal circuit model: a qubit count and a list of operation strings."""

    def __init__(self, num_qubits, ops=()):
        self._num_qubits = num_qubits
        self.ops = list(ops)

    def num_qubits(self):
        return self._num_qubits

    def __len__(self):
        return len(self.ops)

    def to_proto(self):
        return json_format.ParseDict(
            {"qubits": self._num_qubits, "ops": self.ops}, struct_pb2.Struct()
        )

    @classmethod
    def from_proto(cls, message):
        content = json_format.MessageToDict(message)
        return cls(int(content["qubits"]), content.get("ops", []))

    def __eq__(self, other):
        return (
            isinstance(other, FakeCircuit)
            and self._num_qubits == other._num_qubits
            and self.ops == other.ops
        )


def bell_circuit():
    return FakeCircuit(2, ["h 0", "cx 0 1"])


def make_result(counts, simulator="MPS", fidelity=1.0, amplitudes=None) -> bytes:
    return ProtoResultCodec().encode(
        SimulationResult(
            simulator=simulator,
            version="0.14.1",
            fidelity=fidelity,
            avg_gate_error=0.0,
            timings={"parse": 0.01, "apply": 0.2, "total": 0.21},
            counts=counts,
            amplitudes=amplitudes or {},
        )
    )


@dataclass
class Submission:
    files: Dict[str, bytes]
    algorithm: str
    label: str
    timelimit: float
    directory: str


@dataclass
class FakeChannel:
    """In-memory SubmissionChannel.

    ``statuses`` is consumed one item per status call; the last one repeats.
    Items are JobStatus values or (JobStatus, error_message) tuples.
    """

    statuses: List = field(default_factory=lambda: [JobStatus.DONE])
    results: Dict[str, bytes] = field(default_factory=dict)
    inputs: Dict[str, bytes] = field(default_factory=dict)
    limit: object = None
    job_id: str = "job-1"
    submissions: List[Submission] = field(default_factory=list)
    status_calls: int = 0
    download_calls: int = 0
    canceled: List[str] = field(default_factory=list)

    def submit(self, bundle, algorithm, label, timelimit):
        files = {}
        for path in bundle.files:
            with open(path, "rb") as fh:
                files[os.path.basename(path)] = fh.read()
        self.submissions.append(
            Submission(files, algorithm, label, timelimit, bundle.directory)
        )
        self.inputs = files
        return JobHandle(self.job_id, connection=self)

    def status(self, handle):
        self.status_calls += 1
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        status, message = item if isinstance(item, tuple) else (item, None)
        return JobInfo(handle.job_id, status, error_message=message)

    def _write(self, files, dest_dir):
        paths = []
        for name, content in files.items():
            path = os.path.join(dest_dir, name)
            with open(path, "wb") as fh:
                fh.write(content)
            paths.append(path)
        return paths

    def download_results(self, handle, dest_dir):
        self.download_calls += 1
        return self._write(self.results, dest_dir)

    def download_inputs(self, handle, dest_dir):
        return self._write(self.inputs, dest_dir)

    def cancel(self, handle):
        self.canceled.append(handle.job_id)
        return True

    def max_time_limit(self):
        return self.limit


class FakeAsyncChannel:
    """Async wrapper around FakeChannel."""

    def __init__(self, channel):
        self.sync = channel

    async def submit(self, bundle, algorithm, label, timelimit):
        return self.sync.submit(bundle, algorithm, label, timelimit)

    async def status(self, handle):
        return self.sync.status(handle)

    async def download_results(self, handle, dest_dir):
        return self.sync.download_results(handle, dest_dir)

    async def download_inputs(self, handle, dest_dir):
        return self.sync.download_inputs(handle, dest_dir)

    async def cancel(self, handle):
        return self.sync.cancel(handle)

    async def max_time_limit(self):
        return self.sync.max_time_limit()


@pytest.fixture
def circuit_codec():
    return ProtoCircuitCodec(from_proto=FakeCircuit.from_proto)


@pytest.fixture
def qasm_file(tmp_path):
    path = tmp_path / "bell.qasm"
    path.write_text(BELL_QASM)
    return str(path)


@pytest.fixture
def stim_file(tmp_path):
    path = tmp_path / "ghz.stim"
    path.write_text(GHZ_STIM)
    return str(path)
