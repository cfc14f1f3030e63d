"""Binary codecs for circuits and simulation results.

The service exchanges circuits and results as protobuf payloads. The client
does not own a circuit model, so circuits are handled through a small codec
interface: anything that can serialize a circuit object, count its qubits and
tell whether it is empty can be plugged into :class:`~qcs_client.QCSClient`.

The default codecs carry their payload in a ``google.protobuf.Struct``.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Type

from google.protobuf import json_format, struct_pb2
from google.protobuf.message import Message

from ._version import __version__
from .types import SimulationResult


class CircuitCodec(Protocol):
    """Interface between the client and a circuit model."""

    api_version: str

    def encode(self, circuit: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...

    def num_qubits(self, circuit: Any) -> int: ...

    def is_empty(self, circuit: Any) -> bool: ...


class ResultCodec(Protocol):
    """Interface between the client and the binary result format."""

    def decode(self, data: bytes) -> SimulationResult: ...


class ProtoCircuitCodec:
    """Circuit codec for circuit objects that convert to protobuf messages.

    Circuits are expected to provide ``to_proto()`` (or to be a protobuf
    message already), a ``num_qubits`` attribute or method, and ``len()``
    returning their number of operations.

    Args:
        message_type: Protobuf message class used when decoding
        from_proto: Optional callable turning a decoded message back into a
            circuit object; without it the message itself is returned
        api_version: Version of the circuit model reported to the service
    """

    def __init__(
        self,
        message_type: Type[Message] = struct_pb2.Struct,
        from_proto: Optional[Callable[[Message], Any]] = None,
        api_version: str = __version__,
    ):
        self.message_type = message_type
        self.from_proto = from_proto
        self.api_version = api_version

    def encode(self, circuit: Any) -> bytes:
        message = circuit if isinstance(circuit, Message) else circuit.to_proto()
        return message.SerializeToString()

    def decode(self, data: bytes) -> Any:
        message = self.message_type()
        message.ParseFromString(data)
        if self.from_proto is None:
            return message
        return self.from_proto(message)

    def num_qubits(self, circuit: Any) -> int:
        n = circuit.num_qubits
        return n() if callable(n) else n

    def is_empty(self, circuit: Any) -> bool:
        return len(circuit) == 0


class ProtoResultCodec:
    """Decode simulation results stored as a protobuf ``Struct``.

    Layout of the struct::

        simulator: str, version: str, fidelity: float, avggateerror: float,
        timings: {name: seconds}, counts: {bitstring: count},
        amplitudes: {bitstring: [real, imag]}
    """

    def decode(self, data: bytes) -> SimulationResult:
        message = struct_pb2.Struct()
        message.ParseFromString(data)
        content = json_format.MessageToDict(message)

        return SimulationResult(
            simulator=content.get("simulator", ""),
            version=content.get("version", ""),
            fidelity=content.get("fidelity"),
            avg_gate_error=content.get("avggateerror"),
            timings={k: float(v) for k, v in content.get("timings", {}).items()},
            counts={k: int(v) for k, v in content.get("counts", {}).items()},
            amplitudes={
                k: complex(v[0], v[1])
                for k, v in content.get("amplitudes", {}).items()
            },
        )

    def encode(self, result: SimulationResult) -> bytes:
        content = {
            "simulator": result.simulator,
            "version": result.version,
            "timings": result.timings,
            "counts": result.counts,
            "amplitudes": {
                k: [v.real, v.imag] for k, v in result.amplitudes.items()
            },
        }
        if result.fidelity is not None:
            content["fidelity"] = result.fidelity
        if result.avg_gate_error is not None:
            content["avggateerror"] = result.avg_gate_error

        return json_format.ParseDict(content, struct_pb2.Struct()).SerializeToString()


__all__ = [
    "CircuitCodec",
    "ProtoCircuitCodec",
    "ProtoResultCodec",
    "ResultCodec",
]
