"""Detection of circuit file dialects.

Text circuits are accepted in two dialects: OpenQASM 2.0 and the Stim
circuit format. The dialect is detected from the first line that is neither
blank nor a comment.
"""

from __future__ import annotations

import os
import re
from typing import Iterator, Optional

from . import constants
from .codec import CircuitCodec
from .exceptions import ValidationError
from .types import CircuitFile, CircuitInfo, CircuitSource, CircuitType, InMemoryCircuit

QASM2_HEADER = "OPENQASM 2.0;"

STIM_OPCODES = frozenset(
    {
        # single qubit Clifford gates
        "I", "X", "Y", "Z", "H", "H_XY", "H_XZ", "H_YZ", "S", "S_DAG",
        "SQRT_X", "SQRT_X_DAG", "SQRT_Y", "SQRT_Y_DAG", "SQRT_Z", "SQRT_Z_DAG",
        "C_XYZ", "C_ZYX",
        # two qubit Clifford gates
        "CX", "CNOT", "CY", "CZ", "ZCX", "ZCY", "ZCZ", "XCX", "XCY", "XCZ",
        "YCX", "YCY", "YCZ", "SWAP", "ISWAP", "ISWAP_DAG", "CXSWAP", "SWAPCX",
        "CZSWAP", "SQRT_XX", "SQRT_XX_DAG", "SQRT_YY", "SQRT_YY_DAG",
        "SQRT_ZZ", "SQRT_ZZ_DAG",
        # noise channels
        "X_ERROR", "Y_ERROR", "Z_ERROR", "DEPOLARIZE1", "DEPOLARIZE2",
        "PAULI_CHANNEL_1", "PAULI_CHANNEL_2", "E", "CORRELATED_ERROR",
        "ELSE_CORRELATED_ERROR", "HERALDED_ERASE", "HERALDED_PAULI_CHANNEL_1",
        # collapsing gates
        "M", "MZ", "MX", "MY", "MR", "MRZ", "MRX", "MRY", "R", "RZ", "RX", "RY",
        "MPP", "MXX", "MYY", "MZZ", "MPAD",
        # annotations and control flow
        "DETECTOR", "OBSERVABLE_INCLUDE", "QUBIT_COORDS", "SHIFT_COORDS",
        "TICK", "REPEAT",
    }
)

# instructions whose targets are not qubits
_STIM_NON_QUBIT_TARGETS = frozenset(
    {"DETECTOR", "OBSERVABLE_INCLUDE", "SHIFT_COORDS", "TICK", "REPEAT", "MPAD"}
)

# instructions that do not act on the state
_STIM_NON_OPERATIONS = frozenset(
    {"DETECTOR", "OBSERVABLE_INCLUDE", "QUBIT_COORDS", "SHIFT_COORDS", "TICK", "REPEAT"}
)

_QASM_DECLARATIONS = ("OPENQASM", "include", "qreg", "creg", "gate", "opaque")

_QREG_RE = re.compile(r"\bqreg\s+\w+\s*\[\s*(\d+)\s*\]")
_QASM_TOKEN_RE = re.compile(r"([;{}])")
_STIM_TARGET_RE = re.compile(r"^!?[XYZxyz]?(\d+)$")
_STAGED_NAME_RE = re.compile(
    rf"^{constants.CIRCUIT_FILE_PREFIX}\d+\.(pb|qasm|stim)$"
)

_QASM_COMMENTS = ("//",)
_STIM_COMMENTS = ("#",)
# sniffing accepts either comment syntax before the first statement
_ANY_COMMENTS = _QASM_COMMENTS + _STIM_COMMENTS


def _strip_comment(line: str, markers=_ANY_COMMENTS) -> str:
    for marker in markers:
        idx = line.find(marker)
        if idx >= 0:
            line = line[:idx]
    return line.strip()


def _content_lines(text: str, markers=_ANY_COMMENTS) -> Iterator[str]:
    for line in text.splitlines():
        line = _strip_comment(line, markers)
        if line:
            yield line


def _stim_opcode(line: str) -> str:
    token = line.split()[0]
    return token.split("(", 1)[0].upper()


def is_qasm2(text: str) -> bool:
    first = next(_content_lines(text), "")
    return first.startswith(QASM2_HEADER)


def is_stim(text: str) -> bool:
    first = next(_content_lines(text), "")
    return bool(first) and _stim_opcode(first) in STIM_OPCODES


def detect_dialect(text: str) -> Optional[CircuitType]:
    """Return the dialect of a text circuit, or None if unrecognized."""
    if is_qasm2(text):
        return CircuitType.QASM
    if is_stim(text):
        return CircuitType.STIM
    return None


def qasm_num_qubits(text: str) -> int:
    body = " ".join(_content_lines(text, _QASM_COMMENTS))
    return sum(int(m.group(1)) for m in _QREG_RE.finditer(body))


def qasm_num_operations(text: str) -> int:
    # statements inside gate bodies are definitions, not operations
    count = 0
    depth = 0
    body = " ".join(_content_lines(text, _QASM_COMMENTS))
    for token in _QASM_TOKEN_RE.split(body):
        token = token.strip()
        if token == "{":
            depth += 1
        elif token == "}":
            depth -= 1
        elif token and token != ";" and depth == 0:
            if not token.startswith(_QASM_DECLARATIONS):
                count += 1
    return count


def stim_num_qubits(text: str) -> int:
    highest = -1
    for line in _content_lines(text, _STIM_COMMENTS):
        opcode = _stim_opcode(line)
        if opcode in _STIM_NON_QUBIT_TARGETS or line.startswith("}"):
            continue
        targets = re.sub(r"\([^)]*\)", " ", line).split()[1:]
        for target in targets:
            for part in target.split("*"):
                match = _STIM_TARGET_RE.match(part)
                if match:
                    highest = max(highest, int(match.group(1)))
    return highest + 1


def stim_num_operations(text: str) -> int:
    return sum(
        1
        for line in _content_lines(text, _STIM_COMMENTS)
        if not line.startswith("}") and _stim_opcode(line) not in _STIM_NON_OPERATIONS
    )


def is_reserved_name(name: str) -> bool:
    """Whether ``name`` is used by the request bundle itself."""
    return (
        name in (constants.REQUEST_FILE, constants.CIRCUITS_MANIFEST)
        or _STAGED_NAME_RE.match(name) is not None
    )


def _normalize_dialect(dialect: str) -> CircuitType:
    name = dialect.lower()
    if name in ("qasm", "qasm2"):
        return CircuitType.QASM
    if name == "stim":
        return CircuitType.STIM
    raise ValidationError(f"Unknown circuit dialect {dialect!r}")


def inspect_file(source: CircuitFile) -> CircuitInfo:
    """Detect the dialect of a circuit file and measure it.

    Raises:
        ValidationError: If the file or one of its includes does not exist,
            cannot be read, or is neither QASM 2.0 nor Stim, or if an include
            file name clashes with the bundle or with another include
    """
    if not os.path.isfile(source.path):
        raise ValidationError(f"{source.path}: does not exist")

    names = set()
    for inc in source.includes:
        if not os.path.isfile(inc):
            raise ValidationError(f"{inc}: does not exist")
        name = os.path.basename(inc)
        if is_reserved_name(name):
            raise ValidationError(
                f"{inc}: include file name {name!r} is reserved for the request bundle"
            )
        if name in names:
            raise ValidationError(f"{inc}: another include file is also named {name!r}")
        names.add(name)

    try:
        with open(source.path, "r", encoding="utf-8") as fh:
            text = fh.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ValidationError(f"{source.path}: cannot be read ({e})") from e

    ctype = detect_dialect(text)
    if ctype is None:
        raise ValidationError(
            f"{source.path}: not a valid QASM 2.0 or Stim circuit file"
        )

    if source.dialect is not None and _normalize_dialect(source.dialect) != ctype:
        raise ValidationError(
            f"{source.path}: declared as {source.dialect} but detected as {ctype.value}"
        )

    if source.includes and ctype != CircuitType.QASM:
        raise ValidationError(f"{source.path}: include files are only supported for QASM")

    if ctype == CircuitType.QASM:
        return CircuitInfo(
            source, ctype, qasm_num_qubits(text), qasm_num_operations(text) == 0
        )
    return CircuitInfo(
        source, ctype, stim_num_qubits(text), stim_num_operations(text) == 0
    )


def inspect(source: CircuitSource, codec: CircuitCodec) -> CircuitInfo:
    """Describe a circuit source: its staged type, qubit count and emptiness."""
    if isinstance(source, InMemoryCircuit):
        circuit = source.circuit
        return CircuitInfo(
            source, CircuitType.PROTO, codec.num_qubits(circuit), codec.is_empty(circuit)
        )
    if isinstance(source, CircuitFile):
        return inspect_file(source)
    raise TypeError(f"Unsupported circuit source: {type(source).__name__}")
