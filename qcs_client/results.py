"""Decoding of downloaded result and input bundles."""

from __future__ import annotations

import json
import logging
import os
import warnings
from typing import Any, List, Sequence, Tuple

from google.protobuf.message import DecodeError

from . import constants
from .codec import CircuitCodec, ResultCodec
from .exceptions import QCSError, ResultIntegrityError
from .types import CircuitFile, CircuitType, JobHandle, RemoteError, ResultEntry

logger = logging.getLogger(__name__)


def _require(names: Sequence[str], required: str, handle: JobHandle) -> None:
    basenames = [os.path.basename(n) for n in names]
    if required not in basenames:
        raise ResultIntegrityError(
            f"{handle.job_id} is not a valid execution for QCS circuits: "
            f"missing '{required}'. Downloaded files: {basenames}"
        )


def _load_json(path: str):
    try:
        with open(path, "r") as fh:
            return json.load(fh)
    except ValueError as e:
        raise ResultIntegrityError(f"Malformed {os.path.basename(path)}: {e}") from e


class ResultDecoder:
    """Turn downloaded bundles into typed results.

    Args:
        channel: Channel the bundles are downloaded from
        result_codec: Codec for the binary result files
        circuit_codec: Codec for staged ``proto`` circuits, used by
            :meth:`decode_inputs`
    """

    def __init__(
        self,
        channel,
        result_codec: ResultCodec,
        circuit_codec: CircuitCodec | None = None,
    ):
        self.channel = channel
        self.result_codec = result_codec
        self.circuit_codec = circuit_codec

    def decode_files(
        self, handle: JobHandle, dest_dir: str, names: Sequence[str]
    ) -> List[ResultEntry]:
        """Decode an already downloaded result bundle.

        One entry per submitted circuit, in submission order. Entries the
        service marked as failed become :class:`~qcs_client.types.RemoteError`
        values.

        Raises:
            ResultIntegrityError: If the manifest or a referenced file is
                missing or cannot be decoded
        """
        _require(names, constants.RESULTS_MANIFEST, handle)
        manifest = _load_json(os.path.join(dest_dir, constants.RESULTS_MANIFEST))

        if not isinstance(manifest, list):
            raise ResultIntegrityError(
                f"'{constants.RESULTS_MANIFEST}' of {handle.job_id} should be a list"
            )

        entries: List[ResultEntry] = []
        for i, entry in enumerate(manifest, start=1):
            if not isinstance(entry, dict):
                raise ResultIntegrityError(f"Invalid result entry {i}: {entry!r}")
            if "error" in entry:
                entries.append(RemoteError(str(entry["error"])))
                continue
            if "file" not in entry:
                raise ResultIntegrityError(
                    f"Result entry {i} has neither an error nor a file"
                )

            fname = os.path.join(dest_dir, os.path.basename(entry["file"]))
            if not os.path.isfile(fname):
                raise ResultIntegrityError(f"Missing result file {entry['file']}")

            with open(fname, "rb") as fh:
                data = fh.read()
            try:
                entries.append(self.result_codec.decode(data))
            except (DecodeError, ValueError, TypeError, IndexError) as e:
                raise ResultIntegrityError(
                    f"Cannot decode result file {entry['file']}: {e}"
                ) from e

        logger.debug(
            "Decoded %d results of job %s (%d failed)",
            len(entries),
            handle.job_id,
            sum(isinstance(e, RemoteError) for e in entries),
        )
        return entries

    def decode(self, handle: JobHandle, dest_dir: str) -> List[ResultEntry]:
        """Download the results of a finished job and decode them."""
        names = self.channel.download_results(handle, dest_dir)
        return self.decode_files(handle, dest_dir, names)

    def decode_input_files(
        self, handle: JobHandle, dest_dir: str, names: Sequence[str]
    ) -> Tuple[List[Any], dict]:
        """Decode a downloaded input bundle into circuits and parameters.

        ``proto`` circuits are decoded with the circuit codec; text circuits
        are returned as :class:`~qcs_client.types.CircuitFile` pointing into
        ``dest_dir``.
        """
        _require(names, constants.CIRCUITS_MANIFEST, handle)
        parameters = _load_json(os.path.join(dest_dir, constants.CIRCUITS_MANIFEST))

        circuits = []
        for info in parameters.get("circuits", []):
            fname = os.path.join(dest_dir, os.path.basename(info["file"]))
            if not os.path.isfile(fname):
                raise ResultIntegrityError(f"Missing circuit file {info['file']}")

            ctype = CircuitType(info["type"]) if "type" in info else CircuitType.from_filename(fname)
            if ctype == CircuitType.PROTO:
                if self.circuit_codec is None:
                    raise QCSError("A circuit codec is needed to decode proto circuits")
                with open(fname, "rb") as fh:
                    circuits.append(self.circuit_codec.decode(fh.read()))
            else:
                circuits.append(CircuitFile(fname, dialect=ctype.value))

        return circuits, parameters

    def decode_inputs(self, handle: JobHandle, dest_dir: str) -> Tuple[List[Any], dict]:
        """Download the submitted bundle of a job and decode it."""
        names = self.channel.download_inputs(handle, dest_dir)
        return self.decode_input_files(handle, dest_dir, names)


class AsyncResultDecoder(ResultDecoder):
    """:class:`ResultDecoder` downloading through an async channel."""

    async def decode(self, handle: JobHandle, dest_dir: str) -> List[ResultEntry]:
        names = await self.channel.download_results(handle, dest_dir)
        return self.decode_files(handle, dest_dir, names)

    async def decode_inputs(
        self, handle: JobHandle, dest_dir: str
    ) -> Tuple[List[Any], dict]:
        names = await self.channel.download_inputs(handle, dest_dir)
        return self.decode_input_files(handle, dest_dir, names)


def first_result(results: Sequence[ResultEntry]) -> ResultEntry:
    """Return the first of ``results``, warning if there are more."""
    if not results:
        raise ResultIntegrityError("No results found.")
    if len(results) > 1:
        warnings.warn("Multiple results found. Returning the first one.", stacklevel=2)
    return results[0]


def first_input(circuits: Sequence[Any], parameters: dict) -> Tuple[Any, dict]:
    """Return the first circuit and the parameters, warning if there are more."""
    if not circuits:
        raise ResultIntegrityError("No circuits found.")
    if len(circuits) > 1:
        warnings.warn("Multiple circuits found. Returning the first one.", stacklevel=2)
    return circuits[0], parameters
