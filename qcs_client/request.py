"""Staging of request bundles.

A bundle is a temporary directory holding the request metadata, the circuits
manifest and one file per circuit. It lives until the submission returns and
is removed on every exit path.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from . import constants
from ._version import __version__
from .codec import CircuitCodec
from .hashing import digest
from .types import CircuitFile, CircuitInfo, CircuitType, InMemoryCircuit, ValidatedParameters

logger = logging.getLogger(__name__)


@dataclass
class RequestBundle:
    """Staged request ready to be handed to a submission channel."""
    directory: str
    request_file: str
    manifest_file: str
    circuit_files: List[str]
    include_files: List[str] = field(default_factory=list)
    hashes: Dict[str, str] = field(default_factory=dict)
    parameters: Optional[ValidatedParameters] = None

    @property
    def files(self) -> List[str]:
        """Files to upload: request metadata, manifest, circuits in order, includes."""
        return [self.request_file, self.manifest_file, *self.circuit_files, *self.include_files]

    def cleanup(self):
        """Remove the staging directory."""
        shutil.rmtree(self.directory, ignore_errors=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()


def circuit_filename(index: int, ctype: CircuitType) -> str:
    """Name of the ``index``-th (1-based) staged circuit."""
    return f"{constants.CIRCUIT_FILE_PREFIX}{index}{ctype.extension}"


class RequestBuilder:
    """Build request bundles from inspected circuits and validated parameters.

    Args:
        codec: Circuit codec used to serialize in-memory circuits
        tmpdir: Parent directory for staging directories (default: system temp)
    """

    def __init__(self, codec: CircuitCodec, tmpdir: str | None = None):
        self.codec = codec
        self.tmpdir = tmpdir

    def build(
        self, circuits: Sequence[CircuitInfo], params: ValidatedParameters
    ) -> RequestBundle:
        """Stage circuits and write manifest and request metadata.

        Returns:
            RequestBundle owning a fresh staging directory

        Raises:
            Any error from serialization or file I/O; the staging directory
            is removed before it propagates.
        """
        directory = tempfile.mkdtemp(prefix="qcs_", dir=self.tmpdir)
        try:
            return self._build(directory, circuits, params)
        except BaseException:
            shutil.rmtree(directory, ignore_errors=True)
            raise

    def _build(self, directory, circuits, params) -> RequestBundle:
        circuit_files = []
        include_files = []
        descriptors = []

        for i, info in enumerate(circuits, start=1):
            name = circuit_filename(i, info.type)
            path = os.path.join(directory, name)
            source = info.source

            if isinstance(source, InMemoryCircuit):
                with open(path, "wb") as fh:
                    fh.write(self.codec.encode(source.circuit))
            elif isinstance(source, CircuitFile):
                shutil.copyfile(source.path, path)
                for inc in source.includes:
                    incpath = os.path.join(directory, os.path.basename(inc))
                    # names are unique per batch, see validation.check_includes
                    if incpath not in include_files:
                        shutil.copyfile(inc, incpath)
                        include_files.append(incpath)
            else:
                raise TypeError(f"Unsupported circuit source: {type(source).__name__}")

            logger.debug("Staged circuit %d as %s", i, name)
            circuit_files.append(path)
            descriptors.append({"file": name, "type": info.type.value})

        hashes = {
            os.path.basename(f): digest(f) for f in circuit_files + include_files
        }

        manifest = params.to_manifest()
        manifest["circuits"] = descriptors
        manifest_file = os.path.join(directory, constants.CIRCUITS_MANIFEST)
        with open(manifest_file, "w") as fh:
            json.dump(manifest, fh)
        hashes[constants.CIRCUITS_MANIFEST] = digest(manifest_file)

        request = {
            "executor": constants.EXECUTOR,
            "timelimit": params.timelimit,
            "files": [{"name": name, "hash": h} for name, h in hashes.items()],
            "apilang": "python",
            "apiversion": __version__,
            "circuitsapiversion": getattr(self.codec, "api_version", __version__),
        }
        request_file = os.path.join(directory, constants.REQUEST_FILE)
        with open(request_file, "w") as fh:
            json.dump(request, fh)

        logger.debug("Staged request bundle in %s", directory)

        return RequestBundle(
            directory=directory,
            request_file=request_file,
            manifest_file=manifest_file,
            circuit_files=circuit_files,
            include_files=include_files,
            hashes=hashes,
            parameters=params,
        )
