"""Validation of execution parameters against the service limits."""

from __future__ import annotations

import os
import random
import warnings
from typing import Optional, Sequence, Tuple

from . import constants
from ._version import __version__
from .exceptions import ValidationError
from .types import Algorithm, CircuitInfo, ExecutionParameters, ValidatedParameters


def resolve_algorithm(algorithm) -> Algorithm:
    try:
        return Algorithm(algorithm)
    except ValueError:
        allowed = ", ".join(a.value for a in Algorithm)
        raise ValidationError(
            f"Unknown algorithm {algorithm!r}, should be one of: {allowed}"
        ) from None


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_samples(samples) -> int:
    if not _is_int(samples):
        raise ValidationError(f"Number of samples should be an integer, got {samples!r}")
    if samples < 1 or samples > constants.MAX_SAMPLES:
        raise ValidationError(
            f"Number of samples should be in [1, {constants.MAX_SAMPLES}], got {samples}"
        )
    return samples


def check_timelimit(timelimit, max_timelimit=None) -> float:
    """Check a time limit in minutes; the ceiling is skipped when
    ``max_timelimit`` is None."""
    if isinstance(timelimit, bool) or not isinstance(timelimit, (int, float)):
        raise ValidationError(f"Time limit should be a number of minutes, got {timelimit!r}")
    if timelimit <= 0:
        raise ValidationError(f"Time limit should be positive, got {timelimit}")
    if max_timelimit is not None and timelimit > max_timelimit:
        raise ValidationError(
            f"Time limit should be less than {max_timelimit} minutes, got {timelimit}"
        )
    return timelimit


def check_mps_dimensions(
    bonddim: Optional[int], entdim: Optional[int], force: bool = False
) -> Tuple[int, int]:
    """Resolve bond and entangling dimensions for MPS capable algorithms."""
    if bonddim is None:
        bonddim = constants.DEFAULT_BONDDIM
    elif not _is_int(bonddim) or not (
        constants.MIN_BONDDIM <= bonddim <= constants.MAX_BONDDIM
    ):
        raise ValidationError(
            f"Bond dimension should be in [{constants.MIN_BONDDIM}, "
            f"{constants.MAX_BONDDIM}], got {bonddim!r}"
        )

    if entdim is None:
        entdim = constants.DEFAULT_ENTDIM
    elif not _is_int(entdim) or entdim > constants.MAX_ENTDIM or entdim < 1:
        raise ValidationError(
            f"Entangling dimension should be in [{constants.MIN_ENTDIM}, "
            f"{constants.MAX_ENTDIM}], got {entdim!r}"
        )
    elif entdim < constants.MIN_ENTDIM:
        if not force:
            raise ValidationError(
                f"Entangling dimension should be in [{constants.MIN_ENTDIM}, "
                f"{constants.MAX_ENTDIM}], got {entdim}. "
                "Use force=True to go below the minimum."
            )
        warnings.warn(
            f"Entangling dimension {entdim} is below the minimum of "
            f"{constants.MIN_ENTDIM}, simulations may be inaccurate.",
            stacklevel=3,
        )

    return bonddim, entdim


def check_bitstrings(bitstrings, circuits: Sequence[CircuitInfo]) -> Tuple[str, ...]:
    bitstrings = tuple(bitstrings)

    for b in bitstrings:
        if not isinstance(b, str) or not b or set(b) - {"0", "1"}:
            raise ValidationError(f"Invalid bitstring {b!r}, should contain only 0 and 1")

    if any(len(b) != len(bitstrings[0]) for b in bitstrings):
        raise ValidationError("Inconsistent bitstrings length.")

    for i, info in enumerate(circuits, start=1):
        if info.num_qubits is None:
            continue
        for b in bitstrings:
            if len(b) != info.num_qubits:
                raise ValidationError(
                    f"Bitstring {b} has {len(b)} bits but circuit {i} "
                    f"has {info.num_qubits} qubits."
                )

    return bitstrings


def check_includes(circuits: Sequence[CircuitInfo]) -> None:
    """Include files share one staging directory, so a base name may only
    stand for one file across the whole batch."""
    staged = {}
    for i, info in enumerate(circuits, start=1):
        for inc in getattr(info.source, "includes", ()):
            name = os.path.basename(inc)
            path = os.path.realpath(inc)
            if staged.setdefault(name, path) != path:
                raise ValidationError(
                    f"Include file {name!r} of circuit {i} differs from another "
                    "include file with the same name."
                )


def validate(
    params: ExecutionParameters,
    circuits: Sequence[CircuitInfo],
    max_timelimit: Optional[float] = constants.DEFAULT_MAX_TIME_LIMIT,
) -> ValidatedParameters:
    """Check execution parameters and circuits, filling in defaults.

    Args:
        params: Parameters supplied by the caller
        circuits: Inspected circuit sources, in submission order
        max_timelimit: Maximum time limit in minutes allowed for the account;
            None leaves the ceiling to a later :func:`check_timelimit` call

    Returns:
        ValidatedParameters with every default resolved

    Raises:
        ValidationError: On the first violated rule
    """
    if not circuits:
        raise ValidationError("At least one circuit should be given.")

    algorithm = resolve_algorithm(params.algorithm)

    if len(circuits) > 1 and algorithm == Algorithm.AUTO:
        raise ValidationError(
            "The 'auto' algorithm is not supported when executing more than "
            "one circuit. Choose 'statevector' or 'mps'."
        )

    for i, info in enumerate(circuits, start=1):
        if info.is_empty:
            raise ValidationError(f"Circuit {i} is empty.")

    check_includes(circuits)

    samples = check_samples(params.samples)
    timelimit = check_timelimit(params.timelimit, max_timelimit)
    bitstrings = check_bitstrings(params.bitstrings, circuits)

    bonddim = entdim = None
    if algorithm.uses_mps_dimensions:
        bonddim, entdim = check_mps_dimensions(params.bonddim, params.entdim, params.force)

    clashes = sorted(set(params.extra) & constants.RESERVED_MANIFEST_KEYS)
    if clashes:
        raise ValidationError(f"Extra parameters cannot override: {', '.join(clashes)}")

    seed = params.seed
    if seed is None:
        seed = random.randrange(0, 2**63)
    elif not _is_int(seed):
        raise ValidationError(f"Seed should be an integer, got {seed!r}")

    return ValidatedParameters(
        algorithm=algorithm,
        samples=samples,
        seed=seed,
        bitstrings=bitstrings,
        timelimit=timelimit,
        label=params.label or f"pyapi_v{__version__}",
        bonddim=bonddim,
        entdim=entdim,
        extra=dict(params.extra),
    )
