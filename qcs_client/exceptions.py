"""Exceptions for the QCS client."""

from __future__ import annotations


class QCSError(Exception):
    """Base exception for QCS client errors."""


class ValidationError(QCSError, ValueError):
    """Raised before any network interaction when a request is invalid."""


class TransportError(QCSError):
    """Raised by a submission channel when the service cannot be reached or
    answers with an error status."""

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            super().__init__(detail)
        else:
            super().__init__(f"QCS API error {status_code}: {detail}")


class RemoteExecutionError(QCSError):
    """The remote job ended in the ERROR state."""

    def __init__(self, job_id: str, message: str) -> None:
        self.job_id = job_id
        self.message = message
        super().__init__(message)


class RemoteCancellationError(QCSError):
    """The remote job ended in the CANCELED state."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Remote job {job_id} canceled.")


class ResultIntegrityError(QCSError):
    """A downloaded bundle misses the manifest or a referenced file."""
