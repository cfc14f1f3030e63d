"""Submission channels: transport between the client and the QCS service.

The rest of the client only depends on the :class:`SubmissionChannel` (or
:class:`AsyncSubmissionChannel`) protocol. :class:`HttpChannel` and
:class:`AsyncHttpChannel` implement it against the QCS REST API with httpx.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Protocol

import httpx

from . import constants
from .config import DEFAULT_URL
from .exceptions import TransportError
from .request import RequestBundle
from .types import JobHandle, JobInfo, JobStatus

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0


class SubmissionChannel(Protocol):
    """Blocking transport capability used by :class:`~qcs_client.QCSClient`."""

    def submit(
        self, bundle: RequestBundle, algorithm: str, label: str, timelimit: float
    ) -> JobHandle: ...

    def status(self, handle: JobHandle) -> JobInfo: ...

    def download_results(self, handle: JobHandle, dest_dir: str) -> List[str]: ...

    def download_inputs(self, handle: JobHandle, dest_dir: str) -> List[str]: ...

    def cancel(self, handle: JobHandle) -> bool: ...

    def max_time_limit(self) -> Optional[int]: ...


class AsyncSubmissionChannel(Protocol):
    """Coroutine flavour of :class:`SubmissionChannel`."""

    async def submit(
        self, bundle: RequestBundle, algorithm: str, label: str, timelimit: float
    ) -> JobHandle: ...

    async def status(self, handle: JobHandle) -> JobInfo: ...

    async def download_results(self, handle: JobHandle, dest_dir: str) -> List[str]: ...

    async def download_inputs(self, handle: JobHandle, dest_dir: str) -> List[str]: ...

    async def cancel(self, handle: JobHandle) -> bool: ...

    async def max_time_limit(self) -> Optional[int]: ...


# ── Shared helpers ─────────────────────────────────────────────────────


def _headers(token: str) -> dict:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _check_response(resp: httpx.Response) -> httpx.Response:
    if resp.status_code >= 400:
        detail = resp.text
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            detail = data.get("error", detail)
        raise TransportError(detail, status_code=resp.status_code)
    return resp


def _json(resp: httpx.Response) -> dict:
    if resp.status_code == 204 or not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError as exc:
        raise TransportError(f"Invalid JSON response from {resp.request.url}") from exc


def _upload_form(bundle: RequestBundle, algorithm: str, label: str, timelimit: float):
    files = []
    for path in bundle.files:
        with open(path, "rb") as fh:
            files.append(
                ("files", (os.path.basename(path), fh.read(), "application/octet-stream"))
            )
    data = {
        "name": label,
        "type": constants.JOB_TYPE,
        "algorithm": algorithm,
        "timelimit": str(timelimit),
    }
    return files, data


def _job_info(data: dict, job_id: str) -> JobInfo:
    try:
        status = JobStatus(data["status"])
    except (KeyError, ValueError) as exc:
        raise TransportError(
            f"Unknown status {data.get('status')!r} for job {job_id}"
        ) from exc
    return JobInfo(
        job_id=data.get("job_id", job_id),
        status=status,
        error_message=data.get("error_message") or None,
        detail=data,
    )


def _file_names(data: dict) -> List[str]:
    return [os.path.basename(name) for name in data.get("files", [])]


def _save(dest_dir: str, name: str, content: bytes) -> str:
    path = os.path.join(dest_dir, name)
    with open(path, "wb") as fh:
        fh.write(content)
    return path


class HttpChannel:
    """Synchronous REST channel.

    Args:
        token: Bearer token for authentication
        base_url: Base URL of the service (default: https://qcs.qperfect.io)
        timeout: HTTP request timeout in seconds (default: 30)
    """

    def __init__(
        self,
        token: str = "",
        base_url: str = DEFAULT_URL,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout, headers=_headers(token))

    def close(self):
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ── Low-level helpers ──────────────────────────────────────────────

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"Could not connect to {self._base_url}: {exc}") from exc
        return _check_response(resp)

    def _download(self, handle: JobHandle, kind: str, dest_dir: str) -> List[str]:
        prefix = f"/v1/jobs/{handle.job_id}/{kind}"
        names = _file_names(_json(self._request("GET", prefix)))
        paths = []
        for name in names:
            resp = self._request("GET", f"{prefix}/{name}")
            paths.append(_save(dest_dir, name, resp.content))
        logger.debug("Downloaded %d %s files of job %s", len(paths), kind, handle.job_id)
        return paths

    # ── Public API ─────────────────────────────────────────────────────

    def submit(
        self, bundle: RequestBundle, algorithm: str, label: str, timelimit: float
    ) -> JobHandle:
        """Upload a staged bundle and return the handle of the new job."""
        files, data = _upload_form(bundle, algorithm, label, timelimit)
        resp = _json(self._request("POST", "/v1/jobs", files=files, data=data))
        return JobHandle(resp["job_id"], connection=self)

    def status(self, handle: JobHandle) -> JobInfo:
        """Get current job status."""
        data = _json(self._request("GET", f"/v1/jobs/{handle.job_id}"))
        return _job_info(data, handle.job_id)

    def download_results(self, handle: JobHandle, dest_dir: str) -> List[str]:
        """Download every result file of a job into ``dest_dir``."""
        return self._download(handle, "results", dest_dir)

    def download_inputs(self, handle: JobHandle, dest_dir: str) -> List[str]:
        """Download every submitted file of a job into ``dest_dir``."""
        return self._download(handle, "inputs", dest_dir)

    def cancel(self, handle: JobHandle) -> bool:
        """Cancel a job. Returns True if cancellation succeeded."""
        data = _json(self._request("POST", f"/v1/jobs/{handle.job_id}/cancel"))
        return data.get("success", False)

    def max_time_limit(self) -> Optional[int]:
        """Maximum time limit in minutes allowed for the account, if known."""
        data = _json(self._request("GET", "/v1/user/limits"))
        return data.get("max_time_limit")


class AsyncHttpChannel:
    """Async REST channel, same endpoints as :class:`HttpChannel`."""

    def __init__(
        self,
        token: str = "",
        base_url: str = DEFAULT_URL,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, headers=_headers(token))

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"Could not connect to {self._base_url}: {exc}") from exc
        return _check_response(resp)

    async def _download(self, handle: JobHandle, kind: str, dest_dir: str) -> List[str]:
        prefix = f"/v1/jobs/{handle.job_id}/{kind}"
        names = _file_names(_json(await self._request("GET", prefix)))
        paths = []
        for name in names:
            resp = await self._request("GET", f"{prefix}/{name}")
            paths.append(_save(dest_dir, name, resp.content))
        logger.debug("Downloaded %d %s files of job %s", len(paths), kind, handle.job_id)
        return paths

    async def submit(
        self, bundle: RequestBundle, algorithm: str, label: str, timelimit: float
    ) -> JobHandle:
        files, data = _upload_form(bundle, algorithm, label, timelimit)
        resp = _json(await self._request("POST", "/v1/jobs", files=files, data=data))
        return JobHandle(resp["job_id"], connection=self)

    async def status(self, handle: JobHandle) -> JobInfo:
        data = _json(await self._request("GET", f"/v1/jobs/{handle.job_id}"))
        return _job_info(data, handle.job_id)

    async def download_results(self, handle: JobHandle, dest_dir: str) -> List[str]:
        return await self._download(handle, "results", dest_dir)

    async def download_inputs(self, handle: JobHandle, dest_dir: str) -> List[str]:
        return await self._download(handle, "inputs", dest_dir)

    async def cancel(self, handle: JobHandle) -> bool:
        data = _json(await self._request("POST", f"/v1/jobs/{handle.job_id}/cancel"))
        return data.get("success", False)

    async def max_time_limit(self) -> Optional[int]:
        data = _json(await self._request("GET", "/v1/user/limits"))
        return data.get("max_time_limit")
