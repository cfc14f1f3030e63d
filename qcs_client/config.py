"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from . import constants

DEFAULT_URL = "https://qcs.qperfect.io"


@dataclass
class ClientConfig:
    """Connection and polling settings of a client.

    Args:
        token: Bearer token for the service
        url: Base URL of the service
        timeout: HTTP request timeout in seconds
        poll_interval: Seconds between two job status checks
        max_timelimit: Maximum time limit in minutes; when None the value
            reported by the service for the account is used
    """
    token: str = ""
    url: str = DEFAULT_URL
    timeout: float = 30.0
    poll_interval: float = constants.DEFAULT_POLL_INTERVAL
    max_timelimit: Optional[int] = None

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Read the configuration from ``QCS_*`` environment variables.

        ``QCS_TOKEN`` is required; ``QCS_URL``, ``QCS_TIMEOUT``,
        ``QCS_POLL_INTERVAL`` and ``QCS_MAX_TIMELIMIT`` are optional.
        """
        token = os.environ.get("QCS_TOKEN")
        if not token:
            raise ValueError("QCS_TOKEN environment variable not set")

        max_timelimit = os.environ.get("QCS_MAX_TIMELIMIT")
        return cls(
            token=token,
            url=os.environ.get("QCS_URL", DEFAULT_URL),
            timeout=float(os.environ.get("QCS_TIMEOUT", 30.0)),
            poll_interval=float(
                os.environ.get("QCS_POLL_INTERVAL", constants.DEFAULT_POLL_INTERVAL)
            ),
            max_timelimit=int(max_timelimit) if max_timelimit else None,
        )
