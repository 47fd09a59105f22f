"""
Common transport interface and HTTP session setup.

A transport moves one sync document to and from a remote backend. Transports
report HTTP and network failures as unsuccessful results instead of
raising, so callers can show the backend's message and let the user retry.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..sync.envelope import SyncEnvelope

logger = logging.getLogger(__name__)

SYNC_FILE_NAME = "tabsync-sync.json"
DEFAULT_TIMEOUT = 15.0


@dataclass
class TransportResult:
    """
    Outcome of a transport call.

    Attributes:
        success: Whether the call succeeded
        message: Short user-facing message
        envelope: Downloaded document (download only)
        recoverable: True for network errors and timeouts worth retrying
        remote_id: Backend-assigned identifier, e.g. a newly created gist id
    """
    success: bool
    message: str
    envelope: Optional[dict] = None
    recoverable: bool = False
    remote_id: Optional[str] = None


class TransportError(Exception):
    """Raised by the sync engine when a transport call fails."""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.recoverable = recoverable


class Transport(ABC):
    """Abstract base class for sync backends."""

    name = "transport"

    @abstractmethod
    def test_connection(self) -> TransportResult:
        """Check credentials and reachability."""
        pass

    @abstractmethod
    def upload(self, envelope: SyncEnvelope) -> TransportResult:
        """Store the envelope remotely, replacing the previous one."""
        pass

    @abstractmethod
    def download(self) -> TransportResult:
        """
        Fetch the remote document.

        On success `envelope` holds the parsed JSON object; validating it as
        an envelope is left to the caller.
        """
        pass

    def close(self) -> None:
        """Release network resources."""
        pass


def build_session(max_retries: int = 3) -> requests.Session:
    """
    Create a requests session that retries idempotent reads.

    The request timeout applies to each attempt, so retries with backoff can
    stretch a read past it. Pass 0 to make the timeout the whole budget.

    Args:
        max_retries: Maximum retry attempts for transient failures

    Returns:
        Configured session
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "PROPFIND"],
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def network_failure(error: requests.RequestException) -> TransportResult:
    """Map a requests exception to a recoverable failed result."""
    if isinstance(error, requests.Timeout):
        message = "Request timed out"
    elif isinstance(error, requests.ConnectionError):
        message = f"Connection failed: {error}"
    else:
        message = str(error) or type(error).__name__
    logger.warning(f"Network error: {message}")
    return TransportResult(success=False, message=message, recoverable=True)
