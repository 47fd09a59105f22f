"""
WebDAV transport.

Stores the sync document as a single JSON file inside a configured
directory on any WebDAV-compatible file store (Nextcloud, Nutstore, ...).
"""

import json
import logging
from typing import Optional

import requests

from config.settings import WebDAVConfig
from ..sync.envelope import SyncEnvelope
from .base import (
    DEFAULT_TIMEOUT,
    SYNC_FILE_NAME,
    Transport,
    TransportResult,
    build_session,
    network_failure,
)

logger = logging.getLogger(__name__)


class WebDAVTransport(Transport):
    """
    Client for a WebDAV file store.

    Handles:
    - Basic authentication
    - Creating the sync directory on demand
    - Mapping HTTP status codes to user-facing messages

    Usage:
        transport = WebDAVTransport(WebDAVConfig(url="https://dav.example.com", ...))
        result = transport.upload(envelope)
    """

    name = "webdav"

    def __init__(
        self,
        config: WebDAVConfig,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize WebDAV transport.

        Args:
            config: Server URL, credentials and directory (password never logged)
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for idempotent reads
            session: Preconfigured session, mainly for tests
        """
        self.config = config
        self.timeout = timeout
        self._session = session or build_session(max_retries)
        self._session.auth = (config.username, config.password)

        logger.info(f"WebDAV transport initialized for {self.dir_url}")

    def __repr__(self) -> str:
        return f"WebDAVTransport(url='{self.dir_url}')"

    @property
    def dir_url(self) -> str:
        """URL of the sync directory, always ending in a slash."""
        base_url = self.config.url.strip().rstrip("/")
        path = self.config.path.strip() or "/"
        if not path.startswith("/"):
            path = "/" + path
        if not path.endswith("/"):
            path = path + "/"
        return f"{base_url}{path}"

    @property
    def file_url(self) -> str:
        return f"{self.dir_url}{SYNC_FILE_NAME}"

    def test_connection(self) -> TransportResult:
        try:
            response = self._session.request(
                "PROPFIND",
                self.dir_url,
                headers={"Depth": "0", "Content-Type": "application/xml"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code in (200, 207):
            return TransportResult(success=True, message="Connection successful")
        if response.status_code == 401:
            return TransportResult(success=False, message="Authentication failed")
        if response.status_code == 404:
            if self._create_directory():
                return TransportResult(success=True, message="Directory created")
            return TransportResult(success=False, message="Directory not found and cannot create")
        return self._http_failure(response)

    def upload(self, envelope: SyncEnvelope) -> TransportResult:
        self._create_directory()

        try:
            response = self._session.put(
                self.file_url,
                data=envelope.to_json().encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code in (200, 201, 204):
            logger.info(f"Uploaded sync data to {self.file_url}")
            return TransportResult(success=True, message="Upload successful")
        if response.status_code == 401:
            return TransportResult(success=False, message="Authentication failed")
        return self._http_failure(response)

    def download(self) -> TransportResult:
        try:
            response = self._session.get(self.file_url, timeout=self.timeout)
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code == 200:
            try:
                data = json.loads(response.text)
            except json.JSONDecodeError:
                return TransportResult(success=False, message="Invalid JSON data")
            logger.info(f"Downloaded sync data from {self.file_url}")
            return TransportResult(success=True, message="Download successful", envelope=data)
        if response.status_code == 404:
            return TransportResult(success=False, message="No sync data found")
        if response.status_code == 401:
            return TransportResult(success=False, message="Authentication failed")
        return self._http_failure(response)

    def close(self) -> None:
        self._session.close()

    def _create_directory(self) -> bool:
        """Create the sync directory; an existing directory is not an error to the caller."""
        try:
            response = self._session.request("MKCOL", self.dir_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"MKCOL {self.dir_url} failed: {e}")
            return False
        return response.status_code in (200, 201)

    @staticmethod
    def _http_failure(response: requests.Response) -> TransportResult:
        message = f"Error: {response.status_code} {response.reason or ''}".strip()
        logger.warning(f"WebDAV request failed: {message}")
        return TransportResult(success=False, message=message)
