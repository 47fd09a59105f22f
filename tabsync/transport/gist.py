"""
Gist transport.

Stores the sync document as a file in a private GitHub gist, authenticated
with a personal access token that has the `gist` scope.
"""

import json
import logging
from typing import Optional

import requests

from config.settings import GistConfig
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

GIST_DESCRIPTION = "Tabsync sync data backup"


class GistTransport(Transport):
    """
    Client for the GitHub Gist API.

    Uploading without a configured gist id creates a new private gist;
    the new id is returned in TransportResult.remote_id and reused for the
    rest of the session.

    Usage:
        transport = GistTransport(GistConfig(token="...", gist_id="abc123"))
        result = transport.download()
    """

    name = "gist"

    API_BASE_URL = "https://api.github.com"
    GISTS_ENDPOINT = "/gists"
    GIST_ENDPOINT = "/gists/{gist_id}"
    USER_ENDPOINT = "/user"

    def __init__(
        self,
        config: GistConfig,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 3,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Gist transport.

        Args:
            config: Token (never logged) and optional gist id
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for idempotent reads
            session: Preconfigured session, mainly for tests
        """
        self.gist_id = config.gist_id or None
        self.timeout = timeout
        self._session = session or build_session(max_retries)
        self._session.headers.update({
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github.v3+json",
        })

        logger.info(f"Gist transport initialized (gist={self.gist_id or 'new'})")

    def __repr__(self) -> str:
        """Never expose token in repr."""
        return f"GistTransport(gist_id='{self.gist_id}')"

    def test_connection(self) -> TransportResult:
        try:
            response = self._session.get(
                self.API_BASE_URL + self.GISTS_ENDPOINT,
                params={"per_page": 1},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code == 401:
            return TransportResult(success=False, message="Invalid token")
        if response.status_code == 403:
            return TransportResult(success=False, message="Token missing gist scope")
        if response.status_code != 200:
            return TransportResult(success=False, message=f"Error: {response.status_code}")

        message = "Token valid"
        # Needs read:user, which the token may lack
        try:
            user_response = self._session.get(
                self.API_BASE_URL + self.USER_ENDPOINT,
                timeout=self.timeout,
            )
            if user_response.status_code == 200:
                login = (_json_object(user_response) or {}).get("login")
                if login:
                    message = f"Connected as @{login}"
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Optional user lookup failed: {e}")

        return TransportResult(success=True, message=message)

    def upload(self, envelope: SyncEnvelope) -> TransportResult:
        if not self.gist_id:
            return self._create_gist(envelope)

        try:
            response = self._session.patch(
                self.API_BASE_URL + self.GIST_ENDPOINT.format(gist_id=self.gist_id),
                json={"files": {SYNC_FILE_NAME: {"content": envelope.to_json()}}},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code == 200:
            logger.info(f"Uploaded sync data to gist {self.gist_id}")
            return TransportResult(success=True, message="Upload successful", remote_id=self.gist_id)
        if response.status_code == 401:
            return TransportResult(success=False, message="Invalid token")
        if response.status_code == 404:
            logger.warning(f"Gist {self.gist_id} not found, creating a new one")
            return self._create_gist(envelope)
        return TransportResult(success=False, message=f"Error: {response.status_code}")

    def download(self) -> TransportResult:
        if not self.gist_id:
            return TransportResult(success=False, message="No Gist ID configured")

        try:
            response = self._session.get(
                self.API_BASE_URL + self.GIST_ENDPOINT.format(gist_id=self.gist_id),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code == 401:
            return TransportResult(success=False, message="Invalid token")
        if response.status_code == 404:
            return TransportResult(success=False, message="Gist not found")
        if response.status_code != 200:
            return TransportResult(success=False, message=f"Error: {response.status_code}")

        body = _json_object(response)
        if body is None:
            return TransportResult(success=False, message="Invalid response from GitHub")

        files = body.get("files") or {}
        if not isinstance(files, dict):
            return TransportResult(success=False, message="Invalid response from GitHub")

        sync_file = files.get(SYNC_FILE_NAME)
        if not sync_file:
            return TransportResult(success=False, message="Sync file not found in Gist")

        content = sync_file.get("content") if isinstance(sync_file, dict) else None
        try:
            data = json.loads(content if isinstance(content, str) else "")
        except json.JSONDecodeError:
            return TransportResult(success=False, message="Invalid JSON data in Gist")

        logger.info(f"Downloaded sync data from gist {self.gist_id}")
        return TransportResult(
            success=True,
            message="Download successful",
            envelope=data,
            remote_id=self.gist_id,
        )

    def close(self) -> None:
        self._session.close()

    def _create_gist(self, envelope: SyncEnvelope) -> TransportResult:
        try:
            response = self._session.post(
                self.API_BASE_URL + self.GISTS_ENDPOINT,
                json={
                    "description": GIST_DESCRIPTION,
                    "public": False,
                    "files": {SYNC_FILE_NAME: {"content": envelope.to_json()}},
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return network_failure(e)

        if response.status_code == 201:
            gist_id = (_json_object(response) or {}).get("id")
            if not gist_id:
                return TransportResult(success=False, message="Invalid response from GitHub")
            self.gist_id = str(gist_id)
            logger.info(f"Created gist {self.gist_id}")
            return TransportResult(success=True, message="Gist created", remote_id=self.gist_id)
        if response.status_code == 401:
            return TransportResult(success=False, message="Invalid token")
        return TransportResult(success=False, message=f"Error: {response.status_code}")


def _json_object(response: requests.Response) -> Optional[dict]:
    """Decode a JSON response body, or None when it is not a JSON object."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
