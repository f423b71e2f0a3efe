"""Production Remote implementation using httpx."""

import logging
from pathlib import Path
from typing import Any

import httpx

from runkit.errors import RemoteError
from runkit.integrations.remote.abc import Remote

logger = logging.getLogger(__name__)

USER_AGENT = "runkit"


class RealRemote(Remote):
    """HTTP access through a shared httpx.Client.

    GitHub API requests carry a bearer token when one is configured.
    """

    def __init__(self, *, timeout: float, github_token: str | None) -> None:
        self._timeout = timeout
        self._github_token = github_token
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def _headers(self, url: str) -> dict[str, str]:
        if self._github_token and url.startswith("https://api.github.com/"):
            return {
                "Authorization": f"Bearer {self._github_token}",
                "Accept": "application/vnd.github+json",
            }
        return {}

    def _get(self, url: str) -> httpx.Response | None:
        logger.debug("GET %s", url)
        try:
            response = self._client.get(url, headers=self._headers(url))
        except httpx.HTTPError as e:
            raise RemoteError(url, str(e) or type(e).__name__) from e
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise RemoteError(url, f"HTTP {response.status_code}")
        return response

    def get_json(self, url: str) -> Any | None:
        response = self._get(url)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(url, f"invalid JSON: {e}") from e

    def get_text(self, url: str) -> str | None:
        response = self._get(url)
        if response is None:
            return None
        return response.text

    def download(self, url: str, dest: Path) -> None:
        logger.debug("Downloading %s -> %s", url, dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._client.stream("GET", url, headers=self._headers(url)) as response:
                if response.status_code != 200:
                    raise RemoteError(url, f"HTTP {response.status_code}")
                with open(dest, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
        except httpx.HTTPError as e:
            dest.unlink(missing_ok=True)
            raise RemoteError(url, str(e) or type(e).__name__) from e
        except RemoteError:
            dest.unlink(missing_ok=True)
            raise
