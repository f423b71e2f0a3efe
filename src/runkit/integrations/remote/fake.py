"""Fake Remote implementation for testing.

FakeRemote serves canned responses from memory and records every URL it
was asked for, so tests can assert on network traffic.
"""

from pathlib import Path
from typing import Any

from runkit.errors import RemoteError
from runkit.integrations.remote.abc import Remote


class FakeRemote(Remote):
    """In-memory fake implementation serving canned responses.

    This class has NO public setup methods. All state is provided via constructor
    or captured during execution.
    """

    def __init__(
        self,
        *,
        json_responses: dict[str, Any] | None = None,
        text_responses: dict[str, str] | None = None,
        files: dict[str, bytes] | None = None,
        failing_urls: set[str] | None = None,
    ) -> None:
        """Create FakeRemote with canned responses.

        Args:
            json_responses: URL -> decoded JSON document
            text_responses: URL -> body text
            files: URL -> bytes served by download()
            failing_urls: URLs that raise RemoteError (simulated outage)

        URLs with no canned response behave like a 404.
        """
        self._json_responses = json_responses or {}
        self._text_responses = text_responses or {}
        self._files = files or {}
        self._failing_urls = failing_urls or set()
        self._requested_urls: list[str] = []
        self._downloads: list[tuple[str, Path]] = []

    @property
    def requested_urls(self) -> list[str]:
        """Every URL requested, in order. Returns a copy for test assertions."""
        return list(self._requested_urls)

    @property
    def downloads(self) -> list[tuple[str, Path]]:
        """(url, dest) pairs passed to download(). Returns a copy for test assertions."""
        return list(self._downloads)

    def _record(self, url: str) -> None:
        self._requested_urls.append(url)
        if url in self._failing_urls:
            raise RemoteError(url, "simulated failure")

    def get_json(self, url: str) -> Any | None:
        self._record(url)
        return self._json_responses.get(url)

    def get_text(self, url: str) -> str | None:
        self._record(url)
        return self._text_responses.get(url)

    def download(self, url: str, dest: Path) -> None:
        self._record(url)
        if url not in self._files:
            raise RemoteError(url, "HTTP 404")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self._files[url])
        self._downloads.append((url, dest))
