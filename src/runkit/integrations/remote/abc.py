"""Network access abstraction for testing.

Every remote interaction (release metadata, release manifests, the tool
VERSION file, asset downloads) goes through this interface so that tests
can count and script network calls without touching the network.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class Remote(ABC):
    """Abstract HTTP operations for dependency injection."""

    @abstractmethod
    def get_json(self, url: str) -> Any | None:
        """Fetch and decode a JSON document.

        Args:
            url: Absolute URL

        Returns:
            Decoded document, or None when the server answers 404

        Raises:
            RemoteError: On connection failure, timeout, non-JSON body or
                any other non-success status
        """
        ...

    @abstractmethod
    def get_text(self, url: str) -> str | None:
        """Fetch a text document.

        Returns:
            Body text, or None when the server answers 404

        Raises:
            RemoteError: On connection failure, timeout or non-success status
        """
        ...

    @abstractmethod
    def download(self, url: str, dest: Path) -> None:
        """Stream url into dest, creating parent directories.

        Raises:
            RemoteError: On any failure; dest is not left behind
        """
        ...
