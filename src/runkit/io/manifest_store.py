"""Manifest Store: the durable record of installed kernels.

Every mutation is a read-modify-write under the manifest's advisory lock.
A missing manifest is initialised with defaults; a corrupt one is reported
with a warning and replaced by defaults instead of aborting the command.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from runkit.errors import KernelNotRegisteredError
from runkit.io.atomic import locked_file, read_json, write_json_atomic
from runkit.models.manifest import KernelEntry, Manifest
from runkit.output import user_warning
from runkit.settings import Settings

logger = logging.getLogger(__name__)


class ManifestStore:
    """File-backed store for the installation manifest."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def path(self) -> Path:
        return self._settings.manifest_path

    def load(self) -> Manifest:
        """Load the manifest, initialising or self-healing the file as needed."""
        with locked_file(self.path):
            return self._load_unlocked()

    def save(self, manifest: Manifest) -> None:
        with locked_file(self.path):
            self._write_unlocked(manifest)

    def upsert(self, kernel_id: str, version: str | None, path: str) -> Manifest:
        """Insert or replace the entry for kernel_id.

        Replacement keeps the entry's position; a first install becomes the default.
        """
        entry = KernelEntry(id=kernel_id, version=version, path=path)
        with locked_file(self.path):
            manifest = self._load_unlocked().with_entry(entry)
            self._write_unlocked(manifest)
        logger.debug("Recorded kernel %s (version=%s) at %s", kernel_id, version, path)
        return manifest

    def remove(self, kernel_id: str) -> KernelEntry:
        """Drop the entry for kernel_id and return it.

        Raises:
            KernelNotRegisteredError: If kernel_id has no entry
        """
        with locked_file(self.path):
            manifest = self._load_unlocked()
            entry = manifest.get(kernel_id)
            if entry is None:
                raise KernelNotRegisteredError(kernel_id)
            updated = manifest.without_entry(kernel_id)
            self._write_unlocked(updated)
        logger.debug("Removed kernel %s; default is now %s", kernel_id, updated.default_kernel)
        return entry

    def set_default(self, kernel_id: str) -> Manifest:
        """Mark kernel_id as the default.

        Raises:
            KernelNotRegisteredError: If kernel_id has no entry
        """
        with locked_file(self.path):
            manifest = self._load_unlocked()
            if manifest.get(kernel_id) is None:
                raise KernelNotRegisteredError(kernel_id)
            updated = manifest.with_default(kernel_id)
            self._write_unlocked(updated)
        return updated

    def touch_update_check(self, timestamp: str) -> None:
        with locked_file(self.path):
            manifest = self._load_unlocked().with_update_check(timestamp)
            self._write_unlocked(manifest)

    def exists(self, kernel_id: str) -> bool:
        return self.load().get(kernel_id) is not None

    def get_entry(self, kernel_id: str) -> KernelEntry | None:
        return self.load().get(kernel_id)

    def get_path(self, kernel_id: str) -> Path | None:
        entry = self.get_entry(kernel_id)
        if entry is None:
            return None
        return Path(entry.path)

    def _load_unlocked(self) -> Manifest:
        self._settings.ensure_directories()
        try:
            data = read_json(self.path)
            if data is None:
                manifest = Manifest()
                self._write_unlocked(manifest)
                return manifest
            return Manifest.model_validate(data)
        except (ValueError, ValidationError):
            logger.debug("Manifest parse failure", exc_info=True)
            user_warning(f"manifest at {self.path} is corrupt; reinitialising")
            manifest = Manifest()
            self._write_unlocked(manifest)
            return manifest

    def _write_unlocked(self, manifest: Manifest) -> None:
        write_json_atomic(self.path, manifest.to_json_dict())
