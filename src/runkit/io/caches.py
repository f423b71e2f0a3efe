"""File-backed update caches and the release-manifest cache."""

import hashlib
import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError

from runkit.io.atomic import locked_file, read_json, write_json_atomic, write_text_atomic
from runkit.models.caches import KernelUpdateCache, UpdateCheck, VersionCache
from runkit.models.release import ReleaseManifest
from runkit.settings import Settings

logger = logging.getLogger(__name__)


def _read_model[ModelT: BaseModel](path: Path, model: type[ModelT]) -> ModelT | None:
    try:
        data = read_json(path)
        if data is None:
            return None
        return model.model_validate(data)
    except (ValueError, ValidationError):
        logger.debug("Ignoring corrupt cache file %s", path, exc_info=True)
        return None


def _write_model(path: Path, record: BaseModel) -> None:
    with locked_file(path):
        write_json_atomic(path, record.model_dump(mode="json", by_alias=True))


class UpdateCacheStore:
    """Update-gating records kept in the state directory.

    Corrupt or missing files read as absent; they only decide whether a
    network call is due.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def read_version_cache(self) -> VersionCache | None:
        return _read_model(self._settings.version_cache_path, VersionCache)

    def write_version_cache(self, cache: VersionCache) -> None:
        _write_model(self._settings.version_cache_path, cache)

    def read_cli_check(self) -> UpdateCheck:
        check = _read_model(self._settings.cli_update_cache_path, UpdateCheck)
        return check if check is not None else UpdateCheck()

    def write_cli_check(self, check: UpdateCheck) -> None:
        _write_model(self._settings.cli_update_cache_path, check)

    def read_kernel_checks(self) -> KernelUpdateCache:
        cache = _read_model(self._settings.kernel_update_cache_path, KernelUpdateCache)
        return cache if cache is not None else KernelUpdateCache()

    def write_kernel_check(self, kernel_id: str, check: UpdateCheck) -> None:
        path = self._settings.kernel_update_cache_path
        with locked_file(path):
            current = _read_model(path, KernelUpdateCache) or KernelUpdateCache()
            updated = current.with_check(kernel_id, check)
            write_json_atomic(path, updated.model_dump(mode="json", by_alias=True))

    def touch_stamp(self, epoch: int) -> None:
        path = self._settings.update_stamp_path
        with locked_file(path):
            write_text_atomic(path, f"{epoch}\n")


class ReleaseManifestCache:
    """Release manifests cached per version under a content-addressed name."""

    def __init__(self, settings: Settings) -> None:
        self._root = settings.release_manifest_cache_dir

    def path_for(self, version: str, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        return self._root / f"v{version}" / f"{digest}.json"

    def get(self, version: str, url: str) -> ReleaseManifest | None:
        return _read_model(self.path_for(version, url), ReleaseManifest)

    def put(self, version: str, url: str, manifest: ReleaseManifest) -> None:
        _write_model(self.path_for(version, url), manifest)
