"""Installer: the staged pipeline that puts a kernel into the bin directory.

Stages run in order: resolve source, fetch, extract, locate binary, prepare
destination, place, post-process, record manifest. A failure in any stage
raises an InstallError subclass naming that stage; temporary extraction
state is discarded and the manifest is left untouched.
"""

import logging
import os
import platform as platform_module
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from runkit.errors import (
    AlreadyInstalledError,
    BinaryNotFoundError,
    DownloadError,
    InstallStage,
    InstallStageError,
    RemoteError,
)
from runkit.integrations.process.abc import ProcessRunner
from runkit.integrations.remote.abc import Remote
from runkit.io.manifest_store import ManifestStore
from runkit.models.kinds import KernelKind, KernelSpec, get_kernel_spec
from runkit.models.manifest import KernelEntry
from runkit.models.release import ResolvedAsset, ResolvedRelease
from runkit.operations.archive import extract_archive, is_archive
from runkit.operations.packaging import (
    ScriptRuntimePackager,
    destination_name,
    locate_managed_package,
    locate_native_binary,
    remove_runtime_slots,
)
from runkit.operations.resolve import ReleaseResolver, is_windows_platform
from runkit.output import user_warning
from runkit.settings import Settings

logger = logging.getLogger(__name__)


class InstallStatus(str, Enum):
    INSTALLED = "installed"
    REINSTALLED = "reinstalled"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class InstallRequest:
    """Parameters of one install.

    Attributes:
        kernel_id: Id recorded in the manifest (catalogue id in release mode)
        local_path: Install this file instead of downloading a release
        version: Pinned version; latest release when None in release mode
        platform: Target platform identifier; detected when None
        repo: Source repository override
        force: Reinstall even when the kernel is already present
    """

    kernel_id: str
    local_path: Path | None = None
    version: str | None = None
    platform: str | None = None
    repo: str | None = None
    force: bool = False


@dataclass(frozen=True)
class InstallResult:
    entry: KernelEntry
    status: InstallStatus
    source: str


@dataclass(frozen=True)
class _Source:
    """Outcome of the resolve-source stage."""

    version: str | None
    description: str
    release: ResolvedRelease | None = None
    local_path: Path | None = None
    windows: bool = False


class Installer:
    """Runs the install pipeline for local files and release assets."""

    def __init__(
        self,
        settings: Settings,
        remote: Remote,
        process: ProcessRunner,
        manifest_store: ManifestStore,
        resolver: ReleaseResolver,
        *,
        host_system: str | None = None,
    ) -> None:
        self._settings = settings
        self._remote = remote
        self._process = process
        self._manifest_store = manifest_store
        self._resolver = resolver
        self._host_system = host_system if host_system is not None else platform_module.system()
        self._packager = ScriptRuntimePackager(process, settings.runtimes_dir)

    def install(self, request: InstallRequest) -> InstallResult:
        """Install one kernel.

        Raises:
            InstallError: Subclass naming the failed stage
            ResolutionError: No version or asset could be determined
            UnsupportedPlatformError: Host platform has no published builds
        """
        source = self._resolve_source(request)
        logger.debug("Install %s from %s", request.kernel_id, source.description)

        existing = self._manifest_store.get_entry(request.kernel_id)
        present = existing is not None and Path(existing.path).exists()
        if existing is not None and present and not request.force:
            if source.version is not None and existing.version == source.version:
                logger.debug("%s %s already installed", request.kernel_id, source.version)
                return InstallResult(
                    entry=existing, status=InstallStatus.UNCHANGED, source=source.description
                )
            raise AlreadyInstalledError(request.kernel_id, existing.version, source.version)

        with tempfile.TemporaryDirectory(prefix="runkit-install-") as tmp:
            artifact = self._produce_artifact(request, source, Path(tmp))
            dest = self._prepare_destination(request.kernel_id, artifact)
            self._place(artifact, dest)

        if existing is not None:
            self._remove_previous(Path(existing.path), dest)
        self._post_process(dest)
        entry = self._record(request.kernel_id, source.version, dest)
        self._prune_runtime_slots(request.kernel_id, source)
        status = InstallStatus.REINSTALLED if existing is not None else InstallStatus.INSTALLED
        return InstallResult(entry=entry, status=status, source=source.description)

    def _resolve_source(self, request: InstallRequest) -> _Source:
        if request.local_path is not None:
            path = request.local_path.expanduser()
            if not path.is_file():
                raise BinaryNotFoundError(f"Local kernel file not found: {path}")
            return _Source(
                version=request.version,
                description=str(path),
                local_path=path.resolve(),
                windows=os.name == "nt",
            )

        release = self._resolver.resolve(
            request.kernel_id,
            version=request.version,
            platform=request.platform,
            repo=request.repo,
        )
        return _Source(
            version=release.version,
            description=f"{release.repo}@{release.version}",
            release=release,
            windows=is_windows_platform(release.platform),
        )

    def _produce_artifact(self, request: InstallRequest, source: _Source, tmp: Path) -> Path:
        """Fetch, extract and locate: returns the file to copy into the bin dir."""
        if source.local_path is not None:
            return source.local_path

        release = source.release
        assert release is not None
        spec = get_kernel_spec(release.kernel_id)
        assert spec is not None

        fetched = self._fetch(release, release.primary, force=request.force)

        if spec.kind == KernelKind.NATIVE:
            return self._locate_native(spec, fetched, tmp, windows=source.windows)

        if spec.kind == KernelKind.MANAGED:
            extracted = extract_archive(fetched, tmp / "package") if is_archive(fetched) else None
            return locate_managed_package(fetched, extracted)

        source_asset = release.source
        if source_asset is None:
            raise BinaryNotFoundError(f"No source archive resolved for {release.kernel_id}")
        fetched_source = self._fetch(release, source_asset, force=request.force)
        runtime_dir = extract_archive(fetched, tmp / "runtime")
        source_dir = extract_archive(fetched_source, tmp / "source")
        layout = self._packager.package(
            release.kernel_id,
            release.version,
            runtime_dir,
            source_dir,
            windows=source.windows,
        )
        return layout.wrapper

    def _locate_native(self, spec: KernelSpec, fetched: Path, tmp: Path, *, windows: bool) -> Path:
        assert spec.executable_name is not None
        if not is_archive(fetched):
            return fetched
        extracted = extract_archive(fetched, tmp / "native")
        return locate_native_binary(extracted, spec.executable_name, windows=windows)

    def download_path(self, release: ResolvedRelease, asset: ResolvedAsset) -> Path:
        return self._settings.downloads_dir / release.kernel_id / release.version / asset.name

    def _fetch(self, release: ResolvedRelease, asset: ResolvedAsset, *, force: bool) -> Path:
        target = self.download_path(release, asset)
        if target.exists() and not force:
            logger.debug("Using cached download %s", target)
            return target

        partial = target.with_name(target.name + ".part")
        try:
            self._remote.download(asset.url, partial)
        except RemoteError as e:
            partial.unlink(missing_ok=True)
            raise DownloadError(f"Failed to download {asset.name}: {e.reason} ({asset.url})") from e
        os.replace(partial, target)
        return target

    def _prepare_destination(self, kernel_id: str, artifact: Path) -> Path:
        bin_dir = self._settings.bin_dir
        try:
            bin_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallStageError(
                InstallStage.PREPARE_DESTINATION, f"Cannot create {bin_dir}: {e}"
            ) from e
        return bin_dir / destination_name(kernel_id, artifact)

    def _remove_previous(self, previous: Path, dest: Path) -> None:
        """Drop an artifact left under another name by an earlier install."""
        if previous == dest or previous.parent != self._settings.bin_dir:
            return
        if previous.exists():
            logger.debug("Removing previous artifact %s", previous)
            previous.unlink()

    def _place(self, artifact: Path, dest: Path) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            shutil.copyfile(artifact, tmp_path)
            if os.name != "nt":
                tmp_path.chmod(0o755)
            os.replace(tmp_path, dest)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise InstallStageError(
                InstallStage.PLACE, f"Failed to place kernel at {dest}: {e}"
            ) from e
        logger.debug("Placed %s at %s", artifact, dest)

    def _post_process(self, dest: Path) -> None:
        """Clear the macOS quarantine attribute; failures only warn."""
        if self._host_system != "Darwin":
            return
        try:
            result = self._process.run(["xattr", "-cr", str(dest)])
        except OSError as e:
            user_warning(f"Unable to clear quarantine attribute on {dest}: {e}")
            return
        if not result.ok:
            user_warning(f"Unable to clear quarantine attribute on {dest}: {result.stderr.strip()}")

    def _prune_runtime_slots(self, kernel_id: str, source: _Source) -> None:
        """Drop runtime slots the recorded artifact no longer points into."""
        keep = None
        if source.release is not None:
            spec = get_kernel_spec(source.release.kernel_id)
            if spec is not None and spec.kind == KernelKind.SCRIPT:
                keep = source.release.version
        try:
            remove_runtime_slots(self._settings.runtimes_dir, kernel_id, keep=keep)
        except OSError as e:
            user_warning(f"Unable to remove old runtime files for {kernel_id}: {e}")

    def _record(self, kernel_id: str, version: str | None, dest: Path) -> KernelEntry:
        try:
            manifest = self._manifest_store.upsert(kernel_id, version, str(dest))
        except OSError as e:
            raise InstallStageError(
                InstallStage.RECORD_MANIFEST, f"Failed to update manifest: {e}"
            ) from e
        entry = manifest.get(kernel_id)
        assert entry is not None
        return entry
