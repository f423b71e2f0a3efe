"""Release Resolver: platform, version and asset resolution.

Assets are looked up in the structured release manifest for the version
first. When the manifest is missing, unreadable or has no matching asset,
the kernel kind's conventional download URL is used instead, so a missing
manifest is never fatal on its own.
"""

import logging
import platform as platform_module
import re

from pydantic import ValidationError

from runkit.errors import (
    InvalidArgumentError,
    RemoteError,
    ResolutionError,
    UnsupportedPlatformError,
)
from runkit.integrations.remote.abc import Remote
from runkit.io.caches import ReleaseManifestCache
from runkit.models.kinds import KERNELS, KernelKind, KernelSpec, get_kernel_spec
from runkit.models.release import AssetRole, ReleaseManifest, ResolvedAsset, ResolvedRelease
from runkit.settings import Settings

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = (
    "linux-x86_64",
    "linux-arm64",
    "macos-x86_64",
    "macos-arm64",
    "windows-x86_64",
    "windows-arm64",
)

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

_RUN_TAG_PREFIX = re.compile(r"^[A-Za-z][\w.]*(?:-[A-Za-z][\w.]*)*-run-")

GITHUB_API = "https://api.github.com"
GITHUB = "https://github.com"
RELEASE_MANIFEST_NAME = "release-manifest.json"


def _os_family(system: str) -> str | None:
    lowered = system.strip().lower()
    if lowered == "linux":
        return "linux"
    if lowered == "darwin":
        return "macos"
    if lowered == "windows" or lowered.startswith(("msys", "mingw", "cygwin")):
        return "windows"
    return None


def detect_platform(system: str, machine: str) -> str:
    """Map an (OS, CPU architecture) pair to a platform identifier.

    Raises:
        UnsupportedPlatformError: For any pair outside the six supported platforms
    """
    family = _os_family(system)
    arch = _ARCH_ALIASES.get(machine.strip().lower())
    if family is None or arch is None:
        raise UnsupportedPlatformError(system, machine)
    return f"{family}-{arch}"


def current_platform() -> str:
    return detect_platform(platform_module.system(), platform_module.machine())


def is_windows_platform(platform_id: str) -> bool:
    return platform_id.startswith("windows-")


def normalize_version_tag(tag: str) -> str:
    """Strip a leading "<name>-run-" prefix and then a leading "v".

    >>> normalize_version_tag("vendor-run-v1.2.3")
    '1.2.3'
    >>> normalize_version_tag("v1.2.3")
    '1.2.3'
    """
    version = _RUN_TAG_PREFIX.sub("", tag.strip(), count=1)
    if version.startswith("v"):
        version = version[1:]
    return version


def latest_release_url(repo: str) -> str:
    return f"{GITHUB_API}/repos/{repo}/releases/latest"


def release_manifest_url(release_repo: str, version: str) -> str:
    return f"{GITHUB}/{release_repo}/releases/download/v{version}/{RELEASE_MANIFEST_NAME}"


def release_download_url(repo: str, tag: str, asset_name: str) -> str:
    return f"{GITHUB}/{repo}/releases/download/{tag}/{asset_name}"


def source_archive_url(repo: str, version: str) -> str:
    return f"{GITHUB}/{repo}/archive/refs/tags/v{version}.tar.gz"


class ReleaseResolver:
    """Resolves a kernel id to a concrete, downloadable release."""

    def __init__(
        self, settings: Settings, remote: Remote, manifest_cache: ReleaseManifestCache
    ) -> None:
        self._settings = settings
        self._remote = remote
        self._manifest_cache = manifest_cache

    def repo_for(self, kernel_id: str) -> str:
        spec = self._require_spec(kernel_id)
        return self._settings.repo_for(kernel_id, spec.default_repo)

    def resolve_version(self, repo: str) -> str:
        """Latest published version of repo, normalised to a bare version string.

        Raises:
            ResolutionError: If the endpoint is unreachable or has no tag
        """
        url = latest_release_url(repo)
        try:
            data = self._remote.get_json(url)
        except RemoteError as e:
            raise ResolutionError(f"Unable to query latest release for {repo}: {e.reason}") from e

        tag = data.get("tag_name") if isinstance(data, dict) else None
        if not isinstance(tag, str) or not tag.strip():
            raise ResolutionError(f"Unable to determine latest release for {repo}")

        version = normalize_version_tag(tag)
        if not version:
            raise ResolutionError(f"Release tag '{tag}' of {repo} carries no version")
        logger.debug("Latest release of %s is %s (tag %s)", repo, version, tag)
        return version

    def release_manifest(self, version: str) -> ReleaseManifest | None:
        """Fetch the release manifest for version, consulting the cache first.

        Returns None when the manifest is absent or unusable.
        """
        url = release_manifest_url(self._settings.release_repo, version)
        cached = self._manifest_cache.get(version, url)
        if cached is not None:
            logger.debug("Using cached release manifest for v%s", version)
            return cached

        try:
            data = self._remote.get_json(url)
        except RemoteError as e:
            logger.debug("Release manifest unavailable (%s); using conventions", e.reason)
            return None
        if data is None:
            logger.debug("No release manifest published for v%s", version)
            return None

        try:
            manifest = ReleaseManifest.model_validate(data)
        except ValidationError:
            logger.debug("Ignoring malformed release manifest at %s", url, exc_info=True)
            return None

        self._manifest_cache.put(version, url, manifest)
        return manifest

    def resolve(
        self,
        kernel_id: str,
        *,
        version: str | None = None,
        platform: str | None = None,
        repo: str | None = None,
    ) -> ResolvedRelease:
        """Resolve the assets to download for kernel_id.

        Args:
            kernel_id: Catalogue id
            version: Pinned version (tag prefixes allowed); latest when None
            platform: Platform identifier; detected when None
            repo: Source repository override

        Raises:
            ResolutionError: Unknown kernel id or undeterminable version
            UnsupportedPlatformError: Host platform is not supported
            InvalidArgumentError: Explicit platform is not a known identifier
        """
        spec = self._require_spec(kernel_id)

        if platform is None:
            platform = current_platform()
        elif platform not in SUPPORTED_PLATFORMS:
            raise InvalidArgumentError(
                f"Unknown platform '{platform}'. Expected one of: {', '.join(SUPPORTED_PLATFORMS)}"
            )

        resolved_repo = repo or self._settings.repo_for(kernel_id, spec.default_repo)
        resolved_version = (
            normalize_version_tag(version) if version else self.resolve_version(resolved_repo)
        )
        if not resolved_version:
            raise ResolutionError(f"Invalid version '{version}'")

        manifest = self.release_manifest(resolved_version)
        assets = self._assets_for(spec, resolved_version, platform, resolved_repo, manifest)
        for asset in assets:
            logger.debug(
                "Resolved %s asset %s -> %s (manifest=%s)",
                asset.role.value,
                asset.name,
                asset.url,
                asset.from_manifest,
            )
        return ResolvedRelease(
            kernel_id=kernel_id,
            version=resolved_version,
            platform=platform,
            repo=resolved_repo,
            assets=assets,
        )

    def _require_spec(self, kernel_id: str) -> KernelSpec:
        spec = get_kernel_spec(kernel_id)
        if spec is None:
            known = ", ".join(sorted(KERNELS))
            raise ResolutionError(
                f"No release source known for kernel '{kernel_id}' (known: {known}). "
                "Use --path to install a local binary."
            )
        return spec

    def _assets_for(
        self,
        spec: KernelSpec,
        version: str,
        platform: str,
        repo: str,
        manifest: ReleaseManifest | None,
    ) -> tuple[ResolvedAsset, ...]:
        tag = spec.tag_for(version)
        prefix = spec.asset_prefix

        if spec.kind == KernelKind.NATIVE:
            extension = "zip" if is_windows_platform(platform) else "tar.gz"
            name = f"{prefix}-{platform}.{extension}"
            return (
                self._select(
                    manifest,
                    spec,
                    exact=name,
                    prefix=f"{prefix}-{platform}",
                    fallback_url=release_download_url(repo, tag, name),
                    role=AssetRole.PRIMARY,
                ),
            )

        if spec.kind == KernelKind.MANAGED:
            name = f"{prefix}-{version}.zip"
            return (
                self._select(
                    manifest,
                    spec,
                    exact=name,
                    prefix=prefix,
                    fallback_url=release_download_url(repo, tag, name),
                    role=AssetRole.PRIMARY,
                ),
            )

        runtime_name = f"{prefix}-runtime-{version}.tar.gz"
        source_name = f"{prefix}-source-{version}.tar.gz"
        return (
            self._select(
                manifest,
                spec,
                exact=runtime_name,
                prefix=f"{prefix}-runtime",
                fallback_url=release_download_url(repo, tag, runtime_name),
                role=AssetRole.PRIMARY,
            ),
            self._select(
                manifest,
                spec,
                exact=source_name,
                prefix=f"{prefix}-source",
                fallback_url=source_archive_url(repo, version),
                role=AssetRole.SOURCE,
                fallback_name=source_name,
            ),
        )

    def _select(
        self,
        manifest: ReleaseManifest | None,
        spec: KernelSpec,
        *,
        exact: str,
        prefix: str,
        fallback_url: str,
        role: AssetRole,
        fallback_name: str | None = None,
    ) -> ResolvedAsset:
        if manifest is not None:
            asset = manifest.find_asset(spec.kernel_id, exact, prefix)
            if asset is not None:
                return ResolvedAsset(
                    name=asset.name, url=asset.download_url, role=role, from_manifest=True
                )
            logger.debug("Release manifest lists no %s asset for %s", prefix, spec.kernel_id)
        return ResolvedAsset(
            name=fallback_name or exact, url=fallback_url, role=role, from_manifest=False
        )
