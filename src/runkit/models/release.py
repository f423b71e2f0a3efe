"""Release manifest and resolved release models."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReleaseAsset(BaseModel):
    """One downloadable artifact listed in a release manifest."""

    model_config = ConfigDict(frozen=True)

    name: str
    download_url: str


class KernelAssets(BaseModel):
    model_config = ConfigDict(frozen=True)

    assets: tuple[ReleaseAsset, ...] = ()


class ReleaseManifest(BaseModel):
    """Structured listing of release assets per kernel id.

    Unknown top-level fields (version, notes, ...) are ignored.
    """

    model_config = ConfigDict(frozen=True)

    kernels: dict[str, KernelAssets] = Field(default_factory=dict)

    def assets_for(self, kernel_id: str) -> tuple[ReleaseAsset, ...]:
        entry = self.kernels.get(kernel_id)
        if entry is None:
            return ()
        return entry.assets

    def find_asset(self, kernel_id: str, exact: str, prefix: str) -> ReleaseAsset | None:
        """Select an asset by exact name first, then by name prefix."""
        assets = self.assets_for(kernel_id)
        for asset in assets:
            if asset.name == exact:
                return asset
        for asset in assets:
            if asset.name.startswith(prefix):
                return asset
        return None


class AssetRole(str, Enum):
    """Role of an asset in an install."""

    PRIMARY = "primary"
    SOURCE = "source"


@dataclass(frozen=True)
class ResolvedAsset:
    """A concrete download for one role of an install."""

    name: str
    url: str
    role: AssetRole
    from_manifest: bool


@dataclass(frozen=True)
class ResolvedRelease:
    """Everything the installer needs to fetch a kernel release.

    Attributes:
        kernel_id: Catalogue id
        version: Bare version string (no tag prefix)
        platform: Platform identifier the assets were selected for
        repo: Source repository
        assets: Primary asset first; script-runtime kernels add a source asset
    """

    kernel_id: str
    version: str
    platform: str
    repo: str
    assets: tuple[ResolvedAsset, ...]

    @property
    def primary(self) -> ResolvedAsset:
        return self.assets[0]

    @property
    def source(self) -> ResolvedAsset | None:
        for asset in self.assets:
            if asset.role == AssetRole.SOURCE:
                return asset
        return None
