"""Update cache records.

These records only gate network calls; they are independent of the
installation manifest and a corrupt file is treated as absent.
"""

from pydantic import BaseModel, ConfigDict, Field


class VersionCache(BaseModel):
    """Last known upstream tool version."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str
    source: str
    fetched_at: str = Field(alias="fetchedAt")


class UpdateCheck(BaseModel):
    """Last check epoch and the version known at that time."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str | None = None
    last_check: int = Field(default=0, alias="lastCheck")

    def is_due(self, now: int, interval: int) -> bool:
        return now - self.last_check >= interval


class KernelUpdateCache(BaseModel):
    """Per-kernel update checks keyed by kernel id."""

    model_config = ConfigDict(frozen=True)

    kernels: dict[str, UpdateCheck] = Field(default_factory=dict)

    def get(self, kernel_id: str) -> UpdateCheck:
        return self.kernels.get(kernel_id, UpdateCheck())

    def with_check(self, kernel_id: str, check: UpdateCheck) -> "KernelUpdateCache":
        return KernelUpdateCache(kernels={**self.kernels, kernel_id: check})
