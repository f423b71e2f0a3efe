"""Installation manifest models (config.json)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class KernelEntry(BaseModel):
    """One installed kernel."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    version: str | None = None
    path: str


class Manifest(BaseModel):
    """Installed kernels plus the default selection.

    Invariants (checked on load):
    - installed kernel ids are unique
    - default_kernel is None or the id of an installed kernel

    All mutators return a new Manifest; instances are never changed in place.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    default_kernel: str | None = Field(default=None, alias="defaultKernel")
    installed_kernels: tuple[KernelEntry, ...] = Field(default=(), alias="installedKernels")
    last_update_check: str | None = Field(default=None, alias="lastUpdateCheck")

    @model_validator(mode="after")
    def _check_invariants(self) -> "Manifest":
        ids = [entry.id for entry in self.installed_kernels]
        duplicates = sorted({kernel_id for kernel_id in ids if ids.count(kernel_id) > 1})
        if duplicates:
            msg = f"Duplicate kernel ids: {', '.join(duplicates)}"
            raise ValueError(msg)
        if self.default_kernel is not None and self.default_kernel not in ids:
            msg = f"Default kernel '{self.default_kernel}' is not installed"
            raise ValueError(msg)
        return self

    def get(self, kernel_id: str) -> KernelEntry | None:
        for entry in self.installed_kernels:
            if entry.id == kernel_id:
                return entry
        return None

    def with_entry(self, entry: KernelEntry) -> "Manifest":
        """Replace the entry with the same id in place, or append it.

        Sets the default to this entry when no default is set yet.
        """
        replaced = False
        entries: list[KernelEntry] = []
        for existing in self.installed_kernels:
            if existing.id == entry.id:
                entries.append(entry)
                replaced = True
            else:
                entries.append(existing)
        if not replaced:
            entries.append(entry)

        default = self.default_kernel if self.default_kernel else entry.id
        return self.model_copy(
            update={"installed_kernels": tuple(entries), "default_kernel": default}
        )

    def without_entry(self, kernel_id: str) -> "Manifest":
        """Drop the entry; a removed default falls back to the first remaining entry."""
        entries = tuple(entry for entry in self.installed_kernels if entry.id != kernel_id)
        default = self.default_kernel
        if default == kernel_id:
            default = entries[0].id if entries else None
        return self.model_copy(update={"installed_kernels": entries, "default_kernel": default})

    def with_default(self, kernel_id: str | None) -> "Manifest":
        if kernel_id is not None and self.get(kernel_id) is None:
            msg = f"Default kernel '{kernel_id}' is not installed"
            raise ValueError(msg)
        return self.model_copy(update={"default_kernel": kernel_id})

    def with_update_check(self, timestamp: str) -> "Manifest":
        return self.model_copy(update={"last_update_check": timestamp})

    def to_json_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        data["installedKernels"] = list(data["installedKernels"])
        return data
