"""Kernel kinds and the catalogue of kernels installable from releases."""

from dataclasses import dataclass
from enum import Enum


class KernelKind(str, Enum):
    """Runtime family of a kernel; decides packaging and invocation."""

    NATIVE = "native"
    MANAGED = "managed"
    SCRIPT = "script"


@dataclass(frozen=True)
class KernelSpec:
    """Release conventions for one kernel in the catalogue.

    Attributes:
        kernel_id: Short key used on the command line and in the manifest
        kind: Runtime family
        default_repo: owner/repo publishing the kernel's releases
        asset_prefix: Name prefix of the release asset(s)
        executable_name: Executable searched for inside native archives
        tag_prefix: Prefix of the git tag a version is published under
    """

    kernel_id: str
    kind: KernelKind
    default_repo: str
    asset_prefix: str
    executable_name: str | None = None
    tag_prefix: str = "v"

    def tag_for(self, version: str) -> str:
        return f"{self.tag_prefix}{version}"


KERNELS: dict[str, KernelSpec] = {
    "rs": KernelSpec(
        kernel_id="rs",
        kind=KernelKind.NATIVE,
        default_repo="runkit-dev/runkit-kernel-rs",
        asset_prefix="runkit-run",
        executable_name="runkit-run",
        tag_prefix="runkit-run-v",
    ),
    "java": KernelSpec(
        kernel_id="java",
        kind=KernelKind.MANAGED,
        default_repo="runkit-dev/runkit-kernel-java",
        asset_prefix="runkit-kernel-java",
    ),
    "node": KernelSpec(
        kernel_id="node",
        kind=KernelKind.SCRIPT,
        default_repo="runkit-dev/runkit-kernel-js",
        asset_prefix="runkit-kernel-js",
    ),
}

# Flag carrying the compact JSON of key=value arguments, per kernel kind
INLINE_STATE_FLAGS: dict[KernelKind, str] = {
    KernelKind.SCRIPT: "--state",
    KernelKind.NATIVE: "--input",
    KernelKind.MANAGED: "--input",
}


def get_kernel_spec(kernel_id: str) -> KernelSpec | None:
    """Return the catalogue entry for kernel_id, or None for custom kernels."""
    return KERNELS.get(kernel_id)
