"""Kind-specific packaging: locating the artifact that becomes the kernel.

Native kernels ship an executable inside an archive. Managed kernels ship a
single package file. Script-runtime kernels ship a prebuilt runtime plus a
source tree whose dependencies are installed locally; a small wrapper
script that sets up the interpreter environment becomes the installed
artifact.
"""

import json
import logging
import os
import shlex
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from runkit.errors import BinaryNotFoundError, CommandTimeoutError, DependencyInstallError
from runkit.integrations.process.abc import ProcessRunner

logger = logging.getLogger(__name__)

RUNTIME_DESCRIPTOR = "runtime.json"
PACKAGE_DESCRIPTOR = "package.json"
LOCK_FILES = ("package-lock.json", "npm-shrinkwrap.json")
MANAGED_PACKAGE_SUFFIX = ".jar"

# Suffixes kept on the installed file because dispatch depends on them
DISPATCH_SUFFIXES = frozenset(
    {".exe", ".jar", ".cmd", ".bat", ".js", ".mjs", ".cjs", ".py", ".sh", ".ps1"}
)


def destination_name(kernel_id: str, artifact: Path) -> str:
    suffix = artifact.suffix.lower()
    if suffix in DISPATCH_SUFFIXES:
        return f"{kernel_id}{suffix}"
    return kernel_id


def _available_files(root: Path, limit: int = 10) -> str:
    names = sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())
    if not names:
        return "(empty)"
    listing = ", ".join(names[:limit])
    if len(names) > limit:
        listing += f", ... ({len(names) - limit} more)"
    return listing


def _shallowest(paths: list[Path]) -> Path | None:
    candidates = [p for p in paths if "node_modules" not in p.parts]
    if not candidates:
        return None
    return min(candidates, key=lambda p: (len(p.parts), str(p)))


def locate_native_binary(extracted: Path, executable_name: str, *, windows: bool) -> Path:
    """Find the kernel executable in an extracted native archive.

    Raises:
        BinaryNotFoundError: If no file with the expected name exists
    """
    names = [f"{executable_name}.exe", executable_name] if windows else [executable_name]
    for name in names:
        match = _shallowest([p for p in extracted.rglob(name) if p.is_file()])
        if match is not None:
            logger.debug("Located native binary %s", match)
            return match
    raise BinaryNotFoundError(
        f"Executable '{names[0]}' not found in release archive. "
        f"Archive contains: {_available_files(extracted)}"
    )


def locate_managed_package(fetched: Path, extracted: Path | None) -> Path:
    """Return the package file of a managed-runtime kernel.

    The fetched asset is used directly when it is the package itself;
    otherwise the extracted archive must contain one.

    Raises:
        BinaryNotFoundError: If no package file is present
    """
    if fetched.suffix.lower() == MANAGED_PACKAGE_SUFFIX:
        return fetched
    if extracted is not None:
        packages = sorted(p for p in extracted.rglob(f"*{MANAGED_PACKAGE_SUFFIX}") if p.is_file())
        if packages:
            if len(packages) > 1:
                logger.debug("Multiple packages found, using %s", packages[0])
            return packages[0]
        raise BinaryNotFoundError(
            f"No {MANAGED_PACKAGE_SUFFIX} package found in {fetched.name}. "
            f"Archive contains: {_available_files(extracted)}"
        )
    raise BinaryNotFoundError(f"{fetched.name} is not a {MANAGED_PACKAGE_SUFFIX} package")


def find_runtime_root(extracted: Path) -> Path:
    """Directory holding the runtime descriptor inside an extracted runtime archive."""
    descriptor = _shallowest([p for p in extracted.rglob(RUNTIME_DESCRIPTOR) if p.is_file()])
    if descriptor is None:
        raise BinaryNotFoundError(
            f"Runtime descriptor '{RUNTIME_DESCRIPTOR}' not found in runtime archive. "
            f"Archive contains: {_available_files(extracted)}"
        )
    return descriptor.parent


def find_source_root(extracted: Path) -> Path:
    """Directory holding package.json inside an extracted source archive."""
    descriptor = _shallowest([p for p in extracted.rglob(PACKAGE_DESCRIPTOR) if p.is_file()])
    if descriptor is None:
        raise BinaryNotFoundError(
            f"'{PACKAGE_DESCRIPTOR}' not found in source archive. "
            f"Archive contains: {_available_files(extracted)}"
        )
    return descriptor.parent


def read_entry_point(source_root: Path) -> Path:
    """Resolve the script entry point from package.json (bin first, then main).

    Raises:
        BinaryNotFoundError: If the entry point is undeclared or missing on disk
    """
    descriptor_path = source_root / PACKAGE_DESCRIPTOR
    try:
        package: dict[str, Any] = json.loads(descriptor_path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise BinaryNotFoundError(f"Invalid {descriptor_path}: {e}") from e

    entry: str | None = None
    bin_field = package.get("bin")
    if isinstance(bin_field, str) and bin_field:
        entry = bin_field
    elif isinstance(bin_field, dict) and bin_field:
        first = next(iter(bin_field.values()))
        if isinstance(first, str) and first:
            entry = first
    if entry is None:
        main = package.get("main")
        if isinstance(main, str) and main:
            entry = main
    if entry is None:
        raise BinaryNotFoundError(f"{descriptor_path} declares neither 'bin' nor 'main'")

    entry_path = (source_root / entry).resolve()
    if not entry_path.is_file():
        raise BinaryNotFoundError(
            f"Entry point {entry} declared in {descriptor_path} does not exist"
        )
    return entry_path


def _swap_into_place(staging: Path, slot: Path) -> None:
    """Rename the staged tree over slot, restoring the old tree if the rename fails."""
    retired: Path | None = None
    if slot.exists():
        retired = staging.with_name(f"{staging.name}.retired")
        os.replace(slot, retired)
    try:
        os.replace(staging, slot)
    except OSError:
        if retired is not None:
            os.replace(retired, slot)
        raise
    if retired is not None:
        shutil.rmtree(retired, ignore_errors=True)


def remove_runtime_slots(
    runtimes_dir: Path, kernel_id: str, *, keep: str | None = None
) -> list[Path]:
    """Delete the versioned runtime slots of kernel_id, except the one named keep.

    Returns the removed slot directories.
    """
    if Path(kernel_id).name != kernel_id:
        return []
    kernel_dir = runtimes_dir / kernel_id
    if not kernel_dir.is_dir():
        return []

    removed: list[Path] = []
    for slot in sorted(kernel_dir.iterdir()):
        if not slot.is_dir() or slot.name == keep:
            continue
        logger.debug("Removing runtime slot %s", slot)
        shutil.rmtree(slot)
        removed.append(slot)
    if keep is None and not any(kernel_dir.iterdir()):
        kernel_dir.rmdir()
    return removed


def posix_wrapper(runtime_home: Path, source_root: Path, entry: Path) -> str:
    node_modules = shlex.quote(str(source_root / "node_modules"))
    return (
        "#!/bin/sh\n"
        f"RUNKIT_RUNTIME_HOME={shlex.quote(str(runtime_home))}\n"
        "export RUNKIT_RUNTIME_HOME\n"
        f"NODE_PATH={node_modules}${{NODE_PATH:+:$NODE_PATH}}\n"
        "export NODE_PATH\n"
        f'exec node {shlex.quote(str(entry))} "$@"\n'
    )


def windows_wrapper(runtime_home: Path, source_root: Path, entry: Path) -> str:
    return (
        "@echo off\r\n"
        f'set "RUNKIT_RUNTIME_HOME={runtime_home}"\r\n'
        f'set "NODE_PATH={source_root / "node_modules"};%NODE_PATH%"\r\n'
        f'node "{entry}" %*\r\n'
    )


@dataclass(frozen=True)
class ScriptRuntimeLayout:
    """Where a script-runtime kernel version lives after packaging."""

    slot: Path
    runtime_home: Path
    source_root: Path
    entry: Path
    wrapper: Path


class ScriptRuntimePackager:
    """Turns extracted runtime and source archives into a runnable wrapper."""

    def __init__(self, process: ProcessRunner, runtimes_dir: Path) -> None:
        self._process = process
        self._runtimes_dir = runtimes_dir

    def slot_for(self, kernel_id: str, version: str) -> Path:
        return self._runtimes_dir / kernel_id / version

    def package(
        self,
        kernel_id: str,
        version: str,
        runtime_extracted: Path,
        source_extracted: Path,
        *,
        windows: bool,
    ) -> ScriptRuntimeLayout:
        """Lay out the versioned slot, install dependencies and write the wrapper.

        The slot is assembled in a sibling staging directory and renamed into
        place only once every step has succeeded. On failure only the staging
        directory is removed; an already installed slot is left as it was.

        Raises:
            BinaryNotFoundError: Runtime descriptor, package.json or entry point missing
            DependencyInstallError: The dependency step could not run or failed
        """
        runtime_root = find_runtime_root(runtime_extracted)
        source_root = find_source_root(source_extracted)

        slot = self.slot_for(kernel_id, version)
        slot.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f"{version}.staging-", dir=slot.parent)).resolve()
        runtime_home = slot / "runtime"
        source_home = slot / "source"
        try:
            shutil.move(str(runtime_root), str(staging / "runtime"))
            shutil.move(str(source_root), str(staging / "source"))
            self.install_dependencies(staging / "source")
            staged_entry = read_entry_point(staging / "source")
            if not staged_entry.is_relative_to(staging / "source"):
                raise BinaryNotFoundError(
                    f"Entry point {staged_entry} lies outside the source archive"
                )
            entry = source_home / staged_entry.relative_to(staging / "source")

            if windows:
                wrapper = slot / f"{kernel_id}.cmd"
                script = windows_wrapper(runtime_home, source_home, entry)
                (staging / wrapper.name).write_text(script, encoding="utf-8")
            else:
                wrapper = slot / kernel_id
                script = posix_wrapper(runtime_home, source_home, entry)
                (staging / wrapper.name).write_text(script, encoding="utf-8")
                (staging / wrapper.name).chmod(0o755)

            _swap_into_place(staging, slot)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.debug("Packaged %s %s into %s (entry %s)", kernel_id, version, slot, entry)
        return ScriptRuntimeLayout(
            slot=slot,
            runtime_home=runtime_home,
            source_root=source_home,
            entry=entry,
            wrapper=wrapper,
        )

    def install_dependencies(self, source_root: Path) -> None:
        npm = self._process.which("npm")
        if npm is None:
            raise DependencyInstallError(
                "npm is required to install script-runtime kernel dependencies "
                "but was not found on PATH"
            )

        has_lock = any((source_root / name).exists() for name in LOCK_FILES)
        cmd = [npm, "ci" if has_lock else "install", "--omit=dev"]
        try:
            result = self._process.run(cmd, cwd=source_root)
        except (OSError, CommandTimeoutError) as e:
            raise DependencyInstallError(f"Failed to run {' '.join(cmd)}: {e}") from e
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip()
            message = f"'npm {' '.join(cmd[1:])}' exited with status {result.exit_code}"
            if detail:
                message += f": {detail.splitlines()[-1]}"
            raise DependencyInstallError(message)
