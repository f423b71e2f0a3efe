"""Auto-Updater: interval-gated tool and kernel update checks.

The tool timer and the per-kernel timers are independent and stored apart
from the manifest. A check that fails still advances its last-check time,
so a broken network costs at most one attempt per interval. Failures are
warnings; the command that triggered the check always proceeds.
"""

import logging
import sys
from dataclasses import dataclass
from enum import Enum

from runkit.errors import CommandTimeoutError, RemoteError, ResolutionError, RunkitError
from runkit.integrations.process.abc import ProcessRunner
from runkit.integrations.remote.abc import Remote
from runkit.integrations.time.abc import Time
from runkit.io.caches import UpdateCacheStore
from runkit.io.manifest_store import ManifestStore
from runkit.models.caches import UpdateCheck, VersionCache
from runkit.models.kinds import get_kernel_spec
from runkit.models.manifest import KernelEntry
from runkit.operations.install import Installer, InstallRequest
from runkit.operations.resolve import ReleaseResolver, normalize_version_tag
from runkit.output import user_output, user_warning
from runkit.settings import Settings
from runkit.version import __version__

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "runkit"


def tool_version_url(release_repo: str) -> str:
    return f"https://raw.githubusercontent.com/{release_repo}/main/VERSION"


class ToolUpdateStatus(str, Enum):
    SKIPPED = "skipped"
    NOT_DUE = "not-due"
    UP_TO_DATE = "up-to-date"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class ToolUpdateOutcome:
    status: ToolUpdateStatus
    latest: str | None = None


class AutoUpdater:
    """Runs the tool self-update and kernel auto-update checks."""

    def __init__(
        self,
        settings: Settings,
        remote: Remote,
        process: ProcessRunner,
        time: Time,
        update_cache: UpdateCacheStore,
        manifest_store: ManifestStore,
        resolver: ReleaseResolver,
        installer: Installer,
        *,
        current_version: str = __version__,
        python_executable: str | None = None,
    ) -> None:
        self._settings = settings
        self._remote = remote
        self._process = process
        self._time = time
        self._update_cache = update_cache
        self._manifest_store = manifest_store
        self._resolver = resolver
        self._installer = installer
        self._current_version = current_version
        self._python = python_executable or sys.executable

    def fetch_tool_version(self) -> str:
        """Fetch the published tool version and refresh the version cache.

        Raises:
            ResolutionError: The VERSION file is unreachable or empty
        """
        url = tool_version_url(self._settings.release_repo)
        try:
            text = self._remote.get_text(url)
        except RemoteError as e:
            raise ResolutionError(f"Unable to fetch latest tool version: {e.reason}") from e
        version = normalize_version_tag(text or "")
        if not version:
            raise ResolutionError(f"No tool version published at {url}")

        now = self._time.now()
        timestamp = now.strftime("%Y-%m-%dT%H:%M:%SZ")
        self._update_cache.write_version_cache(
            VersionCache(version=version, source=self._settings.release_repo, fetched_at=timestamp)
        )
        self._update_cache.touch_stamp(int(now.timestamp()))
        self._manifest_store.touch_update_check(timestamp)
        return version

    def maybe_update_tool(
        self, *, force: bool = False, reinstall: bool = False
    ) -> ToolUpdateOutcome:
        """Check for a newer tool release and install it when the timer is due.

        Args:
            force: Ignore the interval and the disable flag
            reinstall: Install the published version even when it is the running one

        Never raises for network or install failures; they become warnings.
        """
        if self._settings.source_checkout:
            logger.debug("Running from a source checkout; tool self-update skipped")
            return ToolUpdateOutcome(ToolUpdateStatus.SKIPPED)
        if self._settings.auto_update_disabled and not force:
            return ToolUpdateOutcome(ToolUpdateStatus.SKIPPED)

        now = self._time.epoch_seconds()
        check = self._update_cache.read_cli_check()
        if not force and not check.is_due(now, self._settings.auto_update_interval):
            logger.debug("Tool update check not due (last check %d)", check.last_check)
            return ToolUpdateOutcome(ToolUpdateStatus.NOT_DUE, check.version)

        try:
            latest = self.fetch_tool_version()
        except RunkitError as e:
            user_warning(f"Tool update check failed: {e}")
            self._update_cache.write_cli_check(UpdateCheck(version=check.version, last_check=now))
            return ToolUpdateOutcome(ToolUpdateStatus.FAILED)

        if latest == self._current_version and not reinstall:
            self._update_cache.write_cli_check(UpdateCheck(version=latest, last_check=now))
            return ToolUpdateOutcome(ToolUpdateStatus.UP_TO_DATE, latest)

        user_output(f"Updating runkit {self._current_version} -> {latest}...")
        if not self._replace_tool(latest):
            self._update_cache.write_cli_check(UpdateCheck(version=check.version, last_check=now))
            return ToolUpdateOutcome(ToolUpdateStatus.FAILED, latest)

        self._update_cache.write_cli_check(UpdateCheck(version=latest, last_check=now))
        user_output(f"runkit updated to {latest}; the new version applies from the next command.")
        return ToolUpdateOutcome(ToolUpdateStatus.UPDATED, latest)

    def _replace_tool(self, version: str) -> bool:
        cmd = [self._python, "-m", "pip", "install", "--upgrade", f"{DISTRIBUTION_NAME}=={version}"]
        try:
            result = self._process.run(cmd, timeout=self._settings.request_timeout * 5)
        except (OSError, CommandTimeoutError) as e:
            user_warning(f"Self-update failed: {e}")
            return False
        if not result.ok:
            detail = result.stderr.strip().splitlines()
            reason = detail[-1] if detail else f"pip exited with status {result.exit_code}"
            user_warning(f"Self-update failed: {reason}")
            return False
        return True

    def maybe_update_kernel(self, entry: KernelEntry) -> KernelEntry:
        """Reinstall a catalogue kernel when a different version is published.

        Returns the entry to run: the updated one, or the original when no
        update happened.
        """
        if self._settings.auto_update_disabled:
            return entry
        spec = get_kernel_spec(entry.id)
        if spec is None or entry.version is None:
            return entry

        now = self._time.epoch_seconds()
        check = self._update_cache.read_kernel_checks().get(entry.id)
        if not check.is_due(now, self._settings.auto_update_interval):
            logger.debug("Kernel %s update check not due", entry.id)
            return entry

        repo = self._settings.repo_for(entry.id, spec.default_repo)
        try:
            latest = self._resolver.resolve_version(repo)
        except RunkitError as e:
            user_warning(f"Update check for kernel '{entry.id}' failed: {e}")
            self._update_cache.write_kernel_check(
                entry.id, UpdateCheck(version=entry.version, last_check=now)
            )
            return entry

        if latest == entry.version:
            self._update_cache.write_kernel_check(
                entry.id, UpdateCheck(version=latest, last_check=now)
            )
            return entry

        user_output(f"Updating kernel '{entry.id}' {entry.version} -> {latest}...")
        try:
            result = self._installer.install(
                InstallRequest(kernel_id=entry.id, version=latest, force=True)
            )
        except (RunkitError, OSError) as e:
            user_warning(f"Auto-update of kernel '{entry.id}' to {latest} failed: {e}")
            self._update_cache.write_kernel_check(
                entry.id, UpdateCheck(version=entry.version, last_check=now)
            )
            return entry

        self._update_cache.write_kernel_check(entry.id, UpdateCheck(version=latest, last_check=now))
        return result.entry
