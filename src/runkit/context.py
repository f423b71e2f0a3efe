"""Application context with dependency injection.

The RunkitContext dataclass holds the settings and every integration. It is
created once at the CLI entry point and threaded through commands via
Click's context object.
"""

import platform as platform_module
from dataclasses import dataclass
from pathlib import Path

from runkit.integrations.process.abc import ProcessRunner
from runkit.integrations.remote.abc import Remote
from runkit.integrations.time.abc import Time
from runkit.io.caches import ReleaseManifestCache, UpdateCacheStore
from runkit.io.manifest_store import ManifestStore
from runkit.operations.auto_update import AutoUpdater
from runkit.operations.dispatch import Dispatcher
from runkit.operations.install import Installer
from runkit.operations.resolve import ReleaseResolver
from runkit.settings import Settings


@dataclass(frozen=True)
class RunkitContext:
    """Immutable context holding all dependencies for runkit operations.

    Attributes:
        settings: Resolved configuration
        remote: Network access
        process: Child-process execution
        time: Clock
        manifest_store: Installed-kernel manifest
        update_cache: Auto-update gating records
        release_manifest_cache: Per-version release manifest cache
        host_system: Operating system name as reported by platform.system()
        debug: Debug flag (full stack traces in logs)
    """

    settings: Settings
    remote: Remote
    process: ProcessRunner
    time: Time
    manifest_store: ManifestStore
    update_cache: UpdateCacheStore
    release_manifest_cache: ReleaseManifestCache
    host_system: str
    debug: bool

    def resolver(self) -> ReleaseResolver:
        return ReleaseResolver(self.settings, self.remote, self.release_manifest_cache)

    def installer(self) -> Installer:
        return Installer(
            self.settings,
            self.remote,
            self.process,
            self.manifest_store,
            self.resolver(),
            host_system=self.host_system,
        )

    def auto_updater(self) -> AutoUpdater:
        return AutoUpdater(
            self.settings,
            self.remote,
            self.process,
            self.time,
            self.update_cache,
            self.manifest_store,
            self.resolver(),
            self.installer(),
        )

    def dispatcher(self) -> Dispatcher:
        return Dispatcher(self.settings, self.process)

    @staticmethod
    def for_test(
        *,
        state_dir: Path,
        settings: Settings | None = None,
        remote: Remote | None = None,
        process: ProcessRunner | None = None,
        time: Time | None = None,
        host_system: str = "Linux",
        debug: bool = False,
    ) -> "RunkitContext":
        """Create test context with optional pre-configured implementations.

        Uses fakes by default so no network call or subprocess is made.
        Auto-update is disabled unless explicit settings are passed.

        Args:
            state_dir: Root for all on-disk state (usually tmp_path)
            settings: Optional Settings. If None, derived from state_dir.
            remote: Optional Remote. If None, creates an empty FakeRemote.
            process: Optional ProcessRunner. If None, creates FakeProcessRunner.
            time: Optional Time. If None, creates FakeTime.
            host_system: Reported operating system (default "Linux").
            debug: Whether to enable debug mode (default False).

        Example:
            >>> remote = FakeRemote(json_responses={url: {"tag_name": "v1.0.0"}})
            >>> ctx = RunkitContext.for_test(state_dir=tmp_path, remote=remote)
        """
        from runkit.integrations.process.fake import FakeProcessRunner
        from runkit.integrations.remote.fake import FakeRemote
        from runkit.integrations.time.fake import FakeTime

        resolved_settings: Settings = (
            settings
            if settings is not None
            else Settings.for_state_dir(state_dir, auto_update_disabled=True)
        )
        resolved_remote: Remote = remote if remote is not None else FakeRemote()
        resolved_process: ProcessRunner = process if process is not None else FakeProcessRunner()
        resolved_time: Time = time if time is not None else FakeTime()

        return RunkitContext(
            settings=resolved_settings,
            remote=resolved_remote,
            process=resolved_process,
            time=resolved_time,
            manifest_store=ManifestStore(resolved_settings),
            update_cache=UpdateCacheStore(resolved_settings),
            release_manifest_cache=ReleaseManifestCache(resolved_settings),
            host_system=host_system,
            debug=debug,
        )


def create_context(*, debug: bool, settings: Settings | None = None) -> RunkitContext:
    """Create production context with real implementations.

    Called once at CLI entry point.

    Args:
        debug: If True, enable debug mode
        settings: Optional pre-built settings (defaults to Settings.from_env())
    """
    from runkit.integrations.process.real import RealProcessRunner
    from runkit.integrations.remote.real import RealRemote
    from runkit.integrations.time.real import RealTime

    resolved_settings = settings if settings is not None else Settings.from_env()

    return RunkitContext(
        settings=resolved_settings,
        remote=RealRemote(
            timeout=resolved_settings.request_timeout,
            github_token=resolved_settings.github_token,
        ),
        process=RealProcessRunner(),
        time=RealTime(),
        manifest_store=ManifestStore(resolved_settings),
        update_cache=UpdateCacheStore(resolved_settings),
        release_manifest_cache=ReleaseManifestCache(resolved_settings),
        host_system=platform_module.system(),
        debug=debug or resolved_settings.debug,
    )
