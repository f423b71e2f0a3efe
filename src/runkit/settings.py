"""Runtime settings built once at the CLI entry point.

Settings are read from the environment, then from the optional
<state dir>/settings.toml, then from built-in defaults. The resulting value
is immutable and handed to every component; nothing below the CLI layer
reads os.environ.
"""

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from runkit.errors import ConfigCorruptError

logger = logging.getLogger(__name__)

DEFAULT_AUTO_UPDATE_INTERVAL = 86400
DEFAULT_RELEASE_REPO = "runkit-dev/runkit-release"
DEFAULT_REQUEST_TIMEOUT = 60.0
SETTINGS_FILE_NAME = "settings.toml"

_TRUTHY = {"1", "true", "yes", "on"}


def _is_truthy(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


def _parse_interval(raw: Any) -> int:
    try:
        interval = int(str(raw).strip())
    except ValueError:
        logger.debug("Ignoring non-numeric auto-update interval: %r", raw)
        return DEFAULT_AUTO_UPDATE_INTERVAL
    if interval < 0:
        return DEFAULT_AUTO_UPDATE_INTERVAL
    return interval


def _parse_timeout(raw: Any, default: float | None) -> float | None:
    try:
        timeout = float(str(raw).strip())
    except ValueError:
        logger.debug("Ignoring non-numeric timeout: %r", raw)
        return default
    if timeout <= 0:
        return default
    return timeout


def _load_settings_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigCorruptError(f"Invalid settings file {path}: {e}") from e


def detect_source_checkout(package_dir: Path | None = None) -> bool:
    """Whether the package runs from a git checkout of its own src layout.

    Only <root>/src/runkit with <root>/.git counts. Installed copies under
    site-packages never do, even when a parent directory is a repository.
    """
    if package_dir is None:
        package_dir = Path(__file__).resolve().parent
    if "site-packages" in package_dir.parts or "dist-packages" in package_dir.parts:
        return False
    if package_dir.parent.name != "src":
        return False
    return (package_dir.parent.parent / ".git").exists()


@dataclass(frozen=True)
class Settings:
    """Immutable tool configuration.

    Attributes:
        state_dir: Root of all persisted state
        bin_dir: Where installed kernels are placed
        cache_dir: Downloads and cached release manifests
        manifest_path: Installation manifest (config.json)
        auto_update_interval: Seconds between update checks
        auto_update_disabled: Disables both auto-update timers
        release_repo: Repository publishing the tool VERSION and release manifests
        kernel_repos: Per-kernel source repository overrides
        global_kernel_repo: Override applied to every kernel without its own
        request_timeout: Timeout in seconds for every network request
        run_timeout: Optional timeout for dispatched kernel processes
        debug: Debug logging enabled
        github_token: Token sent with GitHub API requests
        source_checkout: Tool is running from a version-controlled checkout
    """

    state_dir: Path
    bin_dir: Path
    cache_dir: Path
    manifest_path: Path
    auto_update_interval: int = DEFAULT_AUTO_UPDATE_INTERVAL
    auto_update_disabled: bool = False
    release_repo: str = DEFAULT_RELEASE_REPO
    kernel_repos: Mapping[str, str] = field(default_factory=dict)
    global_kernel_repo: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    run_timeout: float | None = None
    debug: bool = False
    github_token: str | None = None
    source_checkout: bool = False

    @staticmethod
    def for_state_dir(state_dir: Path, **overrides: Any) -> "Settings":
        """Build settings rooted at state_dir with the standard sub-layout."""
        values: dict[str, Any] = {
            "state_dir": state_dir,
            "bin_dir": state_dir / "bin",
            "cache_dir": state_dir / "cache",
            "manifest_path": state_dir / "config.json",
        }
        values.update(overrides)
        return Settings(**values)

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables and settings.toml.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigCorruptError: If settings.toml exists but is not valid TOML
        """
        env = os.environ if environ is None else environ

        state_dir = Path(env.get("RUNKIT_STATE_DIR") or Path.home() / ".runkit").expanduser()
        file_values = _load_settings_file(state_dir / SETTINGS_FILE_NAME)

        bin_dir = Path(env.get("RUNKIT_BIN_DIR") or state_dir / "bin").expanduser()
        cache_dir = Path(env.get("RUNKIT_CACHE_DIR") or state_dir / "cache").expanduser()
        manifest_path = Path(env.get("RUNKIT_CONFIG") or state_dir / "config.json").expanduser()

        raw_interval = env.get("RUNKIT_AUTO_UPDATE_INTERVAL")
        if raw_interval is None:
            raw_interval = file_values.get("auto_update_interval", DEFAULT_AUTO_UPDATE_INTERVAL)
        interval = _parse_interval(raw_interval)

        disabled = _is_truthy(env.get("RUNKIT_NO_AUTO_UPDATE"))
        if not disabled and file_values.get("auto_update") is False:
            disabled = True

        release_repo = env.get("RUNKIT_RELEASE_REPO") or str(
            file_values.get("release_repo", DEFAULT_RELEASE_REPO)
        )

        kernel_repos: dict[str, str] = {
            str(key): str(value) for key, value in file_values.get("kernel_repos", {}).items()
        }
        prefix = "RUNKIT_KERNEL_REPO_"
        for key, value in env.items():
            if key.startswith(prefix) and value:
                kernel_repos[key[len(prefix) :].lower()] = value

        raw_timeout = env.get("RUNKIT_HTTP_TIMEOUT")
        if raw_timeout is None:
            raw_timeout = file_values.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        request_timeout = _parse_timeout(raw_timeout, DEFAULT_REQUEST_TIMEOUT)
        assert request_timeout is not None

        raw_run_timeout = env.get("RUNKIT_RUN_TIMEOUT")
        run_timeout = _parse_timeout(raw_run_timeout, None) if raw_run_timeout else None

        return Settings(
            state_dir=state_dir,
            bin_dir=bin_dir,
            cache_dir=cache_dir,
            manifest_path=manifest_path,
            auto_update_interval=interval,
            auto_update_disabled=disabled,
            release_repo=release_repo,
            kernel_repos=kernel_repos,
            global_kernel_repo=env.get("RUNKIT_KERNEL_REPO") or None,
            request_timeout=request_timeout,
            run_timeout=run_timeout,
            debug=_is_truthy(env.get("RUNKIT_DEBUG")),
            github_token=env.get("GH_TOKEN") or env.get("GITHUB_TOKEN") or None,
            source_checkout=detect_source_checkout(),
        )

    def repo_for(self, kernel_id: str, default_repo: str) -> str:
        """Source repository for a kernel: per-kernel override, global override, default."""
        override = self.kernel_repos.get(kernel_id.lower())
        if override:
            return override
        if self.global_kernel_repo:
            return self.global_kernel_repo
        return default_repo

    @property
    def version_cache_path(self) -> Path:
        return self.state_dir / "latest-version.json"

    @property
    def cli_update_cache_path(self) -> Path:
        return self.state_dir / "cli-update.json"

    @property
    def kernel_update_cache_path(self) -> Path:
        return self.state_dir / "kernel-update.json"

    @property
    def update_stamp_path(self) -> Path:
        return self.state_dir / "last-update"

    @property
    def release_manifest_cache_dir(self) -> Path:
        return self.cache_dir / "release-manifests"

    @property
    def downloads_dir(self) -> Path:
        return self.cache_dir / "downloads"

    @property
    def runtimes_dir(self) -> Path:
        return self.state_dir / "runtimes"

    def ensure_directories(self) -> None:
        """Create the state, bin and cache directories if missing."""
        for directory in (self.state_dir, self.bin_dir, self.cache_dir, self.manifest_path.parent):
            directory.mkdir(parents=True, exist_ok=True)
