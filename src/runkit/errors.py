"""Exception taxonomy for runkit.

Every error the tool detects itself derives from RunkitError. The error
boundary turns these into a red "Error:" line and exit status 1.
"""

from enum import Enum


class RunkitError(Exception):
    """Base class for all tool-detected errors."""


class UnsupportedPlatformError(RunkitError):
    """Raised when the (OS, architecture) pair has no published kernel builds."""

    def __init__(self, system: str, machine: str) -> None:
        self.system = system
        self.machine = machine
        super().__init__(f"Unsupported platform: {system} ({machine})")


class ResolutionError(RunkitError):
    """Raised when no version or asset can be determined for a kernel."""


class RemoteError(RunkitError):
    """Raised by the remote integration when a request cannot be completed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class InstallStage(str, Enum):
    """Stages of the install pipeline, in execution order."""

    RESOLVE_SOURCE = "resolve-source"
    FETCH = "fetch"
    EXTRACT = "extract"
    LOCATE_BINARY = "locate-binary"
    PREPARE_DESTINATION = "prepare-destination"
    PLACE = "place"
    POST_PROCESS = "post-process"
    RECORD_MANIFEST = "record-manifest"


class InstallError(RunkitError):
    """Base class for failures inside the install pipeline."""

    stage: InstallStage = InstallStage.RESOLVE_SOURCE


class DownloadError(InstallError):
    """Raised when a release asset cannot be downloaded."""

    stage = InstallStage.FETCH


class ExtractionError(InstallError):
    """Raised when an archive is corrupt or in an unsupported format."""

    stage = InstallStage.EXTRACT


class BinaryNotFoundError(InstallError):
    """Raised when the expected executable is missing."""

    stage = InstallStage.LOCATE_BINARY


class DependencyInstallError(InstallError):
    """Raised when a script-runtime kernel's dependency step fails."""

    stage = InstallStage.LOCATE_BINARY


class AlreadyInstalledError(InstallError):
    """Raised when the destination exists at a different version and force is off."""

    stage = InstallStage.PREPARE_DESTINATION

    def __init__(self, kernel_id: str, installed: str | None, requested: str | None) -> None:
        self.kernel_id = kernel_id
        self.installed = installed
        self.requested = requested
        super().__init__(
            f"Kernel '{kernel_id}' is already installed "
            f"(installed: {installed or 'unknown'}, requested: {requested or 'unspecified'}). "
            "Use --force to reinstall."
        )


class KernelNotRegisteredError(RunkitError):
    """Raised when a kernel id has no manifest entry."""

    def __init__(self, kernel_id: str) -> None:
        self.kernel_id = kernel_id
        super().__init__(f"Kernel '{kernel_id}' is not installed. Run 'runkit kernel ls'.")


class NoDefaultKernelError(RunkitError):
    """Raised when no kernel was requested and none is marked default."""

    def __init__(self) -> None:
        super().__init__(
            "No default kernel configured. Install one with 'runkit kernel install <id>' "
            "or pass --kernel."
        )


class InvalidArgumentError(RunkitError):
    """Raised for malformed command-line input."""


class ConfigCorruptError(RunkitError):
    """Raised when a persisted record cannot be parsed or fails validation."""


class CommandTimeoutError(RunkitError):
    """Raised when a helper command exceeds its timeout."""

    def __init__(self, cmd: list[str], timeout: float | None) -> None:
        self.cmd = cmd
        self.timeout = timeout
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"Command did not finish within {self.timeout} seconds: {self.cmd[0]}"


class KernelTimeoutError(CommandTimeoutError):
    """Raised when a dispatched kernel exceeds the configured run timeout."""

    def _describe(self) -> str:
        return f"Kernel did not finish within {self.timeout} seconds: {self.cmd[0]}"


class InstallStageError(InstallError):
    """Install failure in a stage without a dedicated error type."""

    def __init__(self, stage: InstallStage, message: str) -> None:
        self.stage = stage
        super().__init__(message)
