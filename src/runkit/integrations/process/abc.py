"""Child-process abstraction for testing.

Covers the helper commands the installer runs (dependency installation,
trust-marker clearing, tool self-replacement) and the dispatched kernel
process itself.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a helper command with both streams captured."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class KernelRunResult:
    """Outcome of a kernel run: stdout captured, stderr inherited."""

    exit_code: int
    stdout: str


class ProcessRunner(ABC):
    """Abstract process execution for dependency injection."""

    @abstractmethod
    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run a helper command to completion, capturing stdout and stderr.

        A non-zero exit status is reported in the result, not raised.

        Raises:
            FileNotFoundError: If the program does not exist
            CommandTimeoutError: If timeout elapses before the command exits
        """
        ...

    @abstractmethod
    def run_kernel(
        self,
        cmd: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> KernelRunResult:
        """Run a kernel, capturing stdout while stderr goes to the terminal.

        Raises:
            FileNotFoundError: If the program does not exist
            KernelTimeoutError: If timeout elapses before the kernel exits
        """
        ...

    @abstractmethod
    def which(self, program: str) -> str | None:
        """Return the full path of program on PATH, or None."""
        ...
