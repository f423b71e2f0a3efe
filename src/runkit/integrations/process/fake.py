"""Fake ProcessRunner implementation for testing.

FakeProcessRunner never starts a process. Results are looked up by the
program's base name and every invocation is recorded.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from runkit.errors import CommandTimeoutError
from runkit.integrations.process.abc import KernelRunResult, ProcessResult, ProcessRunner


@dataclass(frozen=True)
class ProcessCall:
    """One recorded invocation."""

    cmd: tuple[str, ...]
    cwd: Path | None
    env: Mapping[str, str] | None


def _program_name(cmd: Sequence[str]) -> str:
    return Path(cmd[0]).name


class FakeProcessRunner(ProcessRunner):
    """In-memory fake implementation that records commands without running them.

    This class has NO public setup methods. All state is provided via constructor
    or captured during execution.
    """

    def __init__(
        self,
        *,
        results: dict[str, ProcessResult] | None = None,
        kernel_result: KernelRunResult | None = None,
        programs: dict[str, str] | None = None,
        missing_programs: set[str] | None = None,
        timed_out_programs: set[str] | None = None,
    ) -> None:
        """Create FakeProcessRunner with canned results.

        Args:
            results: Program base name -> result of run(); default is success
            kernel_result: Result of every run_kernel() call; default exit 0, no output
            programs: Program name -> path returned by which()
            missing_programs: Program base names that raise FileNotFoundError
            timed_out_programs: Program base names whose run() raises CommandTimeoutError
        """
        self._results = results or {}
        self._kernel_result = kernel_result or KernelRunResult(exit_code=0, stdout="")
        self._programs = programs or {}
        self._missing_programs = missing_programs or set()
        self._timed_out_programs = timed_out_programs or set()
        self._calls: list[ProcessCall] = []
        self._kernel_calls: list[ProcessCall] = []

    @property
    def calls(self) -> list[ProcessCall]:
        """Recorded run() invocations. Returns a copy for test assertions."""
        return list(self._calls)

    @property
    def kernel_calls(self) -> list[ProcessCall]:
        """Recorded run_kernel() invocations. Returns a copy for test assertions."""
        return list(self._kernel_calls)

    def _check_exists(self, cmd: Sequence[str]) -> None:
        if _program_name(cmd) in self._missing_programs:
            raise FileNotFoundError(f"No such file or directory: '{cmd[0]}'")

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        self._calls.append(ProcessCall(cmd=tuple(cmd), cwd=cwd, env=env))
        self._check_exists(cmd)
        if _program_name(cmd) in self._timed_out_programs:
            raise CommandTimeoutError(list(cmd), timeout)
        default = ProcessResult(exit_code=0, stdout="", stderr="")
        return self._results.get(_program_name(cmd), default)

    def run_kernel(
        self,
        cmd: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> KernelRunResult:
        self._kernel_calls.append(ProcessCall(cmd=tuple(cmd), cwd=None, env=env))
        self._check_exists(cmd)
        return self._kernel_result

    def which(self, program: str) -> str | None:
        return self._programs.get(program)
