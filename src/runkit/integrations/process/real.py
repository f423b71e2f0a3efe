"""Production ProcessRunner using subprocess."""

import logging
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from runkit.errors import CommandTimeoutError, KernelTimeoutError
from runkit.integrations.process.abc import KernelRunResult, ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)


class RealProcessRunner(ProcessRunner):
    """Runs commands with subprocess.run."""

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(list(cmd), timeout) from e
        return ProcessResult(
            exit_code=result.returncode, stdout=result.stdout, stderr=result.stderr
        )

    def run_kernel(
        self,
        cmd: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> KernelRunResult:
        logger.debug("Dispatching %s", " ".join(cmd))
        try:
            result = subprocess.run(
                list(cmd),
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=None,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise KernelTimeoutError(list(cmd), timeout) from e
        # Undecodable bytes survive as surrogates and line endings are untouched
        stdout = (result.stdout or b"").decode("utf-8", errors="surrogateescape")
        return KernelRunResult(exit_code=result.returncode, stdout=stdout)

    def which(self, program: str) -> str | None:
        return shutil.which(program)
