from runkit.integrations.process.abc import KernelRunResult, ProcessResult, ProcessRunner
from runkit.integrations.process.real import RealProcessRunner

__all__ = [
    "KernelRunResult",
    "ProcessResult",
    "ProcessRunner",
    "RealProcessRunner",
]
