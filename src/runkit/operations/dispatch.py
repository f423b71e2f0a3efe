"""Run Dispatcher: kernel selection, invocation, argument translation.

The first positional token names the compose unless a compose flag was
given. Bare key=value tokens after it are folded into one JSON object
passed under the kernel kind's inline-state flag.
"""

import json
import logging
import math
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from runkit.errors import InvalidArgumentError, KernelNotRegisteredError, NoDefaultKernelError
from runkit.integrations.process.abc import ProcessRunner
from runkit.models.kinds import INLINE_STATE_FLAGS, KernelKind, get_kernel_spec
from runkit.models.manifest import KernelEntry, Manifest
from runkit.operations.projection import ProjectedOutput, project_output
from runkit.settings import Settings

logger = logging.getLogger(__name__)

COMPOSE_FLAG = "--compose"
COMPOSE_FLAGS = frozenset({"--compose", "-c"})
JSON_MARKER = "json:"

# Flags whose following token is their value, never a positional
VALUE_FLAGS = frozenset(
    {
        "--compose",
        "-c",
        "--state",
        "--input",
        "--resolver",
        "--sources",
        "--cache-dir",
        "--project",
        "--config",
        "--output",
        "-o",
        "--timeout",
        "--log-level",
    }
)

SHELL_INTERPRETERS = frozenset({"sh", "bash", "zsh", "dash", "ksh", "fish"})


@dataclass(frozen=True)
class Invocation:
    """How to start an installed artifact.

    Attributes:
        prefix: Program and leading arguments, ending with the artifact path
        kind: Kernel kind implied by the artifact
    """

    prefix: tuple[str, ...]
    kind: KernelKind


def select_kernel(manifest: Manifest, override: str | None) -> KernelEntry:
    """Pick the kernel to run: explicit override first, then the default.

    Raises:
        KernelNotRegisteredError: The chosen id has no manifest entry
        NoDefaultKernelError: No override given and no default configured
    """
    kernel_id = override or manifest.default_kernel
    if not kernel_id:
        raise NoDefaultKernelError()
    entry = manifest.get(kernel_id)
    if entry is None:
        raise KernelNotRegisteredError(kernel_id)
    return entry


def _read_shebang(path: Path) -> list[str] | None:
    try:
        with open(path, "rb") as f:
            first_line = f.readline(512)
    except OSError:
        return None
    if not first_line.startswith(b"#!"):
        return None
    words = first_line[2:].decode("utf-8", errors="replace").split()
    if not words:
        return None
    if Path(words[0]).name == "env":
        words = [word for word in words[1:] if not word.startswith("-")]
        if not words:
            return None
    return words


def classify_artifact(path: Path, *, python_executable: str | None = None) -> Invocation:
    """Derive the invocation of an installed artifact from its extension or #! line."""
    python = python_executable or sys.executable
    target = str(path)
    suffix = path.suffix.lower()

    if suffix == ".jar":
        return Invocation(prefix=("java", "-jar", target), kind=KernelKind.MANAGED)
    if suffix in (".js", ".mjs", ".cjs"):
        return Invocation(prefix=("node", target), kind=KernelKind.SCRIPT)
    if suffix == ".py":
        return Invocation(prefix=(python, target), kind=KernelKind.NATIVE)
    if suffix in (".sh", ".cmd", ".bat"):
        return Invocation(prefix=(target,), kind=KernelKind.NATIVE)
    if suffix == ".ps1":
        return Invocation(prefix=("pwsh", "-NoProfile", "-File", target), kind=KernelKind.NATIVE)

    shebang = _read_shebang(path)
    if shebang is not None:
        interpreter = Path(shebang[0]).name
        if interpreter.startswith("node"):
            return Invocation(prefix=("node", target), kind=KernelKind.SCRIPT)
        if interpreter.startswith("python"):
            return Invocation(prefix=(interpreter, target), kind=KernelKind.NATIVE)
        if interpreter in SHELL_INTERPRETERS:
            return Invocation(prefix=(target,), kind=KernelKind.NATIVE)

    return Invocation(prefix=(target,), kind=KernelKind.NATIVE)


def kernel_kind_for(entry: KernelEntry, invocation: Invocation) -> KernelKind:
    spec = get_kernel_spec(entry.id)
    if spec is not None:
        return spec.kind
    return invocation.kind


def parse_value(raw: str) -> Any:
    """Interpret the value half of a key=value argument.

    A "json:" prefix forces JSON parsing of the remainder. Otherwise the
    value is parsed as JSON when possible and kept as a string when not.

    Raises:
        InvalidArgumentError: A "json:" value is not valid JSON
    """
    if raw.startswith(JSON_MARKER):
        document = raw[len(JSON_MARKER) :]
        try:
            return _loads_strict(document)
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid JSON value '{document}': {e}") from e
    try:
        return _loads_strict(raw)
    except ValueError:
        return raw


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _loads_strict(text: str) -> Any:
    value = json.loads(text, parse_constant=_reject_constant)
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def _split_assignment(token: str) -> tuple[str, str] | None:
    key, sep, value = token.partition("=")
    if not sep or not key:
        return None
    return key, value


def translate_arguments(tokens: Sequence[str], kind: KernelKind) -> list[str]:
    """Rewrite user tokens into the kernel's calling convention.

    >>> translate_arguments(["demo.yaml", 'text={"success":true}'], KernelKind.NATIVE)
    ['--compose', 'demo.yaml', '--input', '{"text":{"success":true}}']
    """
    translated: list[str] = []
    state: dict[str, Any] = {}
    compose_given = any(
        token in COMPOSE_FLAGS or token.startswith(f"{COMPOSE_FLAG}=") for token in tokens
    )

    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1

        if token == "--":
            continue

        if token in VALUE_FLAGS:
            translated.append(token)
            if index < len(tokens):
                translated.append(tokens[index])
                index += 1
            continue

        if token.startswith("-") and token != "-":
            translated.append(token)
            continue

        if not compose_given:
            translated.extend([COMPOSE_FLAG, token])
            compose_given = True
            continue

        assignment = _split_assignment(token)
        if assignment is not None:
            key, raw = assignment
            state[key] = parse_value(raw)
            continue

        translated.append(token)

    if state:
        payload = json.dumps(state, separators=(",", ":"), ensure_ascii=False)
        translated.extend([INLINE_STATE_FLAGS[kind], payload])
    return translated


@dataclass(frozen=True)
class DispatchResult:
    exit_code: int
    output: ProjectedOutput
    command: tuple[str, ...]


class Dispatcher:
    """Runs an installed kernel and projects its output."""

    def __init__(self, settings: Settings, process: ProcessRunner) -> None:
        self._settings = settings
        self._process = process

    def build_command(self, entry: KernelEntry, tokens: Sequence[str]) -> list[str]:
        """Full command line for running entry with the user's tokens.

        Raises:
            FileNotFoundError: The installed artifact is missing
        """
        path = Path(entry.path)
        if not path.exists():
            raise FileNotFoundError(
                f"Kernel '{entry.id}' is registered at {path} but the file is missing. "
                f"Reinstall it with 'runkit kernel install {entry.id} --force'."
            )
        invocation = classify_artifact(path)
        kind = kernel_kind_for(entry, invocation)
        return [*invocation.prefix, *translate_arguments(tokens, kind)]

    def dispatch(self, entry: KernelEntry, tokens: Sequence[str]) -> DispatchResult:
        command = self.build_command(entry, tokens)
        logger.debug("Running kernel %s: %s", entry.id, command)
        result = self._process.run_kernel(command, timeout=self._settings.run_timeout)
        logger.debug("Kernel %s exited with %d", entry.id, result.exit_code)
        return DispatchResult(
            exit_code=result.exit_code,
            output=project_output(result.stdout),
            command=tuple(command),
        )
