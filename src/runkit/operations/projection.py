"""Extraction of the structured result from a kernel's mixed stdout.

Kernels print diagnostics and exactly one JSON object to stdout. Every "{"
is tried as the start of a JSON document; among the successful parses the
one ending furthest into the output wins, and on an equal end offset the
earliest start wins. Everything outside the winning span is diagnostic
text and belongs on stderr.
"""

import json
from dataclasses import dataclass
from typing import Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


@dataclass(frozen=True)
class ResultSpan:
    start: int
    end: int
    value: Any


@dataclass(frozen=True)
class ProjectedOutput:
    """What to write to each stream after projection.

    result is None when no JSON object was found; stdout then carries the
    raw output unchanged.
    """

    stdout: str
    stderr: str
    result: Any | None


def find_result_span(text: str) -> ResultSpan | None:
    best: ResultSpan | None = None
    start = text.find("{")
    while start != -1:
        try:
            value, end = _DECODER.raw_decode(text, start)
        except ValueError:
            pass
        else:
            if best is None or end > best.end:
                best = ResultSpan(start=start, end=end, value=value)
        start = text.find("{", start + 1)
    return best


def project_output(text: str) -> ProjectedOutput:
    """Split kernel stdout into the pretty-printed result and the diagnostics around it.

    When the result sits on its own line, the line break that follows it is
    dropped so the diagnostics read as contiguous lines.
    """
    span = find_result_span(text)
    if span is None:
        return ProjectedOutput(stdout=text, stderr="", result=None)

    before = text[: span.start]
    after = text[span.end :]
    if before == "" or before.endswith("\n"):
        if after.startswith("\r\n"):
            after = after[2:]
        elif after.startswith("\n"):
            after = after[1:]

    pretty = json.dumps(span.value, indent=2, ensure_ascii=False) + "\n"
    return ProjectedOutput(stdout=pretty, stderr=before + after, result=span.value)
