"""Tests for splitting kernel stdout into result and diagnostics."""

from runkit.operations.projection import find_result_span, project_output


def test_result_between_diagnostic_lines() -> None:
    """Test that diagnostics around the result are joined on stderr."""
    projected = project_output('starting\n{"status": "ok"}\ndone\n')

    assert projected.stdout == '{\n  "status": "ok"\n}\n'
    assert projected.stderr == "starting\ndone\n"
    assert projected.result == {"status": "ok"}


def test_output_without_json_passes_through() -> None:
    """Test that plain output is kept on stdout unchanged."""
    projected = project_output("no structured result here\n")

    assert projected.stdout == "no structured result here\n"
    assert projected.stderr == ""
    assert projected.result is None


def test_nested_object_selects_outermost() -> None:
    """Test that inner braces do not win over the enclosing object."""
    span = find_result_span('log {"a": {"b": 1}} end')

    assert span is not None
    assert span.value == {"a": {"b": 1}}
    assert span.start == 4


def test_furthest_ending_object_wins() -> None:
    """Test that a later complete object beats an earlier one."""
    projected = project_output('progress {"step": 1}\n{"result": true}\n')

    assert projected.result == {"result": True}
    assert projected.stderr == 'progress {"step": 1}\n'


def test_unbalanced_braces_are_diagnostics() -> None:
    """Test that stray braces before the result are ignored."""
    projected = project_output('warn: { unclosed\n{"x": 1}')

    assert projected.result == {"x": 1}
    assert projected.stderr == "warn: { unclosed\n"


def test_inline_result_keeps_following_newline() -> None:
    """Test that the line break is only dropped when the result owns its line."""
    projected = project_output('result={"x": 1}\nnext\n')

    assert projected.stderr == "result=\nnext\n"


def test_crlf_after_result_is_dropped() -> None:
    """Test Windows line endings after a result line."""
    projected = project_output('a\r\n{"x": 1}\r\nb\r\n')

    assert projected.stderr == "a\r\nb\r\n"


def test_non_standard_constants_are_rejected() -> None:
    """Test that NaN makes an object ineligible."""
    projected = project_output('{"x": NaN}')

    assert projected.result is None
    assert projected.stdout == '{"x": NaN}'


def test_unicode_is_preserved() -> None:
    """Test that non-ASCII text is emitted as is."""
    projected = project_output('{"greeting": "héllo"}')

    assert projected.stdout == '{\n  "greeting": "héllo"\n}\n'
