import sys

import pytest

from toolchat.errors import CapabilityFailure
from toolchat.tools.script_tool import ScriptResult, ScriptRunner, build_script_tool, format_result


@pytest.fixture
def tool():
    return build_script_tool(ScriptRunner(interpreter=sys.executable, timeout=10))


def test_successful_script_reports_exit_code_and_streams(tool):
    text = tool.invoke({"script": "import sys; print('hello', *sys.argv[1:])", "args": ["a", "b"]})

    assert text == "Exit Code: 0\nStdout: hello a b\n\nStderr: "


def test_args_default_to_empty(tool):
    text = tool.invoke({"script": "import sys; print(len(sys.argv) - 1)"})

    assert text.startswith("Exit Code: 0\nStdout: 0\n")


def test_non_zero_exit_is_a_failure_with_all_fields(tool):
    script = "import sys; print('partial'); print('bad input', file=sys.stderr); sys.exit(3)"

    with pytest.raises(CapabilityFailure) as excinfo:
        tool.invoke({"script": script})

    failure = excinfo.value
    assert str(failure) == "Python script execution failed: Exit Code: 3\nStdout: partial\n\nStderr: bad input\n"
    assert failure.exit_code == 3
    assert failure.stdout == "partial\n"
    assert failure.stderr == "bad input\n"


def test_uncaught_exception_surfaces_traceback(tool):
    with pytest.raises(CapabilityFailure) as excinfo:
        tool.invoke({"script": "raise ValueError('nope')"})

    assert excinfo.value.exit_code == 1
    assert "ValueError: nope" in excinfo.value.stderr


def test_missing_interpreter_is_a_failure():
    tool = build_script_tool(ScriptRunner(interpreter="definitely-not-a-python-binary"))

    with pytest.raises(CapabilityFailure, match="Failed to execute Python script"):
        tool.invoke({"script": "print(1)"})


def test_runaway_script_is_cut_off():
    tool = build_script_tool(ScriptRunner(interpreter=sys.executable, timeout=0.5))

    with pytest.raises(CapabilityFailure, match="timed out"):
        tool.invoke({"script": "import time; time.sleep(10)"})


@pytest.mark.parametrize(
    "arguments",
    [{}, {"script": ""}, {"script": "  \n"}, {"script": "print(1)", "args": "not-a-list"}, {"script": "print(1)", "args": [1, 2]}],
)
def test_invalid_arguments_are_rejected(tool, arguments):
    with pytest.raises(CapabilityFailure, match="Invalid arguments for 'python_invoker'"):
        tool.invoke(arguments)


def test_absent_exit_code_renders_as_none():
    result = ScriptResult(stdout="", stderr="", exit_code=None)

    assert not result.succeeded
    assert format_result(result) == "Exit Code: None\nStdout: \nStderr: "


@pytest.mark.parametrize(
    "arguments",
    [{"script": "print(1)\x00"}, {"script": "print(1)", "args": ["a\x00b"]}],
)
def test_nul_byte_in_command_line_is_a_failure(tool, arguments):
    with pytest.raises(CapabilityFailure, match="Python script execution failed: .*null byte"):
        tool.invoke(arguments)
