"""Python script execution tool."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from toolchat.errors import CapabilityFailure
from toolchat.tools import ToolSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScriptResult:
    stdout: str
    stderr: str
    exit_code: Optional[int]

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ScriptArgs(BaseModel):
    """Input schema for the python_invoker tool."""

    script: str = Field(description="The Python script to execute.")
    args: List[str] = Field(default_factory=list, description="Optional arguments to pass to the script.")

    @field_validator("script")
    @classmethod
    def _script_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("script must be non-empty source text")
        return value


class ScriptRunner:
    """Runs a script with ``<interpreter> -c <script> <args...>``."""

    def __init__(self, interpreter: str = "python3", timeout: Optional[float] = 30.0) -> None:
        self._interpreter = interpreter
        self._timeout = timeout

    def run(self, script: str, args: Optional[List[str]] = None) -> ScriptResult:
        """
        Execute ``script`` and capture its output.

        A non-zero exit is still returned as a ``ScriptResult``; only failures to
        launch or finish the process raise.

        Raises
        ------
        CapabilityFailure
            If the interpreter cannot be started, the command line is invalid
            or the script times out.
        """
        argv = list(args or [])
        logger.info("Executing Python script with args: %s", argv)
        try:
            completed = subprocess.run(
                [self._interpreter, "-c", script, *argv],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CapabilityFailure(
                f"Python script execution failed: timed out after {self._timeout}s",
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
            ) from exc
        except OSError as exc:
            raise CapabilityFailure(f"Python script execution failed: Failed to execute Python script: {exc}") from exc
        except ValueError as exc:
            # e.g. an embedded NUL byte in the script or an argument
            raise CapabilityFailure(f"Python script execution failed: {exc}") from exc

        # Negative return codes mean the process was killed by a signal.
        exit_code = completed.returncode if completed.returncode >= 0 else None
        return ScriptResult(stdout=completed.stdout, stderr=completed.stderr, exit_code=exit_code)


def format_result(result: ScriptResult) -> str:
    return f"Exit Code: {result.exit_code}\nStdout: {result.stdout}\nStderr: {result.stderr}"


def _decode(stream: Union[str, bytes, None]) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


def build_script_tool(runner: ScriptRunner) -> ToolSpec:
    """Wrap ``runner`` as the ``python_invoker`` tool."""

    def _run(args: ScriptArgs) -> str:
        result = runner.run(args.script, args.args)
        rendered = format_result(result)
        if not result.succeeded:
            logger.error("Python script execution failed with exit code: %s", result.exit_code)
            raise CapabilityFailure(
                f"Python script execution failed: {rendered}",
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        logger.info("Python script executed successfully")
        return rendered

    return ToolSpec(
        name="python_invoker",
        description="Executes a python script provided as a string and returns its output.",
        args_model=ScriptArgs,
        fn=_run,
    )
