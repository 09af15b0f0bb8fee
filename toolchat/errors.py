"""Application-level exception types for toolchat."""

from __future__ import annotations

from typing import Optional


class ToolchatError(Exception):
    """Base exception for toolchat."""


class TransportFailure(ToolchatError):
    """Raised when the model backend is unreachable or answers with garbage."""


class CapabilityFailure(ToolchatError):
    """
    Raised when a tool rejects its arguments or its execution fails.

    Script runs attach the process details so hosts can report them.
    """

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class RoundLimitExceeded(ToolchatError):
    """Raised when a request keeps asking for tools past the configured ceiling."""
