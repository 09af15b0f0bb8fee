"""Chat loop interleaving model calls with tool execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from toolchat.errors import RoundLimitExceeded, ToolchatError
from toolchat.gateway import ModelGateway
from toolchat.tools import ToolRegistry
from toolchat.transcript import Transcript, Turn

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    PROCESSING_TOOL_CALLS = "processing_tool_calls"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class LoopResult:
    """Terminal value of one chat request."""

    text: str = ""
    error: Optional[str] = None
    rounds: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class _RunState:
    """Mutable bookkeeping for a single request; never shared."""

    transcript: Transcript
    state: LoopState = LoopState.AWAITING_MODEL
    rounds: int = 0

    def enter(self, state: LoopState) -> None:
        logger.debug("Chat loop %s -> %s (round %d)", self.state.value, state.value, self.rounds)
        self.state = state


def _now() -> datetime:
    return datetime.now().astimezone()


class ChatLoop:
    """
    Runs one chat request: model -> (tool -> model)* -> answer.

    The loop holds only shared, stateless handles; every request builds its
    own transcript, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        tools: ToolRegistry,
        system_prompt: str,
        max_rounds: Optional[int] = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.gateway = gateway
        self.tools = tools
        self.system_prompt = system_prompt
        # None, 0 and negative values all mean "no ceiling".
        self.max_rounds = max_rounds if max_rounds and max_rounds > 0 else None
        self._clock = clock

    # --------------------------------------------------------------------- run
    def run(self, message: str, model: str) -> str:
        """
        Execute the loop for a single user message and return the final answer.

        Raises
        ------
        TransportFailure
            If the model backend fails. Never retried.
        CapabilityFailure
            If a requested tool rejects its arguments or fails.
        RoundLimitExceeded
            If the model keeps requesting tools past ``max_rounds``.
        """
        return self._execute(message, model).text

    def respond(self, message: str, model: str) -> LoopResult:
        """Like ``run`` but folds terminal failures into a ``LoopResult``."""
        try:
            return self._execute(message, model)
        except ToolchatError as exc:
            logger.error("Chat request failed: %s", exc)
            return LoopResult(error=str(exc))

    def _execute(self, message: str, model: str) -> LoopResult:
        logger.info("Processing chat request for model: %s", model)
        run = _RunState(transcript=self.seed(message))
        schemas = self.tools.schemas()

        while True:
            try:
                reply = self.gateway.invoke(run.transcript, model, schemas)
            except ToolchatError:
                run.enter(LoopState.FAILED)
                raise

            logger.info("Tool calls: %s", [request.name for request in reply.tool_requests])
            request = self.tools.first_known(reply.tool_requests)
            if request is None:
                run.enter(LoopState.DONE)
                logger.info("Final response received from the model.")
                return LoopResult(text=reply.content, rounds=run.rounds)

            run.enter(LoopState.PROCESSING_TOOL_CALLS)
            ignored = len(reply.tool_requests) - 1
            if ignored:
                logger.info("Dispatching '%s'; ignoring %d other request(s) this round.", request.name, ignored)
            if self.max_rounds is not None and run.rounds >= self.max_rounds:
                run.enter(LoopState.FAILED)
                raise RoundLimitExceeded(f"Model requested more than {self.max_rounds} tool rounds.")

            outcome = self.tools.dispatch(request)
            if not outcome.ok:
                run.enter(LoopState.FAILED)
                raise outcome.failure

            run.transcript.append(reply)
            run.transcript.append(Turn.tool(outcome.text, tool_call_id=request.call_id))
            run.rounds += 1
            run.enter(LoopState.AWAITING_MODEL)

    # ------------------------------------------------------------------ seed
    def seed(self, message: str) -> Transcript:
        """Build the opening transcript: system instructions then the user turn."""
        stamp = self._clock().isoformat()
        system = f"{self.system_prompt} Current date and time: {stamp}"
        return Transcript([Turn.system(system), Turn.user(message)])
