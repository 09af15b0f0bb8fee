"""
Model gateways: send a transcript plus tool schemas to a chat backend and
return the assistant's reply as a ``Turn``.

Backends
- ``OllamaGateway``: plain HTTP against Ollama's ``/api/chat`` endpoint.
- ``GroqGateway``: Groq chat completions through the official SDK.

Every backend problem (network, status, payload shape) surfaces as
``TransportFailure``; gateways never retry.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import requests
from groq import Groq, GroqError

from toolchat.config import Settings, get_groq_api_key
from toolchat.errors import TransportFailure
from toolchat.transcript import Role, ToolRequest, Transcript, Turn

logger = logging.getLogger(__name__)


class ModelGateway(Protocol):
    """Anything that can turn a transcript into the next assistant turn."""

    def invoke(self, transcript: Transcript, model: str, tools: Sequence[Dict[str, Any]]) -> Turn:
        ...


def _require_turns(transcript: Transcript) -> None:
    if len(transcript) == 0:
        raise ValueError("Transcript must contain at least one turn before calling the model.")


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    """Tool arguments arrive either as an object or as a JSON-encoded string."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TransportFailure(f"Tool call arguments are not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise TransportFailure(f"Tool call arguments must be an object, got {type(raw).__name__}.")
    return raw


# --------------------------------------------------------------------- ollama
class OllamaGateway:
    """Chat gateway for a local Ollama server."""

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = 120.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def invoke(self, transcript: Transcript, model: str, tools: Sequence[Dict[str, Any]]) -> Turn:
        _require_turns(transcript)
        logger.info("Sending chat request to Ollama with model: %s", model)
        body = {
            "model": model,
            "messages": transcript.to_messages(),
            "stream": False,
            "tools": list(tools),
        }
        try:
            response = self._session.post(self._url, json=body, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Ollama request failed: %s", exc)
            raise TransportFailure(f"Failed to send request to Ollama: {exc}") from exc

        if not response.ok:
            error_msg = response.text or "Unknown error"
            logger.error("Ollama API error: %s", error_msg)
            raise TransportFailure(f"Ollama API error: {error_msg}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportFailure(f"Failed to decode Ollama response: {exc}") from exc

        turn = self._parse_reply(payload)
        logger.info("Received response from Ollama chat")
        return turn

    @staticmethod
    def _parse_reply(payload: Any) -> Turn:
        message = payload.get("message") if isinstance(payload, dict) else None
        if not isinstance(message, dict):
            raise TransportFailure("Ollama response is missing the 'message' object.")

        content = message.get("content") or ""
        if not isinstance(content, str):
            raise TransportFailure("Ollama response message content is not a string.")

        raw_calls = message.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise TransportFailure("Ollama response 'tool_calls' is not a list.")

        requests_: List[ToolRequest] = []
        for call in raw_calls:
            function = call.get("function") if isinstance(call, dict) else None
            if not isinstance(function, dict) or not isinstance(function.get("name"), str):
                raise TransportFailure("Ollama tool call is missing a function name.")
            requests_.append(
                ToolRequest(
                    name=function["name"],
                    arguments=_parse_arguments(function.get("arguments")),
                    call_id=call.get("id"),
                )
            )
        return Turn.assistant(content, requests_)


# ----------------------------------------------------------------------- groq
def _build_groq(client: Optional[Groq]) -> Groq:
    """Return a Groq client, building one if not injected."""
    if client is not None:
        return client
    return Groq(api_key=get_groq_api_key())


def _answered_request(transcript: Transcript, index: int) -> Tuple[int, ToolRequest]:
    """Pick the request the following tool turn answers; the first one when unlinked."""
    requests_ = transcript[index].tool_requests
    following = transcript[index + 1] if index + 1 < len(transcript) else None
    if following is not None and following.role is Role.TOOL and following.tool_call_id:
        for position, request in enumerate(requests_):
            if request.call_id == following.tool_call_id:
                return position, request
    return 0, requests_[0]


def _to_groq_messages(transcript: Transcript) -> List[Dict[str, Any]]:
    """
    Render the transcript in the OpenAI-compatible shape Groq expects.

    Only one tool request per assistant turn is ever answered, and Groq rejects
    call ids without a matching tool message, so each assistant turn carries
    just the call its tool turn answers.
    """
    messages: List[Dict[str, Any]] = []
    last_call_id: Optional[str] = None
    for index, turn in enumerate(transcript):
        if turn.role is Role.ASSISTANT and turn.tool_requests:
            position, request = _answered_request(transcript, index)
            last_call_id = request.call_id or f"call_{index}_{position}"
            call = {
                "id": last_call_id,
                "type": "function",
                "function": {"name": request.name, "arguments": json.dumps(request.arguments)},
            }
            messages.append({"role": "assistant", "content": turn.content, "tool_calls": [call]})
        elif turn.role is Role.TOOL:
            messages.append({"role": "tool", "content": turn.content, "tool_call_id": last_call_id})
        else:
            messages.append({"role": turn.role.value, "content": turn.content})
    return messages


class GroqGateway:
    """Chat gateway for Groq-hosted models."""

    def __init__(self, client: Optional[Groq] = None) -> None:
        self._client = _build_groq(client)

    def invoke(self, transcript: Transcript, model: str, tools: Sequence[Dict[str, Any]]) -> Turn:
        _require_turns(transcript)
        logger.info("Sending chat request to Groq with model: %s", model)

        kwargs: Dict[str, Any] = {"model": model, "messages": _to_groq_messages(transcript)}
        if tools:
            # Only the first call is ever answered, so ask for one at a time.
            kwargs["tools"] = list(tools)
            kwargs["parallel_tool_calls"] = False
        try:
            completion = self._client.chat.completions.create(**kwargs)
        except GroqError as exc:
            logger.error("Groq chat error: %s", exc)
            raise TransportFailure(f"Groq API error: {exc}") from exc

        try:
            message = completion.choices[0].message
        except (AttributeError, IndexError) as exc:
            raise TransportFailure("Groq response contained no choices.") from exc

        requests_ = [
            ToolRequest(
                name=call.function.name,
                arguments=_parse_arguments(call.function.arguments),
                call_id=getattr(call, "id", None),
            )
            for call in (getattr(message, "tool_calls", None) or [])
        ]
        logger.info("Received response from Groq chat")
        return Turn.assistant(message.content or "", requests_)


def build_gateway(settings: Settings) -> ModelGateway:
    """Select the gateway backend named by ``settings.provider``."""
    if settings.provider == "ollama":
        return OllamaGateway(url=settings.ollama_url, timeout=settings.model_timeout)
    if settings.provider == "groq":
        return GroqGateway()
    raise ValueError(f"Unsupported TOOLCHAT_PROVIDER: '{settings.provider}'. Must be 'ollama' or 'groq'.")
