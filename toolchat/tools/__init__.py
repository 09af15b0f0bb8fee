"""Tool specifications and registry utilities for the chat loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Type

from pydantic import BaseModel, ValidationError

from toolchat.errors import CapabilityFailure
from toolchat.transcript import ToolRequest

logger = logging.getLogger(__name__)


class ToolFn(Protocol):
    """Callable signature every tool implementation must follow."""

    def __call__(self, args: Any) -> str:
        ...


@dataclass(slots=True)
class ToolSpec:
    """Metadata wrapper used by the loop to describe and invoke tools uniformly."""

    name: str
    description: str
    args_model: Type[BaseModel]
    fn: ToolFn

    def schema(self) -> Dict[str, Any]:
        """Return the function schema advertised to the model."""
        parameters = self.args_model.model_json_schema()
        parameters.pop("title", None)
        for prop in parameters.get("properties", {}).values():
            prop.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def invoke(self, arguments: Dict[str, Any]) -> str:
        """
        Validate ``arguments`` against the tool's model and run the tool.

        Raises
        ------
        CapabilityFailure
            If the arguments are invalid or the tool itself fails.
        """
        try:
            parsed = self.args_model.model_validate(arguments)
        except ValidationError as exc:
            raise CapabilityFailure(f"Invalid arguments for '{self.name}': {_describe(exc)}") from exc
        return self.fn(parsed)


@dataclass(slots=True)
class ToolOutcome:
    """Result of dispatching one tool request."""

    name: str
    text: str = ""
    failure: Optional[CapabilityFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class ToolRegistry:
    """Manages tool registration, lookup and dispatch."""

    def __init__(self, specs: Optional[Iterable[ToolSpec]] = None) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        for spec in specs or ():
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        self._tools[spec.name] = spec
        logger.debug("Registered tool: %s", spec.name)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        return [spec.schema() for spec in self._tools.values()]

    def first_known(self, requests: Iterable[ToolRequest]) -> Optional[ToolRequest]:
        """Return the first request naming a registered tool, skipping unknown names."""
        for request in requests:
            if request.name in self._tools:
                return request
            logger.warning("Ignoring request for unknown tool '%s'", request.name)
        return None

    def dispatch(self, request: ToolRequest) -> ToolOutcome:
        """Invoke the tool named by ``request``, capturing tool failures in the outcome."""
        spec = self.get(request.name)
        if spec is None:
            raise KeyError(f"Tool '{request.name}' not registered")
        try:
            text = spec.invoke(request.arguments)
        except CapabilityFailure as exc:
            logger.error("Tool '%s' failed: %s", request.name, exc)
            return ToolOutcome(name=request.name, failure=exc)
        return ToolOutcome(name=request.name, text=text)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)
