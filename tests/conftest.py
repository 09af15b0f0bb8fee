import sys
import types
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from toolchat.transcript import ToolRequest, Turn


def reply(content: str = "", *calls: ToolRequest) -> Turn:
    """Shorthand for an assistant turn as a gateway would return it."""
    return Turn.assistant(content, list(calls))


def call(name: str, **arguments: Any) -> ToolRequest:
    return ToolRequest(name=name, arguments=arguments)


class ScriptedGateway:
    """
    Replays canned assistant turns (or raises canned exceptions) and records
    a snapshot of what the loop sent on every call.
    """

    def __init__(self, replies: List[Any]):
        self._replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def invoke(self, transcript, model, tools):
        self.calls.append(
            {
                "turns": transcript.turns,
                "model": model,
                "tools": [schema["function"]["name"] for schema in tools],
            }
        )
        if not self._replies:
            raise AssertionError("Gateway called more times than scripted.")
        nxt = self._replies.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


class FakeResponse:
    _MISSING = object()

    def __init__(self, status_code: int = 200, text: str = "", payload: Any = _MISSING):
        self.status_code = status_code
        self.text = text
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is FakeResponse._MISSING:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    """Stands in for requests.Session: returns one response or raises one error."""

    def __init__(self, response: Optional[FakeResponse] = None, exc: Optional[Exception] = None):
        self.response = response or FakeResponse()
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    def _handle(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response

    def get(self, url, **kwargs):
        return self._handle("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle("POST", url, **kwargs)


class DummyGroq:
    """
    Minimal mock for groq.Groq that supports:
    client.chat.completions.create(...)
    """

    def __init__(self, content: Optional[str] = "", tool_calls: Optional[List[Dict[str, str]]] = None, exc=None):
        self._content = content
        self._tool_calls = tool_calls or []
        self._exc = exc
        self.last_kwargs: Dict[str, Any] = {}
        self.chat = types.SimpleNamespace(completions=types.SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.last_kwargs = kwargs
        if self._exc is not None:
            raise self._exc
        calls = [
            types.SimpleNamespace(
                id=item.get("id"),
                function=types.SimpleNamespace(name=item["name"], arguments=item["arguments"]),
            )
            for item in self._tool_calls
        ]
        message = types.SimpleNamespace(content=self._content, tool_calls=calls or None)
        return types.SimpleNamespace(choices=[types.SimpleNamespace(message=message)])


SEARCH_HTML = """
<html><body>
  <div class="result results_links">
    <h2 class="result__title"><a class="result__a" href="https://status.weather.example">  Weather API Status </a></h2>
    <a class="result__snippet">All systems operational.</a>
  </div>
  <div class="result results_links">
    <h2 class="result__title"><a class="result__a" href="https://news.example/outage">Outage report</a></h2>
    <a class="result__snippet"> Partial outage resolved at 10:00 UTC. </a>
  </div>
  <div class="result results_links">
    <h2 class="result__title"><a class="result__a">No link here</a></h2>
    <a class="result__snippet">Should be skipped.</a>
  </div>
  <div class="result results_links">
    <h2 class="result__title"><a class="result__a" href="https://third.example">Third</a></h2>
    <a class="result__snippet">Third snippet.</a>
  </div>
</body></html>
"""


@pytest.fixture(autouse=True)
def set_env(monkeypatch):
    """
    Automatically set the environment every test expects.
    """
    monkeypatch.setenv("GROQ_API_KEY", "dummy-key")
    monkeypatch.setenv("TOOLCHAT_MODEL", "dummy-model")
    yield
