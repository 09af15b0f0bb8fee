"""
Service assembly: builds the shared, stateless handles once at process start.

Hosts (REST API, Streamlit page) receive a ``Services`` bundle and hand
``services.loop`` to each request; nothing here carries per-request state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from toolchat.agent import ChatLoop
from toolchat.config import Settings, load_system_prompt
from toolchat.gateway import ModelGateway, build_gateway
from toolchat.tools import ToolRegistry
from toolchat.tools.script_tool import ScriptRunner, build_script_tool
from toolchat.tools.web_tool import WebSearchClient, build_search_tool

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Services:
    settings: Settings
    search_client: WebSearchClient
    tools: ToolRegistry
    loop: ChatLoop


def build_tool_registry(search_client: WebSearchClient, runner: ScriptRunner) -> ToolRegistry:
    return ToolRegistry([build_search_tool(search_client), build_script_tool(runner)])


def build_services(
    settings: Optional[Settings] = None,
    gateway: Optional[ModelGateway] = None,
    search_client: Optional[WebSearchClient] = None,
    runner: Optional[ScriptRunner] = None,
) -> Services:
    """Wire every collaborator; anything passed in overrides the default."""
    settings = settings or Settings.from_env()
    search_client = search_client or WebSearchClient(
        user_agent=settings.user_agent,
        timeout=settings.search_timeout,
    )
    runner = runner or ScriptRunner(
        interpreter=settings.script_interpreter,
        timeout=settings.script_timeout,
    )
    tools = build_tool_registry(search_client, runner)
    loop = ChatLoop(
        gateway=gateway or build_gateway(settings),
        tools=tools,
        system_prompt=load_system_prompt(settings.system_prompt_path),
        max_rounds=settings.max_rounds,
    )
    logger.info(
        "Services ready (provider=%s, tools=%s, max_rounds=%s)",
        settings.provider,
        ", ".join(tools.names()),
        settings.max_rounds or "unbounded",
    )
    return Services(settings=settings, search_client=search_client, tools=tools, loop=loop)
