"""Tool-calling chat orchestrator: a model loop with web search and script execution."""

__version__ = "0.1.0"
