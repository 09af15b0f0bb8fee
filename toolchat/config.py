"""
Central configuration for the toolchat service.
Loads environment variables from a .env file at import time.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# --- Load .env early so everything importing config sees the vars ---
# This looks for a .env in the current working dir or parents.
load_dotenv()

logger = logging.getLogger(__name__)

#: Environment variable names
PROVIDER_ENV = "TOOLCHAT_PROVIDER"
MODEL_ENV = "TOOLCHAT_MODEL"
OLLAMA_CHAT_URL_ENV = "OLLAMA_CHAT_URL"
GROQ_API_KEY_ENV = "GROQ_API_KEY"
MAX_ROUNDS_ENV = "TOOLCHAT_MAX_ROUNDS"
MODEL_TIMEOUT_ENV = "TOOLCHAT_MODEL_TIMEOUT"
SEARCH_TIMEOUT_ENV = "TOOLCHAT_SEARCH_TIMEOUT"
SCRIPT_TIMEOUT_ENV = "TOOLCHAT_SCRIPT_TIMEOUT"
SCRIPT_INTERPRETER_ENV = "TOOLCHAT_SCRIPT_INTERPRETER"
LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_OLLAMA_CHAT_URL = "http://localhost:11434/api/chat"
DEFAULT_MODEL = "llama3.2"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

#: Path to the system prompt shipped with the package.
SYSTEM_PROMPT_PATH = Path(__file__).resolve().parent / "resources" / "system_prompt.txt"


def require_env(var_name: str) -> str:
    """
    Return the value of an environment variable or raise a clear error.

    Raises
    ------
    RuntimeError
        If the environment variable is missing or empty.
    """
    try:
        value = os.environ[var_name]
    except KeyError as exc:
        raise RuntimeError(f"Required environment variable '{var_name}' is not set.") from exc
    if not value:
        raise RuntimeError(f"Environment variable '{var_name}' is empty.")
    return value


def get_groq_api_key() -> str:
    """
    Convenience accessor specifically for the Groq API key.
    """
    return require_env(GROQ_API_KEY_ENV)


def load_system_prompt(path: Optional[Path] = None) -> str:
    """Read the system prompt, falling back to a generic one if unreadable."""
    prompt_path = path or SYSTEM_PROMPT_PATH
    try:
        return prompt_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        logger.error("Failed to read %s: %s. Using default prompt.", prompt_path, exc)
        return DEFAULT_SYSTEM_PROMPT


def _env_int(var_name: str, default: int) -> int:
    raw = os.getenv(var_name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable '{var_name}' must be an integer, got {raw!r}.") from exc


def _env_non_negative_int(var_name: str, default: int) -> int:
    value = _env_int(var_name, default)
    if value < 0:
        raise RuntimeError(f"Environment variable '{var_name}' must not be negative, got {value}.")
    return value


def _env_float(var_name: str, default: float) -> float:
    raw = os.getenv(var_name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable '{var_name}' must be a number, got {raw!r}.") from exc


@dataclass(frozen=True)
class Settings:
    """Typed runtime configuration.

    Construct via from_env() or pass explicitly in tests.
    """

    provider: str = "ollama"
    ollama_url: str = DEFAULT_OLLAMA_CHAT_URL
    default_model: str = DEFAULT_MODEL
    model_timeout: float = 120.0
    search_timeout: float = 20.0
    script_timeout: float = 30.0
    script_interpreter: str = "python3"
    #: Ceiling on tool rounds per request; 0 disables it.
    max_rounds: int = 10
    system_prompt_path: Path = SYSTEM_PROMPT_PATH
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from environment variables (and .env)."""
        return cls(
            provider=os.getenv(PROVIDER_ENV, "ollama").lower().strip(),
            ollama_url=os.getenv(OLLAMA_CHAT_URL_ENV, DEFAULT_OLLAMA_CHAT_URL),
            default_model=os.getenv(MODEL_ENV, DEFAULT_MODEL),
            model_timeout=_env_float(MODEL_TIMEOUT_ENV, 120.0),
            search_timeout=_env_float(SEARCH_TIMEOUT_ENV, 20.0),
            script_timeout=_env_float(SCRIPT_TIMEOUT_ENV, 30.0),
            script_interpreter=os.getenv(SCRIPT_INTERPRETER_ENV, "python3"),
            max_rounds=_env_non_negative_int(MAX_ROUNDS_ENV, 10),
            log_level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
        )
