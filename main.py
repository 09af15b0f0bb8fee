"""
Run the toolchat REST API.

Usage:
    python main.py

Environment variables (all optional):
    TOOLCHAT_PROVIDER       "ollama" or "groq" (default: ollama)
    TOOLCHAT_MODEL          Default model when a request names none (default: llama3.2)
    OLLAMA_CHAT_URL         Ollama chat endpoint (default: http://localhost:11434/api/chat)
    GROQ_API_KEY            Required when TOOLCHAT_PROVIDER=groq
    TOOLCHAT_MAX_ROUNDS     Tool rounds allowed per request, 0 for no limit (default: 10)
    TOOLCHAT_SCRIPT_TIMEOUT Seconds a python_invoker script may run (default: 30)
    LOG_LEVEL               Logging level (default: INFO)

For the chat page instead:
    streamlit run toolchat/ui.py
"""

import logging

import uvicorn

from toolchat.config import Settings

if __name__ == "__main__":
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    logging.getLogger(__name__).info("Server will be available at http://127.0.0.1:8080")
    uvicorn.run("toolchat.api:app", host="127.0.0.1", port=8080)
