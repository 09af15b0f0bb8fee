"""
Streamlit chat page for toolchat.

Responsibilities
- Build the shared services once per browser session
- Run a fresh chat loop for every question (no history is sent to the model)
- Render a simple chat interface and surface failures politely
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import streamlit as st

# Ensure absolute `toolchat.*` imports work even when Streamlit sets cwd to toolchat/
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from toolchat.config import Settings
from toolchat.services import Services, build_services

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(level=Settings.from_env().log_level)


def _get_services() -> Services:
    if "services" not in st.session_state:
        st.session_state["services"] = build_services()
    return st.session_state["services"]


def ask(query: str, model: str) -> str:
    """
    Run the chat loop for ``query`` and return the text to display.

    Parameters
    ----------
    query : str
        User's free-text question.
    model : str
        Model identifier passed to the gateway.

    Returns
    -------
    str
        Assistant answer, or an apology carrying the error message.
    """
    result = _get_services().loop.respond(query, model)
    if not result.ok:
        return f"Sorry, something went wrong: {result.error}"
    return result.text


def main() -> None:
    """Run the Streamlit chat UI."""
    st.title("Toolchat")

    services = _get_services()
    model = st.sidebar.text_input("Model", value=services.settings.default_model)

    if "messages" not in st.session_state:
        st.session_state["messages"] = []

    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])  # type: ignore[arg-type]

    query = st.chat_input("Ask anything")  # type: ignore[assignment]
    if not query:
        return

    with st.chat_message("user"):
        st.markdown(query)
    st.session_state.messages.append({"role": "user", "content": query})

    with st.spinner("Thinking..."):
        response = ask(query, model)

    with st.chat_message("assistant"):
        st.markdown(response)
    st.session_state.messages.append({"role": "assistant", "content": response})


if __name__ == "__main__":
    _configure_logging()
    main()
