"""
FastAPI application exposing the chat loop over HTTP.

Usage:
    python main.py

Or directly:
    uvicorn toolchat.api:app --host 127.0.0.1 --port 8080
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import requests
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from toolchat import __version__
from toolchat.services import Services, build_services
from toolchat.tools.web_tool import DEFAULT_COUNT

logger = logging.getLogger(__name__)


# --- Schemas ---

class ChatBody(BaseModel):
    message: str
    model: Optional[str] = Field(default=None, description="Model id; falls back to TOOLCHAT_MODEL.")


class ChatOut(BaseModel):
    response: str


class SearchBody(BaseModel):
    query: str = Field(..., min_length=1)
    count: Optional[int] = Field(default=None, ge=0)


class SearchHit(BaseModel):
    title: str
    url: str
    content: str


# --- Dependencies ---

def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized.")
    return services


# --- App ---

def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the app; ``services`` is injected by tests, otherwise built on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        yield

    app = FastAPI(
        title="toolchat",
        version=__version__,
        description="Chat with a local model that can search the web and run Python scripts.",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok", "version": __version__}

    @app.post("/chat", response_model=ChatOut, tags=["chat"])
    def chat(body: ChatBody, services: Services = Depends(get_services)):
        model = body.model or services.settings.default_model
        result = services.loop.respond(body.message, model)
        if not result.ok:
            return JSONResponse(status_code=500, content={"response": f"Error: {result.error}"})
        return ChatOut(response=result.text)

    @app.post("/search", response_model=List[SearchHit], tags=["search"])
    def search(body: SearchBody, services: Services = Depends(get_services)):
        logger.info("Received search request with query: %s", body.query)
        count = body.count if body.count is not None else DEFAULT_COUNT
        try:
            results = services.search_client.search(body.query, count)
        except requests.RequestException as exc:
            logger.error("Web search error: %s", exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        logger.info("Found %d search results", len(results))
        return [SearchHit(title=r.title, url=r.url, content=r.content) for r in results]

    return app


app = create_app()
