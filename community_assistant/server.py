"""FastAPI server for the Community Assistant.

Run with:
    uv run uvicorn community_assistant.server:app --reload --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from community_assistant.agent import create_community_agent
from community_assistant.api.routes import EXAMPLE_PROMPT, router
from community_assistant.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from community_assistant.services.directory_client import close_directory_client
from community_assistant.sessions import SessionStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

ENDPOINTS = {
    "POST /chat": "Send chat messages",
    "POST /reset": "Reset conversation history",
    "GET /history": "View conversation history",
    "GET /health": "Health check",
}


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Compile the conversation graph and create the session store once."""
    logger.info("Compiling conversation graph…")
    application.state.agent = create_community_agent()
    application.state.sessions = SessionStore()
    logger.info("Assistant ready. Available endpoints:")
    for endpoint, description in ENDPOINTS.items():
        logger.info("  %-14s %s", endpoint, description)
    logger.info('Example chat request: {"prompt": "%s"}', EXAMPLE_PROMPT)
    yield
    await close_directory_client()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Community Assistant",
    description=(
        "Chat assistant for community administrators that answers questions "
        "about residents and locations from the community directory."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID (client-supplied or generated) for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400), not 422s."""
    request_id = getattr(request.state, "request_id", "?")
    logger.warning("[%s] Rejected request body: %s", request_id, exc.errors())
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "message": "; ".join(str(err.get("msg", err)) for err in exc.errors()),
            "example": {"prompt": EXAMPLE_PROMPT},
        },
    )


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Community Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": ENDPOINTS,
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting Community Assistant on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "community_assistant.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
