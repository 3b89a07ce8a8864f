"""FastAPI server for the clinic SDR agent.

Run with:
    uvicorn clinic_agent.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from clinic_agent.agent import create_clinic_agent
from clinic_agent.api.routes import router
from clinic_agent.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT, is_development

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the agent (clients, graph, in-memory store) once."""
    logger.info("Building clinic agent…")
    application.state.agent = create_clinic_agent()
    logger.info("Agent ready.")
    yield
    # Conversations are in-memory only; nothing to persist on shutdown.


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Clinic SDR Agent",
    description=(
        "Digital SDR for clinics — guides patients through scheduling a "
        "procedure with an LLM, mocked scheduling tools and vector memory."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS: any origin in development, an allow-list elsewhere ─────────
if is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation.

    A client-supplied ``X-Request-ID`` is reused; otherwise a UUID is
    generated.  The ID is echoed in the response headers.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Clinic SDR Agent",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting Clinic SDR API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "clinic_agent.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
