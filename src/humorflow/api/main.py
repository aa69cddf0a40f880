"""humorflow - FastAPI Application.

This module is the single entry point for the web service. It defines the
FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The service is stateless between requests:

- **Configuration** comes from :data:`~humorflow.core.config.config`
  (environment variables and ``.env``).
- **Pipeline runs** are executed by :class:`~humorflow.core.executor.PipelineExecutor`,
  built once at startup and shared by all requests.
- **Step configuration, models and admin checks** come from the configured
  store (Supabase in production, a JSON catalog locally).
- **Caller identity** is the ``Authorization: Bearer <access token>`` header
  issued by the admin console's Supabase auth.

Pipeline routes are plain ``def`` handlers: FastAPI runs them in its
threadpool, so a slow multi-step run never blocks other requests.

Endpoints
---------
========  ================================  ================================
Method    Path                              Purpose
========  ================================  ================================
GET       ``/api/health``                   Liveness and version
GET       ``/api/config``                   Provider and candidate tables
GET       ``/api/flavors/{id}/steps``       Step overview (admin only)
POST      ``/api/pipeline``                 Run a flavor's pipeline
========  ================================  ================================

Errors
------
Request-level failures return ``{"error": "<message>"}`` with status 400,
401, 403, 404 or 422. A run that fails part-way still returns 200: its
``results`` end with the failed step's error entry.

Usage
-----
CLI (installed entry point)::

    humorflow

Direct invocation::

    python -m humorflow.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from humorflow import __version__
from humorflow.api.models import (
    ErrorResponse,
    PipelineRequest,
    PipelineResponse,
    StepOverview,
    StepResultModel,
    StepsResponse,
)
from humorflow.core.completion import CompletionClient
from humorflow.core.config import config
from humorflow.core.errors import PipelineRequestError
from humorflow.core.executor import PipelineExecutor, PipelineRunRequest
from humorflow.core.provider_adapters import provider_registry
from humorflow.store import create_store

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}

# ---------------------------------------------------------------------------
# Application lifecycle - shared HTTP client and executor.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Opens one ``httpx.Client`` for all completion calls, builds the
        configured store and the :class:`PipelineExecutor`, and stores them
        on ``app.state``.

    On shutdown:
        Closes the HTTP client and its connection pool.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    http_client = httpx.Client(timeout=config.request_timeout_seconds)
    store = create_store(config)
    client = CompletionClient.from_config(config, http_client)
    app.state.http_client = http_client
    app.state.executor = PipelineExecutor.from_config(config, store, client)
    logger.info(
        "Pipeline executor ready (provider=%s, store=%s, strategy=%s).",
        config.completion_provider,
        store.name,
        config.candidate_strategy,
    )

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    http_client.close()
    logger.info("HTTP client closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="humorflow",
    description="Multi-step LLM caption pipeline for the humor admin console.",
    version=__version__,
    lifespan=lifespan,
)

# The admin console is served from its own origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error handlers.
# ---------------------------------------------------------------------------


@app.exception_handler(PipelineRequestError)
async def pipeline_request_error_handler(
    request: Request, exc: PipelineRequestError
) -> JSONResponse:
    """Render request-level pipeline failures as ``{"error": ...}``."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies in the same error shape."""
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_executor(request: Request) -> PipelineExecutor:
    """Return the executor built during startup."""
    return request.app.state.executor


def get_access_token(authorization: str | None = Header(default=None)) -> str | None:
    """Extract the bearer token from the ``Authorization`` header.

    Returns:
        The token, or None when the header is missing or not a bearer token.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/health")
async def health() -> dict:
    """Return service liveness and version."""
    return {"status": "ok", "version": __version__}


@app.get("/api/config")
async def get_config(executor: PipelineExecutor = Depends(get_executor)) -> dict:
    """Return the non-secret pipeline configuration.

    Returns:
        Dictionary with ``version``, ``provider``, ``provider_info`` (the
        active adapter's metadata), ``available_providers``,
        ``candidate_strategy``, ``vision_candidates``, ``text_candidates``
        and ``default_provider_model_id``.
    """
    return {
        "version": __version__,
        "provider": config.completion_provider,
        "provider_info": executor.client.adapter.get_adapter_info(),
        "available_providers": provider_registry.list_available(),
        "candidate_strategy": config.candidate_strategy,
        "vision_candidates": list(config.vision_candidates),
        "text_candidates": list(config.text_candidates),
        "default_provider_model_id": config.default_provider_model_id,
    }


@app.get("/api/flavors/{flavor_id}/steps", response_model=StepsResponse, responses=ERROR_RESPONSES)
def get_flavor_steps(
    flavor_id: int,
    executor: PipelineExecutor = Depends(get_executor),
    access_token: str | None = Depends(get_access_token),
) -> StepsResponse:
    """List a flavor's steps in execution order.

    Used by the runner to show the pipeline before it is started.

    Args:
        flavor_id: Humor flavor identifier.

    Returns:
        The flavor id and one overview entry per step.

    Raises:
        PipelineRequestError: 401/403 for non-admins, 404 when the flavor
            has no steps.
    """
    executor.authorize(access_token)
    steps = executor.load_steps(flavor_id)
    models = {model.id: model for model in executor.store.fetch_models()}
    return StepsResponse(
        flavor_id=flavor_id,
        steps=[
            StepOverview.from_step(step, models.get(step.model_ref), executor.default_model.label)
            for step in steps
        ],
    )


@app.post("/api/pipeline", response_model=PipelineResponse, responses=ERROR_RESPONSES)
def run_pipeline(
    req: PipelineRequest,
    executor: PipelineExecutor = Depends(get_executor),
    access_token: str | None = Depends(get_access_token),
) -> PipelineResponse:
    """Run every step of a humor flavor against the uploaded image.

    This endpoint:

    1. Checks that the caller is an authenticated administrator.
    2. Loads the flavor's steps and the model catalog.
    3. Executes the steps in order, chaining outputs through
       ``${stepNOutput}`` variables.
    4. Stops at the first failed step.

    Args:
        req: Validated :class:`PipelineRequest` payload.

    Returns:
        The per-step results of the run.

    Raises:
        PipelineRequestError: 401, 403, 400 (no flavorId) or 404 (no steps);
            rendered as ``{"error": ...}``.
    """
    run = executor.run(
        PipelineRunRequest(
            flavor_id=req.flavor_id,
            image_base64=req.image_base64,
            image_mime=req.image_mime,
            image_additional_context=req.image_additional_context,
        ),
        access_token,
    )
    return PipelineResponse(results=[StepResultModel.from_result(r) for r in run.results])


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~humorflow.core.config.config`
    (``HUMORFLOW_SERVER_HOST``, ``HUMORFLOW_SERVER_PORT``,
    ``HUMORFLOW_LOG_LEVEL``). Defaults to ``0.0.0.0:8000``.

    This function is registered as the ``humorflow`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    uvicorn.run(
        "humorflow.api.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level,
        reload=False,
    )


if __name__ == "__main__":
    main()
