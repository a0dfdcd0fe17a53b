"""Image Relay — FastAPI Application.

This module defines the FastAPI ``app``, every REST route, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application is a stateless relay:

- **Model catalogue** is loaded once at startup into an immutable
  :class:`~imagerelay.core.model_registry.ModelRegistry` and stored on
  ``app.state`` together with a
  :class:`~imagerelay.core.model_selector.ModelSelector`.
- **Generation requests** are normalised by
  :func:`~imagerelay.core.request_builder.build_payload` and forwarded by
  a shared :class:`~imagerelay.core.leonardo_client.LeonardoClient`.
- **Backend model ids** never leave the server: the catalogue is served
  through ``public_info()`` and upstream records through the sanitizer.
- **Errors** derived from :class:`~imagerelay.core.errors.RelayError` are
  rendered as ``{"error": ..., "details": ...}`` with the error's status.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/config``               Models, capabilities, preset styles
POST      ``/api/models/select``        Pick a model for capability toggles
POST      ``/api/generate``             Start a generation upstream
GET       ``/api/status/{id}``          Generation status and images
GET       ``/api/generations``          Sanitised generation history
GET       ``/api/user``                 Account details of the API key
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    imagerelay

Direct invocation::

    python -m imagerelay.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from imagerelay import __version__
from imagerelay.api.models import GenerateRequest, SelectModelRequest
from imagerelay.core.capabilities import CAPABILITY_OPTIONS, PRESET_STYLES
from imagerelay.core.config import RelayConfig, config
from imagerelay.core.errors import RelayError
from imagerelay.core.leonardo_client import LeonardoClient
from imagerelay.core.model_registry import ModelRegistry, load_registry
from imagerelay.core.model_selector import ModelSelector
from imagerelay.core.request_builder import build_payload

logger = logging.getLogger(__name__)


def create_app(
    settings: RelayConfig | None = None,
    registry: ModelRegistry | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration; defaults to the global ``config``.
        registry: Model catalogue; defaults to loading
            ``settings.models_file`` (or the bundled catalogue).
        transport: Optional httpx transport for the upstream client.  Tests
            pass an :class:`httpx.MockTransport` here.

    Returns:
        The configured application.
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the registry, selector and upstream client; close the
        client on shutdown."""
        # --- Startup -------------------------------------------------------
        app.state.config = settings
        app.state.registry = (
            registry if registry is not None else load_registry(settings.models_file)
        )
        app.state.selector = ModelSelector(
            app.state.registry,
            default_identifier=settings.default_model_identifier,
            dynamic=settings.use_dynamic_model_selection,
        )
        app.state.client = LeonardoClient.from_config(settings, transport=transport)
        logger.info(
            f"Relay ready with {len(app.state.registry)} models "
            f"(dynamic selection: {settings.use_dynamic_model_selection})"
        )

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        await app.state.client.aclose()
        logger.info("Upstream client closed on shutdown.")

    app = FastAPI(
        title="Image Relay",
        description="Relay between a generation form and a hosted image-generation API.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow cross-origin requests so the form can be served from a different
    # port during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RelayError, _relay_error_handler)
    app.include_router(_build_router())
    return app


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render a :class:`RelayError` as ``{"error", "details"}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )


def _build_router() -> APIRouter:
    """Routes under ``/api``. Handlers read shared objects from ``app.state``."""
    router = APIRouter(prefix="/api")

    @router.get("/config")
    async def get_config(request: Request) -> dict:
        """Return everything the form needs to render.

        The response includes:

        - ``version`` — API version string.
        - ``dynamic_model_selection`` — whether the model follows the
          enabled capabilities.
        - ``default_model_identifier`` — fallback model.
        - ``models`` — public model list (no backend ids).
        - ``capabilities`` — capability toggles and their dependent fields.
        - ``preset_styles`` — preset style choices, ``"NONE"`` first.
        """
        state = request.app.state
        return {
            "version": __version__,
            "dynamic_model_selection": state.selector.dynamic,
            "default_model_identifier": state.selector.default_identifier,
            "models": state.registry.public_models(),
            "capabilities": CAPABILITY_OPTIONS,
            "preset_styles": PRESET_STYLES,
        }

    @router.post("/models/select")
    async def select_model(req: SelectModelRequest, request: Request) -> dict:
        """Return the model the selector picks for the given toggles.

        ``outcome`` is ``"selected"`` for a real match, ``"default"`` when
        nothing was requested or dynamic selection is off, and
        ``"degraded"`` when no model supports every requested capability.
        """
        selection = request.app.state.selector.select(req.capabilities)
        return {
            "model": selection.model.public_info(),
            "outcome": selection.outcome.value,
            "requested": sorted(selection.requested),
        }

    @router.get("/generate")
    async def generate_wrong_method() -> JSONResponse:
        return JSONResponse(
            status_code=405,
            content={"error": "This endpoint only accepts POST requests"},
        )

    @router.post("/generate")
    async def generate(req: GenerateRequest, request: Request) -> dict:
        """Normalise the request and start a generation upstream.

        The model is, in order: the selector's pick when ``autoSelect`` is
        set, the requested ``modelIdentifier``, or the configured default.

        Returns:
            ``success``, ``generationId``, ``creditcost`` and the public
            ``modelIdentifier`` that was used.

        Raises:
            InvalidModelIdentifier: 400 for an unknown identifier.
            HTTPException: 400 if a number cannot be converted.
            UpstreamServiceError: Upstream status and body, passed through.
            MalformedUpstreamResponse: 500 if no generation id came back.
        """
        state = request.app.state
        response: dict = {"success": True}

        if req.auto_select:
            selection = state.selector.select(req.enabled_capabilities())
            identifier = selection.model.identifier
            response["selection"] = selection.outcome.value
        else:
            identifier = req.model_identifier or state.selector.default_identifier

        try:
            payload = build_payload(state.registry, identifier, req.to_generation_request())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        logger.debug(f"Sending generation payload: {payload}")

        job = await state.client.create_generation(payload)
        response.update(
            {
                "generationId": job.generation_id,
                "creditcost": job.credit_cost,
                "modelIdentifier": identifier,
            }
        )
        return response

    @router.get("/status/{generation_id}")
    async def get_status(generation_id: str, request: Request) -> dict:
        """Return the status and images of one generation.

        Status is passed through verbatim; the poller stops on
        ``COMPLETE`` or ``FAILED``.
        """
        summary = await request.app.state.client.get_status(generation_id)
        return {"success": True, **summary}

    @router.get("/generations")
    async def list_generations(
        request: Request,
        offset: int = Query(default=0, ge=0),
        limit: int = Query(default=10, ge=1),
        user_id: str | None = Query(default=None, alias="userId"),
    ) -> dict:
        """Return a user's recent generations with backend ids removed."""
        user = user_id or request.app.state.config.user_id
        if not user:
            raise HTTPException(status_code=400, detail="userId is required")

        generations = await request.app.state.client.list_generations(
            user, offset=offset, limit=limit
        )
        return {
            "success": True,
            "generations": generations,
            "total": len(generations),
            "offset": offset,
            "limit": limit,
        }

    @router.get("/user")
    async def get_user(request: Request) -> dict:
        """Return the account details of the configured API key."""
        user = await request.app.state.client.get_user()
        return {"success": True, "user": user}

    return router


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host, port and log level come from :data:`~imagerelay.core.config.config`
    (``IMAGERELAY_SERVER_HOST``, ``IMAGERELAY_SERVER_PORT``,
    ``IMAGERELAY_LOG_LEVEL``).

    Registered as the ``imagerelay`` console script in ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "imagerelay.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
