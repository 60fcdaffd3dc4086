"""HTTP service exposing the distill pipeline.

Routes
------
POST /distill    Body: {"url": "...", "markdown": true, "useReadability": true}

Requests carry ``Authorization: Bearer <key>`` when an API key is
configured. Before the pipeline runs, the provider's capacity is checked
and a busy provider answers 429 with a ``Retry-After`` hint.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .core import Distiller, create_provider
from .errors import DistillError
from .models.config import DistillConfig

logger = logging.getLogger(__name__)


class DistillRequest(BaseModel):
    url: str
    markdown: bool
    use_readability: bool = Field(True, alias="useReadability")

    model_config = {"populate_by_name": True}


class DistillResponse(BaseModel):
    body: str


def _require_api_key(api_key: Optional[str]):
    async def check(request: Request) -> None:
        # Auth is bypassed when no key is configured
        if not api_key:
            return

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise HTTPException(status_code=401, detail="Authorization header is missing")

        auth_type, _, auth_value = auth_header.partition(" ")
        if auth_type != "Bearer":
            raise HTTPException(status_code=401, detail="Invalid authorization type")
        if auth_value != api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    return check


def create_app(
    config: Optional[DistillConfig] = None,
    distiller: Optional[Distiller] = None,
) -> FastAPI:
    """
    Return a configured FastAPI application.

    Args:
        config: Service configuration (defaults apply when omitted)
        distiller: Pre-built distiller; when omitted the lifespan opens
            the configured browser provider and closes it on shutdown
    """
    config = config or DistillConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if distiller is not None:
            app.state.distiller = distiller
            yield
            return

        async with create_provider(config.browser) as provider:
            app.state.distiller = Distiller(provider, config)
            yield

    app = FastAPI(
        title="pagedistill",
        description="Extract the readable content of a web page as HTML or Markdown.",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.errors()})

    @app.post(
        "/distill",
        response_model=DistillResponse,
        dependencies=[Depends(_require_api_key(config.server.api_key))],
    )
    async def distill_endpoint(body: DistillRequest, request: Request) -> DistillResponse:
        """Render the URL in a remote browser and return its main content."""
        service: Distiller = request.app.state.distiller

        try:
            capacity = await service.capacity()
        except DistillError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

        if not capacity.available:
            raise HTTPException(
                status_code=429,
                detail="The browser worker is busy",
                headers={"Retry-After": str(max(math.ceil(capacity.retry_after), 1))},
            )

        try:
            distilled = await service.distill(body.url, body.markdown, body.use_readability)
        except DistillError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        logger.debug(f"Distilled {body.url}: {len(distilled)} characters")
        return DistillResponse(body=distilled)

    return app


def run_server(config: DistillConfig) -> None:
    """Serve the app with uvicorn until interrupted."""
    import uvicorn

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
    )
