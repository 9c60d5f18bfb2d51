"""FastAPI application definition."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from yaas import __version__
from yaas.core.exceptions import YaasError

from .deps import lifespan, settings
from .routes import api_router

logger = structlog.get_logger()

app = FastAPI(
    title="yaas",
    description="Multi-tenant single sign-on and OAuth2 authorization server",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,  # Prevent 307 redirects that lose auth headers
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(YaasError)
async def yaas_error_handler(request: Request, exc: YaasError) -> JSONResponse:
    """Render domain errors as `{status_code, error, message}`."""
    if exc.status_code >= 500:
        logger.error("unhandled_domain_error", path=request.url.path, error=exc.error)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"status_code": exc.status_code, "error": exc.error, "message": exc.message},
        headers=headers,
    )


app.include_router(api_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
