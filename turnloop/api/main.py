"""
FastAPI application for turnloop.

Provides an OpenAI-compatible REST API over multi-turn prompt requests.

Usage:
    # Development server with auto-reload
    uvicorn turnloop.api.main:app --reload --host 0.0.0.0 --port 8000

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn turnloop.api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..tools import default_toolset
from ..tracing import init_tracing_client, shutdown_tracing
from .routes import chat, health


def configure_logging():
    """Configure logging based on LOG_LEVEL environment variable."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("turnloop").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration and manage the tracing client."""
    logger.info("Starting turnloop API server")
    logger.info("=" * 60)
    logger.info("PROVIDER")
    logger.info("  Base URL: %s", config.provider.base_url)
    logger.info("  Model: %s", config.provider.model)
    logger.info("  Temperature: %s", config.provider.temperature)
    logger.info("  Default max depth: %d", config.agent.max_depth)

    logger.info("-" * 60)
    logger.info("REGISTERED TOOLS")
    for line in default_toolset().get_tools_summary().splitlines():
        logger.info("  %s", line)

    logger.info("-" * 60)
    logger.info("LANGFUSE OBSERVABILITY")
    tracing_client = init_tracing_client(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        debug=config.langfuse.debug,
    )
    if tracing_client.enabled:
        logger.info("  Status: ENABLED (%s)", config.langfuse.host or "https://cloud.langfuse.com")
    else:
        logger.info("  Status: DISABLED (%s)", tracing_client.error)
    logger.info("=" * 60)

    yield

    logger.info("Shutting down turnloop API server")
    shutdown_tracing()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="turnloop API",
        description=(
            "OpenAI-compatible REST API for depth-bounded multi-turn tool calling."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(chat.router, tags=["Chat"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Log validation errors and answer 400."""
        logger.warning(
            "Validation error on %s %s: %s", request.method, request.url.path, exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"detail": exc.errors()},
        )

    return app


app = create_app()


def run_server():
    """Run the server using uvicorn."""
    import uvicorn

    uvicorn.run(
        "turnloop.api.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        workers=1 if config.server.reload else config.server.workers,
    )


if __name__ == "__main__":
    run_server()
