"""
Coze2OpenAI Application Entry Point

FastAPI application factory, exception handlers and process bootstrap.
"""

import argparse
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from coze2openai.api import create_router
from coze2openai.common.errors import AppError
from coze2openai.config import GatewayConfig, get_settings, load_gateway_config
from coze2openai.logging_config import setup_logging
from coze2openai.services.registry import Gateway

logger = logging.getLogger(__name__)

# Initialize logging configuration
setup_logging()


def create_app(config: Optional[GatewayConfig] = None) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        config: Gateway configuration; loaded from CONFIG_PATH when omitted

    Returns:
        FastAPI: Application serving the configured chat endpoint
    """
    settings = get_settings()
    if config is None:
        config = load_gateway_config(settings.CONFIG_PATH)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application Lifecycle Management

        Build the bot registry on startup, close HTTP clients on shutdown.
        """
        gateway = Gateway.from_config(config, timeout=settings.HTTP_TIMEOUT)
        app.state.gateway = gateway
        logger.info("coze2openai serve at %s:%d%s", settings.HOST, config.port, config.endpoint)
        yield
        await gateway.registry.aclose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="OpenAI-compatible Chat Completions gateway backed by Coze bots",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        """Handle application custom exceptions"""
        if exc.status_code >= 500:
            logger.error("Request failed: [%s] %s", exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """
        Handle uncaught exceptions

        In production mode, error details are logged but not returned to clients.
        """
        logger.error(
            "Uncaught exception: %s\nPath: %s\nTraceback:\n%s",
            str(exc),
            request.url.path,
            traceback.format_exc(),
        )
        message = str(exc) if get_settings().DEBUG else "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "internal_error", "message": message}},
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health Check

        Used for service liveness probe.
        """
        return {"status": "healthy"}

    app.include_router(create_router(endpoint=config.endpoint, method=config.method))
    return app


def main() -> None:
    """Command line entry: load the config file and serve."""
    import uvicorn

    settings = get_settings()
    parser = argparse.ArgumentParser(description="OpenAI-compatible gateway for Coze bots")
    parser.add_argument("--config", default=settings.CONFIG_PATH, help="config file path")
    args = parser.parse_args()

    config = load_gateway_config(args.config)
    uvicorn.run(
        create_app(config),
        host=settings.HOST,
        port=config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
