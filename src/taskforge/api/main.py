"""FastAPI application for the workspace backend.

Provides the REST API for generating task breakdowns and managing the
resulting projects.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import AppConfig
from ..errors import TaskforgeError
from ..generation import OpenRouterClient
from ..protocols import TextModel
from ..store import Database
from .routes import auth, workspace, chat

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    model: Optional[TextModel] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Application config (default: loaded from the environment)
        model: Text-generation client (default: OpenRouter client from config)
        database: Database (default: created from config.database_url)

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig.load()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_database = database is None
        owns_model = model is None
        app.state.database = database or Database(config.database_url)
        app.state.model = model or OpenRouterClient.from_config(config)
        await app.state.database.create_all()
        try:
            yield
        finally:
            if owns_model:
                await app.state.model.aclose()
            if owns_database:
                await app.state.database.dispose()

    app = FastAPI(
        title="Taskforge API",
        description="Turn feature ideas into user stories, engineering tasks and risks",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config

    @app.exception_handler(TaskforgeError)
    async def taskforge_error_handler(request: Request, exc: TaskforgeError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request format"}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(workspace.router, prefix="/api", tags=["workspace"])
    app.include_router(chat.router, prefix="/api", tags=["chat"])

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


def run_server(
    config: AppConfig,
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
) -> None:
    """Run the API server.

    Args:
        config: Application config
        host: Host to bind to
        port: Port to listen on
        reload: Restart on code changes (config is re-read from the environment)
    """
    import uvicorn

    if reload:
        uvicorn.run("taskforge.api.main:create_app", factory=True, host=host, port=port, reload=True)
        return

    uvicorn.run(create_app(config), host=host, port=port)
