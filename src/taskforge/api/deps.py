"""Request-scoped dependencies shared by the routers."""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import SessionContext
from ..config import AppConfig
from ..errors import Unauthorized
from ..generation_logger import GenerationLogger
from ..protocols import TextModel
from ..store import Database


def get_config(request: Request) -> AppConfig:
    """Get the application config from app state."""
    return request.app.state.config


def get_model(request: Request) -> TextModel:
    return request.app.state.model


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a database session for the duration of the request."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


def get_session_context(request: Request) -> SessionContext:
    """Resolve the caller from the session cookie.

    Raises:
        Unauthorized: If the cookie is missing or empty.
    """
    config = get_config(request)
    user_id = request.cookies.get(config.cookie_name)
    if not user_id:
        raise Unauthorized()
    return SessionContext(user_id=user_id)


def new_generation_logger(request: Request, user_id: str) -> GenerationLogger:
    config = get_config(request)
    return GenerationLogger(
        config.generation_log_dir,
        user_id=user_id,
        model=config.generation_model,
    )
