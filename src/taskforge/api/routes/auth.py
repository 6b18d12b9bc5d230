"""Account endpoints: signup, login, logout, current user."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ... import auth
from ...auth import SessionContext
from ..deps import get_config, get_db_session, get_session_context

router = APIRouter()


class SignupRequest(BaseModel):
    """Request body for signup."""
    email: Optional[str] = None
    password: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


def _set_session_cookie(request: Request, response: Response, user_id: str) -> None:
    config = get_config(request)
    response.set_cookie(
        config.cookie_name,
        user_id,
        max_age=config.cookie_max_age_seconds,
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
    )


@router.post("/auth/signup", status_code=201)
async def signup(
    request: Request,
    body: SignupRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Create an account and start a session."""
    config = get_config(request)
    user = await auth.signup(
        session,
        body.email,
        body.password,
        body.firstName,
        body.lastName,
        rounds=config.password_hash_rounds,
    )
    response = JSONResponse({"success": True, "user": user.to_dict()}, status_code=201)
    _set_session_cookie(request, response, user.id)
    return response


@router.post("/auth/login")
async def login(
    request: Request,
    body: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Check credentials and start a session."""
    user = await auth.login(session, body.email, body.password)
    response = JSONResponse(
        {"success": True, "user": {"id": user.id, "email": user.email}},
        status_code=200,
    )
    _set_session_cookie(request, response, user.id)
    return response


@router.post("/auth/logout")
async def logout(request: Request):
    """End the session by clearing the cookie."""
    config = get_config(request)
    response = JSONResponse({"success": True}, status_code=200)
    response.delete_cookie(
        config.cookie_name,
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
    )
    return response


@router.get("/auth/me")
async def me(
    context: SessionContext = Depends(get_session_context),
    session: AsyncSession = Depends(get_db_session),
):
    """Return the current user."""
    user = await auth.get_user(session, context.user_id)
    return {"user": user.to_dict()}
