"""API routes for the workspace service."""

from . import auth, workspace, chat

__all__ = ["auth", "workspace", "chat"]
