"""HTTP API for the task breakdown workspace."""

from .main import create_app, run_server

__all__ = ["create_app", "run_server"]
