"""Process-wide configuration.

Settings are resolved once at startup: built-in defaults, then an optional
JSON config file, then environment variables. The resulting AppConfig is
stored on the application and treated as read-only.
"""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# Environment variable -> AppConfig field
ENV_OVERRIDES: dict[str, str] = {
    "TASKFORGE_DATABASE_URL": "database_url",
    "OPENROUTER_KEY": "openrouter_api_key",
    "OPENROUTER_BASE_URL": "openrouter_base_url",
    "TASKFORGE_GENERATION_MODEL": "generation_model",
    "TASKFORGE_CHAT_MODEL": "chat_model",
    "TASKFORGE_REQUEST_TIMEOUT": "request_timeout_seconds",
    "TASKFORGE_COOKIE_SECURE": "cookie_secure",
    "TASKFORGE_LOG_DIR": "log_dir",
}


class AppConfig(BaseModel):
    """Configuration for the workspace service."""
    # Persistence
    database_url: str = Field(
        default="sqlite+aiosqlite:///taskforge.db",
        description="SQLAlchemy async database URL"
    )

    # Text generation provider
    openrouter_api_key: Optional[str] = Field(
        default=None,
        description="Provider credential (OPENROUTER_KEY)"
    )
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1")
    generation_model: str = Field(
        default="nvidia/nemotron-3-nano-30b-a3b:free",
        description="Model used to produce task breakdowns"
    )
    chat_model: str = Field(
        default="google/gemini-2.0-flash-001",
        description="Model used for free-form chat summaries"
    )
    request_timeout_seconds: float = Field(
        default=120.0,
        description="Transport timeout for a single generation call"
    )

    # Session cookie
    cookie_name: str = Field(default="user_id")
    cookie_max_age_seconds: int = Field(default=60 * 60 * 24 * 7)
    cookie_secure: bool = Field(default=False)
    password_hash_rounds: int = Field(default=10, ge=4, le=31)

    # Observability
    log_dir: Optional[str] = Field(
        default=None,
        description="Directory for JSONL generation logs (None = disabled)"
    )

    # HTTP
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    @classmethod
    def load(
        cls,
        config_file: Optional[Path | str] = None,
        environ: Optional[dict[str, str]] = None,
    ) -> "AppConfig":
        """Build the configuration from file and environment.

        Args:
            config_file: Optional JSON file with field overrides.
            environ: Environment mapping (default: os.environ).

        Returns:
            Resolved AppConfig.
        """
        environ = os.environ if environ is None else environ
        values: dict = {}

        if config_file is not None:
            path = Path(config_file)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            values.update(json.loads(path.read_text(encoding="utf-8")))

        for env_name, field_name in ENV_OVERRIDES.items():
            if env_name in environ and environ[env_name] != "":
                values[field_name] = environ[env_name]

        return cls.model_validate(values)

    @property
    def generation_log_dir(self) -> Optional[Path]:
        if not self.log_dir:
            return None
        return Path(self.log_dir) / "generations"
