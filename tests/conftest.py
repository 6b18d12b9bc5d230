"""Pytest configuration and shared fixtures."""

import json
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from taskforge import auth
from taskforge.api import create_app
from taskforge.config import AppConfig
from taskforge.errors import GenerationFailed
from taskforge.generation import TaskBreakdownGenerator
from taskforge.store import Database


SAMPLE_TASKS = [
    {
        "title": "As a user, I can log in",
        "description": "Email and password login",
        "type": "user-story",
        "priority": "high",
        "difficulty": "medium",
    },
    {
        "title": "Build login API",
        "description": "POST /login endpoint",
        "type": "engineering-task",
        "priority": "high",
        "difficulty": "medium",
        "estimatedHours": 6,
    },
    {
        "title": "Password reset email may be delayed",
        "description": "Third-party mail latency",
        "type": "risk",
        "priority": "medium",
        "difficulty": "easy",
    },
    {
        "title": "As an admin, I can lock accounts",
        "description": "Admin lockout",
        "type": "user-story",
        "priority": "low",
        "difficulty": "easy",
    },
    {
        "title": "SSO provider not chosen",
        "description": "Unclear which identity provider",
        "type": "unknown",
        "priority": "medium",
        "difficulty": "hard",
    },
]


class FakeModel:
    """Text model that returns canned responses and records calls."""

    def __init__(self, response: str = "", error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []
        self.closed = False

    async def generate(self, prompt: str, system: Optional[str] = None, model: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "system": system, "model": model})
        if self.error is not None:
            raise self.error
        return self.response

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def sample_tasks() -> list[dict]:
    return [dict(t) for t in SAMPLE_TASKS]


@pytest.fixture
def sample_response(sample_tasks) -> str:
    return "Here is the breakdown:\n" + json.dumps(sample_tasks) + "\nGood luck!"


@pytest.fixture
def fake_model(sample_response) -> FakeModel:
    return FakeModel(response=sample_response)


@pytest.fixture
def generator(fake_model) -> TaskBreakdownGenerator:
    return TaskBreakdownGenerator(fake_model, "test-model")


@pytest.fixture
async def database(tmp_path):
    """A fresh SQLite database per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
async def user(session):
    return await auth.signup(session, "owner@example.com", "secret-pass", "Ada", "Lovelace", rounds=4)


@pytest.fixture
async def other_user(session):
    return await auth.signup(session, "other@example.com", "other-pass", rounds=4)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        password_hash_rounds=4,
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def client(app_config, fake_model):
    """TestClient with a fake text model; the app's lifespan creates the schema."""
    app = create_app(app_config, model=fake_model)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def failing_model() -> FakeModel:
    return FakeModel(error=GenerationFailed("Text generation request failed"))


def signup(client: TestClient, email: str = "owner@example.com", password: str = "secret-pass") -> dict:
    """Sign up through the API; the client keeps the session cookie."""
    response = client.post("/api/auth/signup", json={"email": email, "password": password})
    assert response.status_code == 201
    return response.json()["user"]
