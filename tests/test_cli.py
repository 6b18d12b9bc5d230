"""Tests for the command-line interface."""

import asyncio
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from taskforge import auth
from taskforge.cli import main
from taskforge.generation import parse_response
from taskforge.generation_logger import GenerationLogger
from taskforge.models import GenerationRequest
from taskforge.store import Database
from taskforge.workspace import ProjectBuilder


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "taskforge.json"
    path.write_text(json.dumps({
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
        "log_dir": str(tmp_path / "logs"),
    }), encoding="utf-8")
    return path


@pytest.fixture
def seeded_project(config_file: Path, sample_response: str) -> str:
    """Create an account with one generated project; returns the project id."""
    url = json.loads(config_file.read_text(encoding="utf-8"))["database_url"]

    async def _seed():
        db = Database(url)
        await db.create_all()
        try:
            async with db.session() as session:
                user = await auth.signup(session, "owner@example.com", "secret-pass", rounds=4)
                request = GenerationRequest(
                    feature_goal="Build login", target_users="app users", constraints="1 week",
                )
                result = await ProjectBuilder(session).build(
                    user.id, request, parse_response(sample_response).tasks
                )
                return result.project.id
        finally:
            await db.dispose()

    return asyncio.run(_seed())


class TestCli:
    """Tests for CLI commands."""

    def test_init_db(self, config_file: Path, tmp_path: Path):
        result = CliRunner().invoke(main, ["init-db", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "cli.db").exists()

    def test_projects_lists_owner_projects(self, config_file: Path, seeded_project: str):
        result = CliRunner().invoke(
            main, ["projects", "--email", "owner@example.com", "--config", str(config_file)]
        )

        assert result.exit_code == 0, result.output
        assert "Projects: owner@example.com" in result.output

    def test_projects_unknown_user(self, config_file: Path, seeded_project: str):
        result = CliRunner().invoke(
            main, ["projects", "--email", "ghost@example.com", "--config", str(config_file)]
        )

        assert result.exit_code != 0
        assert "User not found" in result.output

    def test_export_writes_document(self, config_file: Path, seeded_project: str, tmp_path: Path):
        output = tmp_path / "out.md"

        result = CliRunner().invoke(main, [
            "export", seeded_project,
            "--email", "owner@example.com",
            "--output", str(output),
            "--config", str(config_file),
        ])

        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8").startswith("# Build login\n")

    def test_logs_lists_runs(self, config_file: Path, tmp_path: Path):
        logger = GenerationLogger(tmp_path / "logs" / "generations", run_id="gen_cli")
        logger.log_start({})
        logger.log_end("success", project_id="p1")

        result = CliRunner().invoke(main, ["logs", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "Generation Runs" in result.output

    def test_logs_without_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("TASKFORGE_LOG_DIR", raising=False)

        result = CliRunner().invoke(main, ["logs"])

        assert result.exit_code == 0
        assert "No log directory configured" in result.output
