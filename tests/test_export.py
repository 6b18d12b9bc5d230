"""Tests for Markdown and plain-text export."""

import pytest

from taskforge.export import (
    content_disposition, export_filename, format_hours, parse_format,
    render, render_markdown, render_text,
)
from taskforge.models import ExportFormat, GenerationStats
from taskforge.store import Project, Task, TaskGroup
from taskforge.workspace import GroupWithTasks, ProjectDetails


def make_project(title: str = "Build login") -> Project:
    return Project(
        id="p1",
        user_id="u1",
        title=title,
        description="Build login",
        target_users="app users",
        constraints="1 week",
        template_type="Web Application",
        status="generated",
    )


def make_task(title: str, task_type: str = "user-story", order: int = 0, hours=None, group_id=None) -> Task:
    return Task(
        id=f"t-{title}",
        project_id="p1",
        task_group_id=group_id,
        title=title,
        description=f"{title} details",
        task_type=task_type,
        priority="high",
        difficulty="medium",
        estimated_hours=hours,
        task_status="todo",
        display_order=order,
    )


def make_details(groups=None, ungrouped=None, title: str = "Build login") -> ProjectDetails:
    groups = groups or []
    ungrouped = ungrouped or []
    types = [t.task_type for g in groups for t in g.tasks] + [t.task_type for t in ungrouped]
    return ProjectDetails(
        project=make_project(title),
        groups=groups,
        ungrouped=ungrouped,
        stats=GenerationStats.from_types(types),
    )


def group(name: str, order: int, tasks: list[Task]) -> GroupWithTasks:
    return GroupWithTasks(group=TaskGroup(id=f"g-{name}", project_id="p1", name=name, display_order=order), tasks=tasks)


class TestFormatHelpers:
    """Tests for format resolution and small helpers."""

    def test_parse_format(self):
        assert parse_format(None) == ExportFormat.MARKDOWN
        assert parse_format("markdown") == ExportFormat.MARKDOWN
        assert parse_format("text") == ExportFormat.TEXT
        assert parse_format("pdf") == ExportFormat.TEXT
        assert parse_format("MARKDOWN") == ExportFormat.TEXT
        assert parse_format(" markdown ") == ExportFormat.TEXT

    def test_format_hours(self):
        assert format_hours(4.0) == "4"
        assert format_hours(2.5) == "2.5"

    def test_export_filename(self):
        assert export_filename("Build login", ExportFormat.MARKDOWN) == "Build login.md"
        assert export_filename("Build login", ExportFormat.TEXT) == "Build login.txt"

    def test_content_disposition_non_ascii(self):
        header = content_disposition("Connexion rapide é.md")

        assert header.startswith('attachment; filename="Connexion rapide _.md"')
        assert "filename*=UTF-8''Connexion%20rapide%20%C3%A9.md" in header


class TestRenderMarkdown:
    """Tests for the Markdown document."""

    def test_single_group_document(self):
        details = make_details([group("User Stories", 0, [make_task("Log in")])])

        assert render_markdown(details) == (
            "# Build login\n\n"
            "**Feature Goal:** Build login\n\n"
            "**Target Users:** app users\n\n"
            "**Constraints:** 1 week\n\n"
            "**Template:** Web Application\n\n"
            "---\n\n"
            "## User Stories\n\n"
            "### Log in\n\n"
            "Log in details\n\n"
            "- **Type:** user-story\n"
            "- **Priority:** high\n"
            "- **Difficulty:** medium\n"
            "- **Status:** todo\n\n"
        )

    def test_estimated_hours_line(self):
        details = make_details([
            group("Engineering Tasks", 0, [make_task("API", "engineering-task", hours=4.0)]),
        ])

        assert "- **Estimated:** 4h\n" in render_markdown(details)

    def test_empty_group_is_omitted(self):
        details = make_details([
            group("User Stories", 0, [make_task("Log in")]),
            group("Risks", 1, []),
        ])

        output = render_markdown(details)

        assert "## User Stories" in output
        assert "## Risks" not in output

    def test_ungrouped_tasks_listed_last(self):
        details = make_details(
            [group("User Stories", 0, [make_task("Log in")])],
            ungrouped=[make_task("Orphan", "risk", order=1)],
        )

        output = render_markdown(details)

        assert output.index("## User Stories") < output.index("## Ungrouped Tasks")
        assert "### Orphan" in output


class TestRenderText:
    """Tests for the plain-text document."""

    def test_title_underlined_to_length(self):
        output = render_text(make_details(title="Build login"))

        assert output.startswith("Build login\n===========\n\n")
        assert "=" * 80 + "\n\n" in output

    def test_numbered_tasks_per_group(self):
        details = make_details([
            group("User Stories", 0, [make_task("Log in"), make_task("Log out", order=1)]),
            group("Engineering Tasks", 1, [make_task("API", "engineering-task", order=2, hours=2.5)]),
        ])

        output = render_text(details)

        assert "User Stories\n------------\n\n1. Log in\n" in output
        assert "2. Log out\n" in output
        assert "Engineering Tasks\n-----------------\n\n1. API\n" in output
        assert "   Type: engineering-task | Priority: high | Difficulty: medium\n" in output
        assert "   Estimated: 2.5h\n" in output


class TestRender:
    """Tests for format dispatch."""

    @pytest.mark.parametrize("fmt", [ExportFormat.MARKDOWN, ExportFormat.TEXT])
    def test_render_is_deterministic(self, fmt):
        details = make_details([group("User Stories", 0, [make_task("Log in")])])

        assert render(details, fmt) == render(details, fmt)

    def test_render_dispatches_by_format(self):
        details = make_details([group("User Stories", 0, [make_task("Log in")])])

        assert render(details, ExportFormat.MARKDOWN).startswith("# Build login")
        assert render(details, ExportFormat.TEXT).startswith("Build login\n")
