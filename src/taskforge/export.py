"""Render a project and its grouped tasks as Markdown or plain text.

Pure functions: the same inputs always give the same document. Groups with
no tasks are left out. Tasks without a group are listed last, under
"Ungrouped Tasks".
"""

import re
from typing import Optional
from urllib.parse import quote

from .models import ExportFormat
from .workspace.projects import ProjectDetails

UNGROUPED_SECTION_NAME = "Ungrouped Tasks"

MIME_TYPES: dict[ExportFormat, str] = {
    ExportFormat.MARKDOWN: "text/markdown",
    ExportFormat.TEXT: "text/plain",
}

EXTENSIONS: dict[ExportFormat, str] = {
    ExportFormat.MARKDOWN: "md",
    ExportFormat.TEXT: "txt",
}


def parse_format(value: Optional[str]) -> ExportFormat:
    """Resolve the format query parameter; anything but exactly "markdown" is text."""
    if value is None or value == ExportFormat.MARKDOWN.value:
        return ExportFormat.MARKDOWN
    return ExportFormat.TEXT


def format_hours(hours: float) -> str:
    """Format estimated hours without a trailing .0 (4.0 -> "4", 2.5 -> "2.5")."""
    if float(hours).is_integer():
        return str(int(hours))
    return f"{hours:g}"


def _sections(details: ProjectDetails) -> list[tuple[str, list]]:
    sections = [(g.group.name, g.tasks) for g in details.groups if g.tasks]
    if details.ungrouped:
        sections.append((UNGROUPED_SECTION_NAME, details.ungrouped))
    return sections


def render_markdown(details: ProjectDetails) -> str:
    project = details.project
    md = f"# {project.title}\n\n"

    md += f"**Feature Goal:** {project.description}\n\n"
    md += f"**Target Users:** {project.target_users}\n\n"
    md += f"**Constraints:** {project.constraints}\n\n"
    md += f"**Template:** {project.template_type}\n\n"

    md += "---\n\n"

    for name, tasks in _sections(details):
        md += f"## {name}\n\n"
        for task in tasks:
            md += f"### {task.title}\n\n"
            md += f"{task.description}\n\n"
            md += f"- **Type:** {task.task_type}\n"
            md += f"- **Priority:** {task.priority}\n"
            md += f"- **Difficulty:** {task.difficulty}\n"
            if task.estimated_hours:
                md += f"- **Estimated:** {format_hours(task.estimated_hours)}h\n"
            md += f"- **Status:** {task.task_status}\n\n"

    return md


def render_text(details: ProjectDetails) -> str:
    project = details.project
    text = f"{project.title}\n"
    text += "=" * len(project.title) + "\n\n"

    text += f"Feature Goal: {project.description}\n"
    text += f"Target Users: {project.target_users}\n"
    text += f"Constraints: {project.constraints}\n"
    text += f"Template: {project.template_type}\n\n"

    text += "=" * 80 + "\n\n"

    for name, tasks in _sections(details):
        text += f"{name}\n"
        text += "-" * len(name) + "\n\n"
        for index, task in enumerate(tasks, start=1):
            text += f"{index}. {task.title}\n"
            text += f"   {task.description}\n"
            text += (
                f"   Type: {task.task_type} | Priority: {task.priority}"
                f" | Difficulty: {task.difficulty}\n"
            )
            if task.estimated_hours:
                text += f"   Estimated: {format_hours(task.estimated_hours)}h\n"
            text += f"   Status: {task.task_status}\n\n"

    return text


def render(details: ProjectDetails, fmt: ExportFormat) -> str:
    """Render a project in the requested format."""
    if fmt == ExportFormat.MARKDOWN:
        return render_markdown(details)
    return render_text(details)


def export_filename(title: str, fmt: ExportFormat) -> str:
    return f"{title}.{EXTENSIONS[fmt]}"


def content_disposition(filename: str) -> str:
    """Attachment header value that survives non-ASCII titles."""
    fallback = re.sub(r'[^\x20-\x7e]|["\\]', "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
