"""Jinja2 template engine for event report rendering."""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from .models import EventRecord

REPORT_TEMPLATE = "report.md"


class TemplateEngine:
    """Render event reports using Jinja2."""

    def __init__(self, template_dir: Path | None = None):
        """Initialize template engine with template directory.

        Args:
            template_dir: Path to templates directory.
                         Defaults to project templates/ folder.
        """
        if template_dir is None:
            template_dir = Path(__file__).parent.parent.parent / "templates"

        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        template = self.env.get_template(template_name)
        return template.render(**context)

    def render_report(
        self,
        grouped: dict[str, dict[str, list[EventRecord]]],
        title: str,
        template_name: str = REPORT_TEMPLATE,
    ) -> str:
        """Render the region -> venue -> events report.

        Args:
            grouped: Output of aggregator.group_by_region_venue
            title: Top-level heading
            template_name: Template file in the templates directory

        Returns:
            Rendered markdown
        """
        return self.render(template_name, {"title": title, "grouped": grouped})

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False
