"""Jinja2 template rendering for generated documents.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``starterkit/documents/templates/`` directory and renders them with
order-specific context data.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from starterkit.utils import title_case


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

NOT_APPLICABLE = "N/A"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the Jinja2 templates behind README, LICENSE and ``.env.example``.

    Undefined variables raise instead of rendering blank, so a template typo
    fails loudly rather than shipping a document with missing fields.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register custom filters
        self.env.filters["title_case"] = title_case
        self.env.filters["or_na"] = _or_na_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"README.md.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _or_na_filter(value: Any) -> Any:
    """Render ``N/A`` for missing values so document layout never changes."""
    if value is None or value == "":
        return NOT_APPLICABLE
    return value
