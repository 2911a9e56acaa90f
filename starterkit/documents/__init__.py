"""Document generation for generated projects.

Renders README.md, LICENSE.md, starter-config.json and the merged
``.env.example`` from Jinja2 templates bundled with the package.
"""

from starterkit.documents.generators import DocumentGenerator
from starterkit.documents.renderer import NOT_APPLICABLE, TemplateRenderer

__all__ = ["DocumentGenerator", "NOT_APPLICABLE", "TemplateRenderer"]
