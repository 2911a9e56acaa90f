"""Exception hierarchy for project generation.

Every fatal condition raised by the generator derives from
``GenerationError`` so that calling layers (an HTTP handler, the CLI) can
translate failures with a single ``except`` clause.  Catalog gaps and merge
conflicts are *not* errors and never surface here.
"""

from __future__ import annotations

from pathlib import Path


class GenerationError(Exception):
    """Base class for every failure that aborts a generation run."""


class BaseTemplateError(GenerationError):
    """The base template's manifest or schema is missing or unparsable.

    Always raised before the first byte is written to the output sink.
    """

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"Base template file {self.path}: {message}")


class ArtifactReadError(GenerationError):
    """A feature artifact (overlay file or schema fragment) could not be read."""

    def __init__(self, feature: str, source: str, message: str) -> None:
        self.feature = feature
        self.source = source
        super().__init__(f"Feature '{feature}' artifact {source}: {message}")


class PathTraversalError(GenerationError):
    """An artifact path resolves outside the directory it must stay within."""

    def __init__(self, label: str, path: str) -> None:
        self.label = label
        self.path = path
        super().__init__(f"Path traversal detected in {label}: {path}")


class ArchiveStreamError(GenerationError):
    """Writing to the output sink or reading a file mid-stream failed."""


class CatalogError(GenerationError):
    """The feature catalog could not be queried."""


class SinkClosedError(ConnectionError):
    """Raised by a sink whose consumer has gone away."""
