"""starterkit configuration.

Centralised, typed configuration for the generator. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


# Directories skipped at any depth when walking the base template.
DEFAULT_EXCLUDED_DIRS: list[str] = [
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    ".turbo",
    "coverage",
    ".nyc_output",
    "_preview",
]

# File names (or ``*`` globs) skipped when walking the base template.
DEFAULT_EXCLUDED_FILES: list[str] = [
    ".env",
    ".env.local",
    ".env.development",
    ".env.production",
    ".DS_Store",
    "Thumbs.db",
    "*.log",
    "preview-banner.tsx",
    "preview-wrapper.tsx",
    "preview-context.tsx",
]


class LayoutConfig(BaseModel):
    """Conventional locations inside the base template and the generated tree.

    All paths are POSIX-style and relative to the template root (for inputs)
    or the project root folder inside the archive (for outputs).
    """

    backend_manifest: str = Field(default="backend/package.json")
    web_manifest: str = Field(default="web/package.json")
    schema_file: str = Field(default="backend/prisma/schema.prisma")
    env_example: str = Field(default="backend/.env.example")
    readme: str = Field(default="README.md")
    license: str = Field(default="LICENSE.md")
    descriptor: str = Field(default="starter-config.json")


class ArchiveConfig(BaseModel):
    """Tuning knobs for the streaming ZIP writer."""

    compression_level: int = Field(
        default=9, ge=0, le=9, description="zlib level used for deflated entries"
    )
    chunk_size: int = Field(
        default=64 * 1024,
        ge=1024,
        description="Bytes read per file chunk; also the spool size flushed to the sink",
    )
    queue_depth: int = Field(
        default=8, ge=1, description="Chunks buffered by QueueSink before writers block"
    )


class CatalogConfig(BaseModel):
    """Settings for the remote feature catalog."""

    url: str = Field(default="")
    timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")


class Config(BaseModel):
    """Global generator configuration.

    Instances are typically created once by the calling service (or by the
    CLI entry point) and shared read-only by every generation request.
    """

    template_dir: Path = Field(default=Path("./core"))
    modules_dir: Path = Field(default=Path("."))
    brand: str = Field(default="Xitolaunch")
    fallback_project_token: str = Field(default="starter")
    strict_artifacts: bool = Field(
        default=True,
        description="Abort when a feature artifact cannot be read instead of skipping it",
    )
    excluded_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    excluded_files: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_FILES))
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def backend_manifest_path(self) -> Path:
        """Base template's backend ``package.json``."""
        return self.template_dir / self.layout.backend_manifest

    @property
    def web_manifest_path(self) -> Path:
        """Base template's web ``package.json`` (optional)."""
        return self.template_dir / self.layout.web_manifest

    @property
    def schema_path(self) -> Path:
        """Base template's Prisma schema."""
        return self.template_dir / self.layout.schema_file

    @property
    def env_example_path(self) -> Path:
        """Base template's ``.env.example`` (optional)."""
        return self.template_dir / self.layout.env_example

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STARTERKIT_TEMPLATE_DIR, STARTERKIT_MODULES_DIR, STARTERKIT_BRAND,
            STARTERKIT_STRICT_ARTIFACTS, STARTERKIT_COMPRESSION_LEVEL,
            STARTERKIT_CHUNK_SIZE, STARTERKIT_CATALOG_URL,
            STARTERKIT_CATALOG_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STARTERKIT_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["STARTERKIT_TEMPLATE_DIR"])
        if os.environ.get("STARTERKIT_MODULES_DIR"):
            kwargs["modules_dir"] = Path(os.environ["STARTERKIT_MODULES_DIR"])
        if os.environ.get("STARTERKIT_BRAND"):
            kwargs["brand"] = os.environ["STARTERKIT_BRAND"]
        if os.environ.get("STARTERKIT_STRICT_ARTIFACTS"):
            kwargs["strict_artifacts"] = os.environ["STARTERKIT_STRICT_ARTIFACTS"].lower() in (
                "1",
                "true",
                "yes",
            )

        archive_kwargs: dict[str, Any] = {}
        if os.environ.get("STARTERKIT_COMPRESSION_LEVEL"):
            archive_kwargs["compression_level"] = int(os.environ["STARTERKIT_COMPRESSION_LEVEL"])
        if os.environ.get("STARTERKIT_CHUNK_SIZE"):
            archive_kwargs["chunk_size"] = int(os.environ["STARTERKIT_CHUNK_SIZE"])

        catalog_kwargs: dict[str, Any] = {}
        if os.environ.get("STARTERKIT_CATALOG_URL"):
            catalog_kwargs["url"] = os.environ["STARTERKIT_CATALOG_URL"]
        if os.environ.get("STARTERKIT_CATALOG_TIMEOUT"):
            catalog_kwargs["timeout"] = int(os.environ["STARTERKIT_CATALOG_TIMEOUT"])

        return cls(
            archive=ArchiveConfig(**archive_kwargs),
            catalog=CatalogConfig(**catalog_kwargs),
            **kwargs,
        )
