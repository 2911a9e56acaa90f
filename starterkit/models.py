"""Pydantic v2 models for the project generator.

Defines the catalog records consumed by the generator (modules, features and
their artifacts, templates), the order being fulfilled, and the derived,
per-request results of resolution and merging.

Catalog payloads arrive either in snake_case or in the camelCase used by the
persisted catalog, so multi-word fields accept both spellings.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------

class _CatalogRecord(BaseModel):
    """Immutable catalog data; the generator never mutates it."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Module(_CatalogRecord):
    """An organisational grouping of related features."""
    slug: str = Field(..., description="Module slug, e.g. 'payments'")
    name: str = Field(..., description="Display name")
    category: str = Field(default="core", description="Grouping tag used in the README")


class FileMapping(_CatalogRecord):
    """Copy ``source`` (file or directory) to ``destination`` in the generated tree."""
    source: str
    destination: str


class SchemaMapping(_CatalogRecord):
    """A named Prisma schema fragment contributed by a feature."""
    model: str = Field(..., description="Model the fragment is expected to define")
    source: str = Field(..., description="Path of the fragment file")


class EnvVarSpec(_CatalogRecord):
    """An environment variable declared by a feature or by the base template."""
    key: str
    description: str = ""
    required: bool = False
    default: Optional[str] = None


class PackageDependency(_CatalogRecord):
    """An npm package required by a feature."""
    name: str
    version: str = "*"
    dev: bool = False
    platform: Literal["backend", "web"] = Field(
        default="backend", description="Manifest that receives the dependency"
    )


class Feature(_CatalogRecord):
    """A purchasable capability and the artifacts it contributes."""
    slug: str
    name: str
    description: str = ""
    module: Module
    is_active: bool = Field(
        default=True, validation_alias=AliasChoices("is_active", "isActive")
    )
    requires: list[str] = Field(default_factory=list)
    file_mappings: list[FileMapping] = Field(
        default_factory=list,
        validation_alias=AliasChoices("file_mappings", "fileMappings"),
    )
    schema_mappings: list[SchemaMapping] = Field(
        default_factory=list,
        validation_alias=AliasChoices("schema_mappings", "schemaMappings"),
    )
    env_vars: list[EnvVarSpec] = Field(
        default_factory=list,
        validation_alias=AliasChoices("env_vars", "envVars"),
    )
    package_dependencies: list[PackageDependency] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "package_dependencies", "packageDependencies", "npmPackages"
        ),
    )

    @field_validator(
        "requires",
        "file_mappings",
        "schema_mappings",
        "env_vars",
        "package_dependencies",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Template(_CatalogRecord):
    """A named bundle that always includes a fixed set of features."""
    name: str
    slug: str
    included_features: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("included_features", "includedFeatures"),
    )


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------

class License(_CatalogRecord):
    """License attached to an order."""
    id: str = ""
    license_key: str = Field(validation_alias=AliasChoices("license_key", "licenseKey"))
    download_token: str = Field(
        default="", validation_alias=AliasChoices("download_token", "downloadToken")
    )
    download_count: int = Field(
        default=0, validation_alias=AliasChoices("download_count", "downloadCount")
    )
    max_downloads: int = Field(
        default=0, validation_alias=AliasChoices("max_downloads", "maxDownloads")
    )
    status: str = "active"
    expires_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("expires_at", "expiresAt")
    )


class Order(_CatalogRecord):
    """The unit of work: one order in, one archive out."""
    id: str
    order_number: str = Field(validation_alias=AliasChoices("order_number", "orderNumber"))
    tier: str
    selected_features: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selected_features", "selectedFeatures"),
    )
    customer_email: str = Field(
        validation_alias=AliasChoices("customer_email", "customerEmail")
    )
    customer_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customer_name", "customerName")
    )
    total: float = 0.0
    template: Optional[Template] = None
    license: Optional[License] = None

    @property
    def template_features(self) -> list[str]:
        """Feature slugs bundled by the order's template (empty without one)."""
        return list(self.template.included_features) if self.template else []


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------

class ResolvedFeatureSet(BaseModel):
    """Dependency-closed, de-duplicated features for one order."""
    features: list[Feature] = Field(default_factory=list)
    all_feature_slugs: list[str] = Field(
        default_factory=list, description="Slugs of every resolved feature, discovery order"
    )
    dependency_tree: dict[str, list[str]] = Field(
        default_factory=dict, description="Resolved slug -> its declared requires"
    )
    unresolved: list[str] = Field(
        default_factory=list, description="Slugs with no active catalog entry (dropped)"
    )

    def by_category(self) -> dict[str, list[Feature]]:
        """Group features by module category, categories in discovery order."""
        groups: dict[str, list[Feature]] = {}
        for feature in self.features:
            groups.setdefault(feature.module.category, []).append(feature)
        return groups


class VersionConflict(BaseModel):
    """A package whose constraint was overridden during manifest merging."""
    package: str
    selected: str
    replaced: str


class ProjectManifest(BaseModel):
    """A merged ``package.json``."""
    target: str = Field(..., description="'backend' or 'web'")
    content: dict[str, Any] = Field(default_factory=dict)
    added_dependencies: list[str] = Field(default_factory=list)
    added_dev_dependencies: list[str] = Field(default_factory=list)
    version_conflicts: list[VersionConflict] = Field(default_factory=list)

    @property
    def dependencies(self) -> dict[str, str]:
        return self.content.get("dependencies", {})

    @property
    def dev_dependencies(self) -> dict[str, str]:
        return self.content.get("devDependencies", {})

    def render(self) -> str:
        """Serialise with 2-space indentation and a trailing newline."""
        return json.dumps(self.content, indent=2, ensure_ascii=False) + "\n"


class MergedSchema(BaseModel):
    """Merged Prisma schema text plus the block names it declares."""
    text: str
    models: list[str] = Field(default_factory=list)
    enums: list[str] = Field(default_factory=list)

    def missing(self, required: list[str]) -> list[str]:
        """Return the entries of *required* not declared as models."""
        declared = set(self.models)
        return [name for name in required if name not in declared]


class MergedEnvVar(EnvVarSpec):
    """An environment variable after merging, with its contributors."""
    sources: list[str] = Field(default_factory=list)


class MergedEnvSpec(BaseModel):
    """De-duplicated environment variables for the generated project."""
    variables: list[MergedEnvVar] = Field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [var.key for var in self.variables]

    def get(self, key: str) -> Optional[MergedEnvVar]:
        for var in self.variables:
            if var.key == key:
                return var
        return None

    def grouped(self) -> dict[str, list[MergedEnvVar]]:
        """Group variables by their first contributing source."""
        groups: dict[str, list[MergedEnvVar]] = {}
        for var in self.variables:
            origin = var.sources[0] if var.sources else ""
            groups.setdefault(origin, []).append(var)
        return groups


class GenerationResult(BaseModel):
    """Completion signal returned once the archive has been fully streamed."""
    project_name: str
    feature_slugs: list[str] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)
    entries: int = 0
    bytes_written: int = 0
    version_conflicts: list[VersionConflict] = Field(default_factory=list)
