"""Artifact merging across a resolved feature set.

``ArtifactMerger`` performs the file I/O around the pure merge functions in
``manifest``, ``schema`` and ``env``.  Base-template problems are always
fatal; unreadable feature fragments are fatal unless the configuration
opts into the lenient warn-and-skip behaviour.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from starterkit.config import Config
from starterkit.errors import ArtifactReadError
from starterkit.models import (
    EnvVarSpec,
    MergedEnvSpec,
    MergedSchema,
    ProjectManifest,
    ResolvedFeatureSet,
    VersionConflict,
)
from starterkit.utils import resolve_artifact_source

from .env import DEFAULT_CORE_ENV, merge_env, parse_env_example
from .manifest import merge_manifest, read_base_manifest
from .schema import SchemaFragment, SchemaSyntaxError, merge_schema, parse_blocks, read_base_schema

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Everything the merger contributes to one generated project."""

    manifests: list[ProjectManifest]
    schema: MergedSchema
    env: MergedEnvSpec
    warnings: list[str] = field(default_factory=list)

    @property
    def version_conflicts(self) -> list[VersionConflict]:
        return [c for manifest in self.manifests for c in manifest.version_conflicts]

    def manifest(self, target: str) -> ProjectManifest | None:
        for manifest in self.manifests:
            if manifest.target == target:
                return manifest
        return None


class ArtifactMerger:
    """Merges manifests, schema and environment variables onto the base template."""

    def __init__(self, config: Config) -> None:
        self.config = config

    async def merge(self, resolved: ResolvedFeatureSet, project_name: str) -> MergeResult:
        """Produce merged artifacts for *resolved*.

        Raises:
            BaseTemplateError: Base manifest or schema missing/unparsable.
            ArtifactReadError: A schema fragment is unreadable (strict mode).
            PathTraversalError: A fragment path escapes its root.
        """
        warnings: list[str] = []
        manifests = await self._merge_manifests(resolved, project_name)
        schema = await self._merge_schema(resolved, warnings)
        env = merge_env(await self._base_env(), resolved.features)
        return MergeResult(manifests=manifests, schema=schema, env=env, warnings=warnings)

    # -- Manifests ---------------------------------------------------------

    async def _merge_manifests(
        self, resolved: ResolvedFeatureSet, project_name: str
    ) -> list[ProjectManifest]:
        packages = [p for f in resolved.features for p in f.package_dependencies]

        base = await asyncio.to_thread(read_base_manifest, self.config.backend_manifest_path)
        manifests = [
            merge_manifest(
                base,
                project_name,
                [p for p in packages if p.platform == "backend"],
                target="backend",
                brand=self.config.brand,
            )
        ]

        web_path = self.config.web_manifest_path
        if await asyncio.to_thread(web_path.is_file):
            web_base = await asyncio.to_thread(read_base_manifest, web_path)
            manifests.append(
                merge_manifest(
                    web_base,
                    f"{project_name}-web",
                    [p for p in packages if p.platform == "web"],
                    target="web",
                    brand=self.config.brand,
                )
            )
        else:
            logger.debug("No web manifest at %s; skipping web merge", web_path)
        return manifests

    # -- Schema ------------------------------------------------------------

    async def _merge_schema(
        self, resolved: ResolvedFeatureSet, warnings: list[str]
    ) -> MergedSchema:
        base_blocks = await asyncio.to_thread(read_base_schema, self.config.schema_path)

        fragments: list[SchemaFragment] = []
        for feature in resolved.features:
            for mapping in feature.schema_mappings:
                try:
                    blocks = await asyncio.to_thread(self._read_fragment, mapping.source)
                except (OSError, SchemaSyntaxError) as exc:
                    error = ArtifactReadError(feature.slug, mapping.source, str(exc))
                    if self.config.strict_artifacts:
                        raise error from exc
                    logger.warning("%s; skipping", error)
                    warnings.append(str(error))
                    continue
                fragments.append(
                    SchemaFragment(feature=feature.slug, expected_model=mapping.model, blocks=blocks)
                )

        return merge_schema(base_blocks, fragments, brand=self.config.brand)

    def _read_fragment(self, source: str):
        path = resolve_artifact_source(source, self.config.modules_dir, self.config.template_dir)
        return parse_blocks(path.read_text(encoding="utf-8"))

    # -- Environment -------------------------------------------------------

    async def _base_env(self) -> list[EnvVarSpec]:
        path = self.config.env_example_path
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No base .env.example at %s; using core defaults", path)
            return list(DEFAULT_CORE_ENV)
        return parse_env_example(text)

