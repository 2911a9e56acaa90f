"""Artifact merging -- manifests, Prisma schema, and environment variables.

Quick usage::

    from starterkit.merger import ArtifactMerger

    result = await ArtifactMerger(config).merge(resolved, "saas-starter-pro")
    print(result.manifest("backend").render())
    print(result.schema.text)
"""

from starterkit.merger.artifacts import ArtifactMerger, MergeResult
from starterkit.merger.env import merge_env, parse_env_example
from starterkit.merger.manifest import merge_dependencies, merge_manifest
from starterkit.merger.schema import merge_schema, parse_blocks

__all__ = [
    "ArtifactMerger",
    "MergeResult",
    "merge_dependencies",
    "merge_env",
    "merge_manifest",
    "merge_schema",
    "parse_blocks",
    "parse_env_example",
]
