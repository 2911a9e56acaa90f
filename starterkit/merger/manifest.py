"""``package.json`` merging.

Feature dependencies are folded into the base manifest's dependency maps.
A package declared more than once keeps the constraint of the *last*
declaration in resolution order (features also override the base).  Every
override with a differing constraint is reported as a ``VersionConflict``.
Maps are emitted sorted so identical orders produce identical manifests.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from starterkit.errors import BaseTemplateError
from starterkit.models import PackageDependency, ProjectManifest, VersionConflict

logger = logging.getLogger(__name__)


# Scripts guaranteed in the backend manifest; base scripts always win.
DEFAULT_BACKEND_SCRIPTS: dict[str, str] = {
    "dev": "tsx watch src/app.ts",
    "build": "tsc",
    "start": "node dist/app.js",
    "lint": "eslint src",
    "db:migrate": "prisma migrate dev",
    "db:push": "prisma db push",
    "db:generate": "prisma generate",
    "db:seed": "tsx prisma/seed.ts",
}


def merge_dependencies(
    base_deps: dict[str, str],
    base_dev_deps: dict[str, str],
    packages: Iterable[PackageDependency],
) -> tuple[dict[str, str], dict[str, str], list[VersionConflict]]:
    """Fold *packages* into copies of the base dependency maps.

    Returns:
        ``(dependencies, dev_dependencies, conflicts)`` with both maps sorted
        by key.  A name present in both maps is kept only as a runtime
        dependency.
    """
    deps = dict(base_deps)
    dev_deps = dict(base_dev_deps)
    conflicts: list[VersionConflict] = []

    for package in packages:
        target = dev_deps if package.dev else deps
        previous = target.get(package.name)
        if previous is not None and previous != package.version:
            conflicts.append(
                VersionConflict(
                    package=package.name, selected=package.version, replaced=previous
                )
            )
        target[package.name] = package.version

    for name in deps:
        dev_deps.pop(name, None)

    return _sorted(deps), _sorted(dev_deps), conflicts


def ensure_scripts(scripts: dict[str, str]) -> dict[str, str]:
    """Add any missing default backend script, keeping existing ones untouched."""
    merged = dict(scripts)
    for name, command in DEFAULT_BACKEND_SCRIPTS.items():
        merged.setdefault(name, command)
    return merged


def read_base_manifest(path: Path) -> dict[str, Any]:
    """Read and parse a base ``package.json``.

    Raises:
        BaseTemplateError: If the file is missing, unreadable, not JSON, or
            not a JSON object.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BaseTemplateError(path, f"could not read base package.json ({exc})") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise BaseTemplateError(path, f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise BaseTemplateError(path, "package.json must contain a JSON object")
    return data


def merge_manifest(
    base: dict[str, Any],
    project_name: str,
    packages: Iterable[PackageDependency],
    target: str = "backend",
    brand: str = "Xitolaunch",
) -> ProjectManifest:
    """Merge *packages* into the parsed base manifest *base*.

    The manifest is renamed after the project; every other base field is
    preserved in its original position.
    """
    base_deps = dict(base.get("dependencies") or {})
    base_dev_deps = dict(base.get("devDependencies") or {})
    deps, dev_deps, conflicts = merge_dependencies(base_deps, base_dev_deps, packages)

    for conflict in conflicts:
        logger.warning(
            "%s manifest: %s %s replaces %s",
            target,
            conflict.package,
            conflict.selected,
            conflict.replaced,
        )

    content = dict(base)
    content["name"] = project_name
    content["description"] = f"{project_name} - Generated by {brand}"
    if target == "backend":
        content["scripts"] = ensure_scripts(base.get("scripts") or {})
    content["dependencies"] = deps
    content["devDependencies"] = dev_deps

    return ProjectManifest(
        target=target,
        content=content,
        added_dependencies=[name for name in deps if name not in base_deps],
        added_dev_dependencies=[name for name in dev_deps if name not in base_dev_deps],
        version_conflicts=conflicts,
    )


def _sorted(mapping: dict[str, str]) -> dict[str, str]:
    return {key: mapping[key] for key in sorted(mapping)}
