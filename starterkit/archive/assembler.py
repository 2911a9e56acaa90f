"""Archive assembly: plan the generated tree, then stream it.

Planning does all the work that can fail for configuration reasons
(walking the base template, locating every overlay source) before a single
byte reaches the sink.  Streaming then only reads files that are known to
exist.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from starterkit.config import Config
from starterkit.errors import ArtifactReadError, BaseTemplateError
from starterkit.models import Feature, FileMapping, ResolvedFeatureSet
from starterkit.utils import normalize_destination, resolve_artifact_source

from .sinks import ByteSink
from .walker import walk_template
from .writer import StreamingZipWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanEntry:
    """One file of the generated tree, backed by a path on disk or by bytes."""

    arcname: str
    origin: str
    path: Optional[Path] = None
    data: Optional[bytes] = None


@dataclass
class ArchivePlan:
    """Ordered mapping of project-relative path to its final content."""

    project_name: str
    entries: dict[str, PlanEntry]

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, arcname: object) -> bool:
        return arcname in self.entries

    def origin(self, arcname: str) -> str:
        return self.entries[arcname].origin


BASE_ORIGIN = "base"
GENERATED_ORIGIN = "generated"


class ArchiveAssembler:
    """Builds the archive plan for one order and streams it as a ZIP."""

    def __init__(self, config: Config) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def plan(
        self,
        project_name: str,
        resolved: ResolvedFeatureSet,
        generated: Mapping[str, Union[str, bytes]],
        warnings: Optional[list[str]] = None,
    ) -> ArchivePlan:
        """Lay out the generated tree.

        Precedence, lowest to highest: base template files, feature overlays
        (later features over earlier ones), generated files.

        Raises:
            BaseTemplateError: The template directory does not exist.
            ArtifactReadError: An overlay source is missing (strict mode).
            PathTraversalError: An overlay source or destination escapes
                its root.
        """
        entries: dict[str, PlanEntry] = {}

        try:
            base_files = await asyncio.to_thread(
                walk_template,
                self.config.template_dir,
                self.config.excluded_dirs,
                self.config.excluded_files,
            )
        except NotADirectoryError as exc:
            raise BaseTemplateError(self.config.template_dir, str(exc)) from exc

        for rel, path in base_files:
            entries[rel] = PlanEntry(arcname=rel, origin=BASE_ORIGIN, path=path)
        logger.debug("Base template contributes %d files", len(base_files))

        for feature in resolved.features:
            for mapping in feature.file_mappings:
                try:
                    overlay = await asyncio.to_thread(self._expand_mapping, mapping)
                except OSError as exc:
                    error = ArtifactReadError(feature.slug, mapping.source, str(exc))
                    if self.config.strict_artifacts:
                        raise error from exc
                    logger.warning("%s; skipping", error)
                    if warnings is not None:
                        warnings.append(str(error))
                    continue
                self._apply_overlay(entries, feature, overlay)

        for rel, content in generated.items():
            rel = normalize_destination(rel)
            data = content.encode("utf-8") if isinstance(content, str) else content
            entries[rel] = PlanEntry(arcname=rel, origin=GENERATED_ORIGIN, data=data)

        return ArchivePlan(project_name=project_name, entries=entries)

    def _expand_mapping(self, mapping: FileMapping) -> list[tuple[str, Path]]:
        """Resolve one mapping into ``(destination, source_path)`` pairs.

        Directory sources are copied recursively under the destination,
        honouring the same exclusions as the base template.
        """
        destination = normalize_destination(mapping.destination)
        source = resolve_artifact_source(
            mapping.source, self.config.modules_dir, self.config.template_dir
        )
        if source.is_dir():
            files = walk_template(
                source, self.config.excluded_dirs, self.config.excluded_files
            )
            return [(f"{destination}/{rel}", path) for rel, path in files]
        if not source.is_file():
            raise FileNotFoundError(f"No such file or directory: {source}")
        return [(destination, source)]

    @staticmethod
    def _apply_overlay(
        entries: dict[str, PlanEntry], feature: Feature, overlay: list[tuple[str, Path]]
    ) -> None:
        for rel, path in overlay:
            previous = entries.get(rel)
            if previous is not None and previous.origin != BASE_ORIGIN:
                logger.debug("%s: %s overrides %s", rel, feature.slug, previous.origin)
            entries[rel] = PlanEntry(arcname=rel, origin=feature.slug, path=path)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self,
        plan: ArchivePlan,
        sink: ByteSink,
        date_time: Optional[tuple[int, int, int, int, int, int]] = None,
    ) -> StreamingZipWriter:
        """Write *plan* under ``<project_name>/`` to *sink* and close it.

        *date_time* stamps the root folder and generated files.

        Returns:
            The finished writer, for its entry and byte counts.

        Raises:
            ArchiveStreamError: A file read or sink write failed mid-stream.
        """
        writer = StreamingZipWriter(
            sink,
            compression_level=self.config.archive.compression_level,
            chunk_size=self.config.archive.chunk_size,
            date_time=date_time,
        )
        root = plan.project_name
        await writer.add_directory(f"{root}/")
        for entry in plan.entries.values():
            arcname = f"{root}/{entry.arcname}"
            if entry.data is not None:
                await writer.add_bytes(arcname, entry.data)
            else:
                await writer.add_file(arcname, entry.path)
        await writer.finish()
        return writer
