"""Project generator: one order in, one streamed ZIP archive out.

Ties the stages together:

1. RESOLVE  -- dependency-closed feature set from the catalog.
2. MERGE    -- package manifests, Prisma schema, environment variables.
3. DOCUMENT -- README, LICENSE, starter-config.json, ``.env.example``.
4. PLAN     -- base template walk plus feature overlays.
5. STREAM   -- deflated ZIP written to the caller's sink with backpressure.

Stages 1-4 complete before the first byte is written, so configuration
errors never leave a partial archive behind.

Usage::

    python -m starterkit.generator order.json --catalog catalog.json -o out.zip
    starterkit order.json --catalog-url https://studio.internal/api/catalog
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Sequence

from starterkit.archive import ArchiveAssembler, ByteSink, FileSink, QueueSink
from starterkit.catalog import FeatureCatalog, HttpFeatureCatalog, InMemoryCatalog
from starterkit.config import Config
from starterkit.documents import DocumentGenerator, TemplateRenderer
from starterkit.errors import ArchiveStreamError, GenerationError
from starterkit.merger import ArtifactMerger, MergeResult
from starterkit.models import GenerationResult, Order, ResolvedFeatureSet
from starterkit.resolver import FeatureResolver
from starterkit.utils import (
    console,
    format_bytes,
    format_duration,
    load_json,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    sanitize_name,
    setup_logging,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectGenerator:
    """Generates customer codebases from orders.

    A single instance serves any number of concurrent ``generate`` calls:
    it holds only read-only configuration and the catalog reference.

    Args:
        catalog: Read-only source of feature records.
        config: Generator configuration; defaults to ``Config()``.
        renderer: Document template renderer; defaults to the bundled
            templates.
        now: Clock used for document timestamps and archive entry dates.
    """

    def __init__(
        self,
        catalog: FeatureCatalog,
        config: Optional[Config] = None,
        renderer: Optional[TemplateRenderer] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.catalog = catalog
        self.config = config or Config()
        self.now = now or _utcnow
        self.resolver = FeatureResolver(catalog)
        self.merger = ArtifactMerger(self.config)
        self.documents = DocumentGenerator(
            renderer=renderer, brand=self.config.brand, clock=self.now
        )
        self.assembler = ArchiveAssembler(self.config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve_features(
        self,
        selected: Sequence[str],
        tier: str,
        template_included: Sequence[str] = (),
    ) -> ResolvedFeatureSet:
        """Resolve the dependency closure of the selected and bundled features."""
        return await self.resolver.resolve(selected, tier, template_included)

    def project_name(self, order: Order) -> str:
        """Root folder name: ``<template slug or fallback>-<tier>``, sanitised."""
        token = order.template.slug if order.template else self.config.fallback_project_token
        name = f"{sanitize_name(token)}-{sanitize_name(order.tier)}".strip("-")
        return name or sanitize_name(self.config.fallback_project_token)

    async def generate(self, order: Order, sink: ByteSink) -> GenerationResult:
        """Generate the project for *order* and stream it to *sink*.

        On success the sink has received a complete archive and has been
        closed.  On failure ``sink.abort(exc)`` is called and the exception
        propagates; anything the sink received must be discarded.

        Raises:
            BaseTemplateError: Base manifest, schema or template directory
                missing or unparsable (before any output).
            ArtifactReadError: A feature artifact is unreadable.
            PathTraversalError: An artifact path escapes its root.
            CatalogError: The catalog could not be queried.
            ArchiveStreamError: Writing the archive failed mid-stream.
        """
        try:
            return await self._generate(order, sink)
        except Exception as exc:
            logger.error("Generation failed for order %s: %s", order.order_number, exc)
            try:
                await sink.abort(exc)
            except Exception as abort_exc:
                logger.warning("Sink abort failed after generation error: %s", abort_exc)
            raise

    async def stream(self, order: Order) -> AsyncIterator[bytes]:
        """Yield the archive for *order* chunk by chunk.

        Suitable as the body of a streaming HTTP response.  Generation runs
        in a background task that is throttled by the consumer: at most
        ``config.archive.queue_depth`` chunks are buffered.  Closing the
        iterator early cancels generation.
        """
        sink = QueueSink(maxsize=self.config.archive.queue_depth)
        task = asyncio.create_task(self.generate(order, sink))
        try:
            async for chunk in sink:
                yield chunk
        except ArchiveStreamError:
            # The task holds the underlying exception; awaited below.
            pass
        except BaseException:
            sink.cancel()
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, GenerationError):
                await task
            raise
        await task

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _generate(self, order: Order, sink: ByteSink) -> GenerationResult:
        project_name = self.project_name(order)
        logger.info("Generating %s for order %s", project_name, order.order_number)

        resolved = await self.resolve_features(
            order.selected_features, order.tier, order.template_features
        )
        logger.info(
            "Resolved %d feature(s): %s",
            len(resolved.features),
            ", ".join(resolved.all_feature_slugs) or "(base only)",
        )

        merged = await self.merger.merge(resolved, project_name)
        generated = self._generated_files(order, resolved, merged)

        plan = await self.assembler.plan(project_name, resolved, generated, merged.warnings)
        logger.debug("Archive plan has %d files", len(plan))

        writer = await self.assembler.stream(
            plan, sink, date_time=self.now().timetuple()[:6]
        )
        logger.info(
            "Streamed %s: %d files, %s",
            project_name,
            writer.entries,
            format_bytes(writer.bytes_written),
        )

        return GenerationResult(
            project_name=project_name,
            feature_slugs=list(resolved.all_feature_slugs),
            unresolved=list(resolved.unresolved),
            entries=writer.entries,
            bytes_written=writer.bytes_written,
            version_conflicts=merged.version_conflicts,
        )

    def _generated_files(
        self, order: Order, resolved: ResolvedFeatureSet, merged: MergeResult
    ) -> dict[str, str]:
        layout = self.config.layout
        files: dict[str, str] = {}
        for manifest in merged.manifests:
            path = layout.web_manifest if manifest.target == "web" else layout.backend_manifest
            files[path] = manifest.render()
        files[layout.schema_file] = merged.schema.text
        files[layout.env_example] = self.documents.env_example(merged.env)
        files[layout.readme] = self.documents.readme(order, resolved)
        files[layout.license] = self.documents.license(order)
        files[layout.descriptor] = self.documents.descriptor(order, resolved)
        return files


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``python -m starterkit.generator``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="starterkit -- generate a SaaS codebase archive from an order",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  starterkit order.json --catalog catalog.json\n"
            "  starterkit order.json --catalog catalog.json -o ./out/pro.zip\n"
            "  starterkit order.json --catalog-url http://localhost:4000/api/catalog\n"
        ),
    )

    parser.add_argument("order", help="Path to the order JSON file")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--catalog", help="Path to a JSON export of the feature catalog")
    source.add_argument("--catalog-url", help="Base URL of a remote feature catalog")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a saved generator config (defaults to STARTERKIT_* env vars)",
    )
    parser.add_argument("--template-dir", default=None, help="Base template directory")
    parser.add_argument("--modules-dir", default=None, help="Feature modules root")
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Archive path (default: ./<project-name>.zip)",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Skip unreadable feature artifacts instead of failing",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")

    args = parser.parse_args()
    setup_logging(args.log_level)

    order_path = Path(args.order)
    if not order_path.exists():
        console.print(f"[bold red]Error:[/bold red] Order file not found: {order_path}")
        sys.exit(1)

    config = Config.load(Path(args.config)) if args.config else Config.from_env()
    if args.template_dir:
        config.template_dir = Path(args.template_dir)
    if args.modules_dir:
        config.modules_dir = Path(args.modules_dir)
    if args.lenient:
        config.strict_artifacts = False

    catalog_url = args.catalog_url or config.catalog.url
    if args.catalog:
        catalog: FeatureCatalog = InMemoryCatalog.from_json(args.catalog)
    elif catalog_url:
        catalog = HttpFeatureCatalog(catalog_url, timeout=config.catalog.timeout)
    else:
        console.print("[bold red]Error:[/bold red] Provide --catalog or --catalog-url")
        sys.exit(1)

    try:
        order = Order.model_validate(load_json(order_path))
    except ValueError as exc:
        print_error(f"Invalid order file {order_path}: {exc}")
        sys.exit(1)

    generator = ProjectGenerator(catalog, config)
    output = Path(args.output) if args.output else Path(f"{generator.project_name(order)}.zip")

    started = time.monotonic()
    try:
        result = asyncio.run(generator.generate(order, FileSink(output)))
    except GenerationError as exc:
        print_error(f"Generation failed: {exc}")
        sys.exit(1)

    print_summary_table(
        {
            "Project": result.project_name,
            "Features": ", ".join(result.feature_slugs) or "(base only)",
            "Files": str(result.entries),
            "Size": format_bytes(result.bytes_written),
            "Duration": format_duration(time.monotonic() - started),
        },
        title="Generated Archive",
    )
    if result.unresolved:
        print_warning(f"Unknown or inactive features skipped: {', '.join(result.unresolved)}")
    for conflict in result.version_conflicts:
        print_warning(
            f"{conflict.package}: {conflict.selected} replaced {conflict.replaced}"
        )
    print_success(f"Archive written to {output}")


if __name__ == "__main__":
    main()
