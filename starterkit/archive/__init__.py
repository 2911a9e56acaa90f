"""Archive planning and streaming.

Quick usage::

    from starterkit.archive import ArchiveAssembler, FileSink

    assembler = ArchiveAssembler(config)
    plan = await assembler.plan("saas-pro", resolved, generated_files)
    await assembler.stream(plan, FileSink("saas-pro.zip"))
"""

from starterkit.archive.assembler import ArchiveAssembler, ArchivePlan, PlanEntry
from starterkit.archive.sinks import (
    BufferSink,
    ByteSink,
    FileSink,
    QueueSink,
    StreamWriterSink,
)
from starterkit.archive.walker import is_excluded_file, walk_template
from starterkit.archive.writer import StreamingZipWriter

__all__ = [
    "ArchiveAssembler",
    "ArchivePlan",
    "BufferSink",
    "ByteSink",
    "FileSink",
    "PlanEntry",
    "QueueSink",
    "StreamWriterSink",
    "StreamingZipWriter",
    "is_excluded_file",
    "walk_template",
]
