# viewrender/core/discovery/walker.py
import os
from pathlib import Path
from typing import Iterator, List

import structlog

from viewrender.config.settings import RenderConfig
from viewrender.core.discovery.pattern_matching import compile_target_spec, is_target, looks_binary
from viewrender.core.fileset import Entry, FileSet
from viewrender.exceptions import ResourceError

log = structlog.get_logger(__name__)


def iter_view_files(directory: Path) -> Iterator[Path]:
    # yields every regular file below directory in a stable order.
    for root, subdirs, files in os.walk(directory):
        subdirs.sort()
        for filename in sorted(files):
            yield Path(root) / filename


def collect_fileset(config: RenderConfig) -> FileSet:
    """Reads every target file below ``config.directory`` into a size-checked FileSet."""
    root = config.directory
    target_spec = compile_target_spec(config.targets)
    log.info("fileset_collection_started", directory=str(root), targets=config.targets)

    entries: List[Entry] = []
    skipped_binaries = 0
    for path in iter_view_files(root):
        name = path.relative_to(root).as_posix()
        if not is_target(name, target_spec):
            continue
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ResourceError(f"{name}: {e.strerror or e}", path=name) from e

        binary = looks_binary(content)
        if binary and not config.binary:
            skipped_binaries += 1
            continue
        entries.append(Entry(name, content, binary))

    fileset = FileSet(
        entries,
        max_size=config.max_size,
        sum_max_size=config.sum_max_size,
        origin=str(root),
    )
    log.info(
        "fileset_collection_finished",
        entries=len(fileset),
        skipped_binaries=skipped_binaries,
        total_size=fileset.total_size,
    )
    return fileset
