# viewrender/core/discovery/pattern_matching.py
from typing import List, Optional

import pathspec
import structlog

from viewrender.exceptions import ConfigError

log = structlog.get_logger(__name__)

BINARY_SNIFF_BYTES = 1024
_GLOB_CHARS = set("*?[")


def target_to_pattern(target: str) -> str:
    # plain suffixes such as ".html" match any file name ending with them.
    if _GLOB_CHARS.intersection(target):
        return target
    return f"*{target}"


def compile_target_spec(targets: List[str]) -> Optional[pathspec.PathSpec]:
    """Compiles file targets into a pathspec; None means every file is a target."""
    if not targets:
        return None
    patterns = [target_to_pattern(t) for t in targets if t]
    try:
        return pathspec.GitIgnoreSpec.from_lines(patterns)
    except Exception as e:
        raise ConfigError(f"error compiling target patterns {targets}: {e}") from e


def is_target(name: str, spec: Optional[pathspec.PathSpec]) -> bool:
    return spec is None or spec.match_file(name)


def looks_binary(content: bytes) -> bool:
    # control bytes 0..8 in the leading block mark a file as binary.
    return any(byte <= 8 for byte in content[:BINARY_SNIFF_BYTES])
