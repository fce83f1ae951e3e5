# viewrender/core/discovery/store.py
from pathlib import Path
from typing import Optional

import structlog

from viewrender.config.settings import RenderConfig
from viewrender.core.discovery.pattern_matching import compile_target_spec, is_target, looks_binary
from viewrender.core.fileset import Entry
from viewrender.exceptions import NotDefinedError, ResourceError

log = structlog.get_logger(__name__)


class DirectoryStore:
    """Backing store reading view files from disk on demand.

    Names are forward-slash paths relative to ``directory``. Anything that
    should look absent (no such file, a directory, a non-target name, a binary
    when binaries are off, a path leaving the root) raises NotDefinedError;
    permission and size failures raise ResourceError.
    """

    def __init__(self, config: RenderConfig):
        self.root = config.directory.resolve()
        self.target_spec = compile_target_spec(config.targets)
        self.binary = config.binary
        self.max_size = config.max_size

    def _not_defined(self, name: str) -> NotDefinedError:
        return NotDefinedError(f'template "{name}" not defined', error_type="render", target=name)

    def _path_for(self, name: str) -> Optional[Path]:
        """Resolved path of a regular file named ``name`` under the root, else None."""
        try:
            path = (self.root / name).resolve()
            if not path.is_relative_to(self.root):
                log.warning("view_path_outside_root", name=name)
                return None
            return path if path.is_file() else None
        except (OSError, ValueError) as e:
            # NUL bytes, over-long names and the like name no file.
            log.info("view_path_unusable", name=name[:200], error=str(e))
            return None

    def exists(self, name: str) -> bool:
        if not is_target(name, self.target_spec):
            return False
        return self._path_for(name) is not None

    def read(self, name: str) -> Entry:
        if not is_target(name, self.target_spec):
            raise self._not_defined(name)
        path = self._path_for(name)
        if path is None:
            raise self._not_defined(name)

        try:
            content = path.read_bytes()
        except FileNotFoundError as e:
            raise self._not_defined(name) from e
        except OSError as e:
            raise ResourceError(f"{name}: {e.strerror or e}", path=name) from e

        binary = looks_binary(content)
        if binary and not self.binary:
            raise self._not_defined(name)
        if self.max_size > 0 and len(content) > self.max_size:
            raise ResourceError(
                f"{name}: {self.max_size} < {len(content)}. maxsize over",
                path=name, limit=self.max_size, size=len(content),
            )
        log.debug("view_file_read", name=name, size=len(content), binary=binary)
        return Entry(name, content, binary)
