# viewrender/core/fileset.py
"""
Immutable snapshot of named byte blobs, partitioned into binary and text entries.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional
import structlog

from viewrender.exceptions import ConfigError, ResourceError

log = structlog.get_logger(__name__)

@dataclass(frozen=True)
class Entry:
    # one named view file; binary entries are never parsed.
    name: str
    content: bytes
    is_binary: bool = False

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class FileSet:
    """Read-only collection of entries keyed by forward-slash name.

    ``max_size`` bounds every entry and ``sum_max_size`` the total; zero
    disables a ceiling. Violations raise ResourceError at construction.
    """

    def __init__(
        self,
        entries: Iterable[Entry],
        max_size: int = 0,
        sum_max_size: int = 0,
        origin: str = ".",
    ):
        binaries: Dict[str, Entry] = {}
        texts: Dict[str, Entry] = {}
        total = 0
        for entry in entries:
            if entry.name in binaries or entry.name in texts:
                raise ConfigError(f"duplicate entry name '{entry.name}'")
            if max_size > 0 and entry.size > max_size:
                raise ResourceError(
                    f"{entry.name}: {max_size} < {entry.size}. maxsize over",
                    path=entry.name, limit=max_size, size=entry.size,
                )
            total += entry.size
            (binaries if entry.is_binary else texts)[entry.name] = entry

        if sum_max_size > 0 and total > sum_max_size:
            raise ResourceError(
                f"{origin}: {sum_max_size} < {total}. sum maxsize over",
                path=origin, limit=sum_max_size, size=total,
            )

        self._binaries: Mapping[str, Entry] = MappingProxyType(binaries)
        self._texts: Mapping[str, Entry] = MappingProxyType(texts)
        self.total_size = total
        log.debug("fileset_created", texts=len(texts), binaries=len(binaries), total_size=total)

    @property
    def binaries(self) -> Mapping[str, Entry]:
        return self._binaries

    @property
    def texts(self) -> Mapping[str, Entry]:
        return self._texts

    def get(self, name: str) -> Optional[Entry]:
        return self._texts.get(name) or self._binaries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._texts or name in self._binaries

    def __iter__(self) -> Iterator[Entry]:
        yield from self._texts.values()
        yield from self._binaries.values()

    def __len__(self) -> int:
        return len(self._texts) + len(self._binaries)
