import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Pattern
import structlog

from viewrender.exceptions import ConfigError

log = structlog.get_logger(__name__)

DEFAULT_MAX_DEPTH = 32
DEFAULT_MAX_ATTEMPTS = 256

class DuplicatePolicy(Enum):
    # what happens when a helper name is registered twice.
    OVERWRITE = "overwrite"
    REJECT = "reject"

    @classmethod
    def from_string(cls, s: Optional[str]) -> "DuplicatePolicy":
        if not s:
            return cls.OVERWRITE
        try:
            return cls(s.lower())
        except ValueError:
            log.warning("invalid_duplicate_policy_string", input_string=s)
            return cls.OVERWRITE

@dataclass
class RenderConfig:
    # holds all configuration parameters for one renderer.
    directory: Path = field(default_factory=lambda: Path("."))
    targets: List[str] = field(default_factory=list)
    exclude: Optional[str] = None
    cache: bool = False
    binary: bool = False
    max_size: int = 0
    sum_max_size: int = 0
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.OVERWRITE
    max_depth: int = DEFAULT_MAX_DEPTH
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self):
        # coerces loosely typed values coming from toml or the command line.
        self.directory = Path(self.directory)
        if isinstance(self.duplicate_policy, str):
            self.duplicate_policy = DuplicatePolicy.from_string(self.duplicate_policy)
        for name in ("max_size", "sum_max_size"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.max_depth < 1 or self.max_attempts < 1:
            raise ConfigError("max_depth and max_attempts must be positive")

    def exclude_pattern(self) -> Optional[Pattern[str]]:
        if not self.exclude:
            return None
        try:
            return re.compile(self.exclude)
        except re.error as e:
            raise ConfigError(f"invalid exclude pattern {self.exclude!r}: {e}") from e
