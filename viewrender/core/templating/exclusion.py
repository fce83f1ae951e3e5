# viewrender/core/templating/exclusion.py
from typing import Match, Optional, Pattern

import structlog

log = structlog.get_logger(__name__)


def _keep_groups(match: Match[str]) -> str:
    return "".join(group for group in match.groups() if group is not None)


def strip_excluded(text: str, pattern: Optional[Pattern[str]]) -> str:
    """Replaces every match of ``pattern`` by its capture groups until nothing changes.

    A pattern such as ``(^|\\n)//=\\s*(.+)`` turns ``//= visible`` into
    ``visible``. Without a pattern the text is returned as is.
    """
    if pattern is None:
        return text
    passes = 0
    while pattern.search(text):
        stripped = pattern.sub(_keep_groups, text)
        passes += 1
        if stripped == text:
            break
        text = stripped
    if passes:
        log.debug("exclusion_applied", pattern=pattern.pattern, passes=passes)
    return text
