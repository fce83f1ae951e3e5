# viewrender/core/templating/classifier.py
"""
Turns engine failures into typed TemplateError instances.

Exceptions are first rendered into the ``<tag>: <basename>:<line>[:<column>]:
<message>`` grammar by the engine module; ``parse_error_message`` then reads
the position back out and ``classify`` picks the error kind and the reference
name, if any, that a lazy resolver could still load.
"""
import re
from dataclasses import dataclass
from typing import Collection, Optional, Type, Union
import structlog

from viewrender.exceptions import (
    ExecutionError,
    NotDefinedError,
    ParseError,
    RecursionLimitError,
    TemplateError,
)

from .engine import DEPTH_MESSAGE, describe_exception
from .namespace import Namespace

log = structlog.get_logger(__name__)

ENGINE_PREFIXES = frozenset({"jinja2", "template"})
RENDER_PREFIX = "render"

CALL_TARGET_PATTERN = re.compile(r'error calling [^:]+: .*no template "([^"]*)"')
NOT_DEFINED_TARGET_PATTERN = re.compile(r'template "([^"]*)" not defined')
RECURSION_MARKERS = (
    DEPTH_MESSAGE,
    "maximum recursion depth",
    "too many reference attempts",
)


@dataclass(frozen=True)
class ParsedMessage:
    prefix: str
    basename: str
    line: int
    column: int
    message: str


def _decimal(token: str) -> Optional[int]:
    token = token.strip()
    return int(token) if token.isdecimal() else None


def parse_error_message(text: str, known_names: Collection[str] = ()) -> Optional[ParsedMessage]:
    """Splits an error string into prefix, position and message.

    Returns None for empty input. Engine prefixes are reported as ``render``.
    """
    if not text:
        return None
    parts = text.split(": ")
    if len(parts) == 1:
        return ParsedMessage("", "", 0, 0, text)

    prefix = RENDER_PREFIX if parts[0] in ENGINE_PREFIXES else parts[0]
    if len(parts) == 2:
        return ParsedMessage(prefix, "", 0, 0, parts[1])

    position, rest = parts[1], ": ".join(parts[2:])
    if ":" not in position:
        if position in known_names:
            return ParsedMessage(prefix, position, 0, 0, rest)
        return ParsedMessage(prefix, "", 0, 0, ": ".join(parts[1:]))

    tokens = position.split(":")
    basename = tokens[0]
    line = _decimal(tokens[1]) if len(tokens) > 1 else None
    column = _decimal(tokens[2]) if len(tokens) > 2 and line is not None else None
    return ParsedMessage(prefix, basename, line or 0, column or 0, rest)


def find_target(text: str) -> str:
    # the "not defined" form wins when both patterns match.
    match = NOT_DEFINED_TARGET_PATTERN.search(text) or CALL_TARGET_PATTERN.search(text)
    return match.group(1) if match else ""


def is_recursion_message(text: str) -> bool:
    return any(marker in text for marker in RECURSION_MARKERS)


def _select_kind(parsed: ParsedMessage, recursion: bool, target: str) -> Type[TemplateError]:
    if recursion:
        return RecursionLimitError
    if target:
        return NotDefinedError
    if not parsed.prefix:
        return TemplateError
    if parsed.message.startswith("executing") or "error calling" in parsed.message:
        return ExecutionError
    return ParseError


def classify(
    error: Union[BaseException, str, None],
    namespace: Optional[Namespace] = None,
    fallback_root: str = "",
    current: str = "",
) -> Optional[TemplateError]:
    """Returns a typed TemplateError for ``error``, or None when there is nothing to classify."""
    if error is None:
        return None
    if isinstance(error, TemplateError):
        return error
    if isinstance(error, BaseException):
        text = describe_exception(error, namespace, current)
    else:
        text = str(error)

    known = namespace if namespace is not None else ()
    parsed = parse_error_message(text, known)
    if parsed is None:
        return None

    recursion = is_recursion_message(text)
    target = "" if recursion else find_target(text)
    root = fallback_root
    if namespace is not None and parsed.basename in namespace:
        root = namespace.source(parsed.basename) or fallback_root

    kind = _select_kind(parsed, recursion, target)
    classified = kind(
        parsed.message,
        error_type=parsed.prefix,
        basename=parsed.basename,
        line=parsed.line,
        column=parsed.column,
        root=root,
        target=target,
    )
    log.debug(
        "error_classified",
        kind=classified.kind,
        basename=classified.basename,
        line=classified.line,
        target=classified.target or None,
    )
    return classified
