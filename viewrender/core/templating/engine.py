# viewrender/core/templating/engine.py
"""
Jinja2 integration: environment setup, fragment compilation, and rendering of
engine exceptions into the error grammar understood by the classifier.
"""
import traceback
from typing import Any, Callable, Optional, Tuple

import jinja2
import structlog

from .namespace import Namespace

log = structlog.get_logger(__name__)

ENGINE_TAG = "jinja2"
DEPTH_MESSAGE = "exceeded maximum template depth"
STRING_TEMPLATE_NAME = "string"


class NamespaceLoader(jinja2.BaseLoader):
    """Serves ``{% include %}`` lookups from whatever namespace is current.

    ``current`` is called on every lookup, so a session that swaps in a newer
    namespace version is seen by includes immediately.
    """

    def __init__(self, current: Callable[[], Namespace]):
        self._current = current

    def get_source(self, environment: jinja2.Environment, template: str) -> Tuple[str, Optional[str], Callable[[], bool]]:
        source = self._current().source(template)
        if source is None:
            raise jinja2.TemplateNotFound(template)
        return source, None, lambda: True

    def load(self, environment: jinja2.Environment, name: str, globals: Any = None) -> jinja2.Template:
        template = self._current().lookup(name)
        if template is None:
            raise jinja2.TemplateNotFound(name)
        return template


def create_environment(loader: jinja2.BaseLoader) -> jinja2.Environment:
    # no template cache: the loader, not the environment, decides what exists.
    return jinja2.Environment(
        loader=loader,
        undefined=jinja2.StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        cache_size=0,
        auto_reload=False,
    )


def compile_template(environment: jinja2.Environment, name: str, source: str) -> jinja2.Template:
    """Compiles ``source`` under ``name``; raises jinja2.TemplateSyntaxError."""
    code = environment.compile(source, name=name, filename=name)
    template = environment.template_class.from_code(
        environment, code, environment.make_globals(None), None
    )
    log.debug("template_compiled", name=name, size=len(source))
    return template


def traceback_position(exc: BaseException, namespace: Optional[Namespace]) -> Tuple[str, int]:
    """Innermost template frame of ``exc``'s traceback as (basename, line)."""
    if namespace is None:
        return "", 0
    basename, line = "", 0
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        filename = frame.f_code.co_filename
        if filename in namespace:
            basename, line = filename, lineno or 0
    return basename, line


def describe_exception(exc: BaseException, namespace: Optional[Namespace] = None, current: str = "") -> str:
    """Renders an engine exception as ``jinja2: <basename>:<line>: <message>``."""
    if isinstance(exc, jinja2.TemplateSyntaxError):
        name = exc.name or current
        message = exc.message or "syntax error"
        if name:
            return f"{ENGINE_TAG}: {name}:{exc.lineno}: {message}"
        return f"{ENGINE_TAG}: {message}"

    if isinstance(exc, jinja2.TemplateNotFound):
        detail = f'template "{exc.name}" not defined'
    elif isinstance(exc, RecursionError):
        detail = str(exc) if DEPTH_MESSAGE in str(exc) else DEPTH_MESSAGE
    else:
        detail = str(exc) or type(exc).__name__

    basename, line = traceback_position(exc, namespace)
    if basename:
        return f'{ENGINE_TAG}: {basename}:{line}: executing "{basename}": {detail}'
    if current:
        return f'{ENGINE_TAG}: executing "{current}": {detail}'
    return f"{ENGINE_TAG}: executing: {detail}"
