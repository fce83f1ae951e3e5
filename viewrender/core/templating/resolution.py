# viewrender/core/templating/resolution.py
"""
Resolves cross references between view fragments and executes them.

``MemoryResolver`` parses every text entry of a FileSet up front into one
shared, read-only namespace. ``LazyResolver`` reads and parses files from a
backing store on demand: when execution fails on a reference that is not yet
loaded, the reference is read, parsed into the session namespace and the call
is run again from the top. Each session keeps a ledger of attempted names so
a reference is loaded at most once per call.
"""
import functools
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Pattern, Set

import jinja2
import structlog

from viewrender.config.settings import DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_DEPTH
from viewrender.core.fileset import Entry, FileSet
from viewrender.exceptions import (
    NotDefinedError,
    RecursionLimitError,
    ResourceError,
    TemplateError,
)

from .classifier import RENDER_PREFIX, classify
from .engine import (
    DEPTH_MESSAGE,
    STRING_TEMPLATE_NAME,
    NamespaceLoader,
    compile_template,
    create_environment,
)
from .exclusion import strip_excluded
from .namespace import Namespace

log = structlog.get_logger(__name__)

Helpers = Mapping[str, Callable[..., Any]]


def format_name(name: str, args: tuple) -> str:
    return name.format(*args) if args else name


def build_variables(data: Any, helpers: Helpers, control: Helpers) -> Dict[str, Any]:
    """Template variables: mapping keys of ``data``, ``data`` itself, helpers, control helpers."""
    variables: Dict[str, Any] = {}
    if isinstance(data, Mapping):
        variables.update((k, v) for k, v in data.items() if isinstance(k, str))
    variables["data"] = data
    variables.update(helpers)
    variables.update(control)
    return variables


def _fail(error: TemplateError, cause: BaseException) -> None:
    if error is cause:
        raise error
    raise error from cause


class RenderSession:
    # state of one top-level render call.

    def __init__(self, data: Any, helpers: Helpers, namespace: Namespace):
        self.data = data
        self.helpers = dict(helpers)
        self.namespace = namespace
        self.ledger: Set[str] = set()
        self.depth = 0
        self.attempts = 0
        self.variables: Dict[str, Any] = {}
        self.environment: Optional[jinja2.Environment] = None


class Resolver(ABC):
    """Shared execution machinery for both resolution modes."""

    def __init__(self, exclude: Optional[Pattern[str]] = None, max_depth: int = DEFAULT_MAX_DEPTH):
        self.exclude = exclude
        self.max_depth = max_depth

    @abstractmethod
    def render(self, name: str, data: Any = None, helpers: Optional[Helpers] = None) -> bytes:
        ...

    @abstractmethod
    def render_string(self, text: str, data: Any = None, helpers: Optional[Helpers] = None) -> bytes:
        ...

    @abstractmethod
    def has_template(self, name: str) -> bool:
        ...

    def _open_session(self, data: Any, helpers: Optional[Helpers], namespace: Namespace) -> RenderSession:
        session = RenderSession(data, helpers or {}, namespace)
        control = {
            "import": functools.partial(self._import, session),
            "hastemplate": self._hastemplate,
        }
        session.variables = build_variables(data, session.helpers, control)
        return session

    def _run(self, session: RenderSession, name: str) -> str:
        template = session.namespace.lookup(name)
        if template is None:
            raise jinja2.TemplateNotFound(name)
        return template.render(session.variables)

    def _import(self, session: RenderSession, name: str, *args: Any) -> str:
        name = format_name(name, args)
        if session.depth >= self.max_depth:
            raise RecursionError(f"{DEPTH_MESSAGE} ({self.max_depth})")
        session.depth += 1
        try:
            return self._run(session, name)
        finally:
            session.depth -= 1

    def _hastemplate(self, name: str, *args: Any) -> bool:
        return self.has_template(format_name(name, args))

    def _finish(self, text: str) -> bytes:
        return strip_excluded(text, self.exclude).encode("utf-8")


class MemoryResolver(Resolver):
    """Eager mode: every text entry is compiled once, at construction."""

    def __init__(
        self,
        fileset: FileSet,
        exclude: Optional[Pattern[str]] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        super().__init__(exclude, max_depth)
        self.fileset = fileset
        self.namespace = Namespace()
        self.environment = create_environment(NamespaceLoader(lambda: self.namespace))

        templates: Dict[str, jinja2.Template] = {}
        sources: Dict[str, str] = {}
        for entry in fileset.texts.values():
            source = entry.text
            try:
                templates[entry.name] = compile_template(self.environment, entry.name, source)
            except jinja2.TemplateSyntaxError as e:
                _fail(classify(e, Namespace(templates, sources), source, entry.name), e)
            sources[entry.name] = source
        self.namespace = Namespace(templates, sources)
        log.info("memory_namespace_built", templates=len(templates), binaries=len(fileset.binaries))

    def has_template(self, name: str) -> bool:
        return name in self.namespace

    def render(self, name: str, data: Any = None, helpers: Optional[Helpers] = None) -> bytes:
        binary = self.fileset.binaries.get(name)
        if binary is not None:
            return binary.content
        if name not in self.namespace:
            raise NotDefinedError(f'template "{name}" not defined', error_type=RENDER_PREFIX, target=name)
        return self._execute(self._open_session(data, helpers, self.namespace), name)

    def render_string(self, text: str, data: Any = None, helpers: Optional[Helpers] = None) -> bytes:
        try:
            template = compile_template(self.environment, STRING_TEMPLATE_NAME, text)
        except jinja2.TemplateSyntaxError as e:
            _fail(classify(e, self.namespace, text, STRING_TEMPLATE_NAME), e)
        namespace = self.namespace.add_or_replace(STRING_TEMPLATE_NAME, template, text)
        return self._execute(self._open_session(data, helpers, namespace), STRING_TEMPLATE_NAME)

    def _execute(self, session: RenderSession, name: str) -> bytes:
        try:
            text = self._run(session, name)
        except Exception as e:
            _fail(classify(e, session.namespace, current=name), e)
        return self._finish(text)


class LazyResolver(Resolver):
    """Disk mode: fragments are read from ``store`` when first referenced.

    ``store`` provides ``read(name) -> Entry``, raising NotDefinedError or
    ResourceError, and ``exists(name) -> bool``.
    """

    def __init__(
        self,
        store: Any,
        exclude: Optional[Pattern[str]] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        super().__init__(exclude, max_depth)
        self.store = store
        self.max_attempts = max_attempts

    def has_template(self, name: str) -> bool:
        return self.store.exists(name)

    def render(self, name: str, data: Any = None, helpers: Optional[Helpers] = None) -> bytes:
        entry: Entry = self.store.read(name)
        if entry.is_binary:
            return entry.content
        session = self._open_lazy_session(data, helpers)
        self._parse_into(session, name, entry.text)
        return self._execute(session, name)

    def render_string(self, text: str, data: Any = None, helpers: Optional[Helpers] = None) -> bytes:
        session = self._open_lazy_session(data, helpers)
        self._parse_into(session, STRING_TEMPLATE_NAME, text)
        return self._execute(session, STRING_TEMPLATE_NAME)

    def _open_lazy_session(self, data: Any, helpers: Optional[Helpers]) -> RenderSession:
        session = self._open_session(data, helpers, Namespace())
        # includes resolve against whatever namespace version the session holds now.
        session.environment = create_environment(NamespaceLoader(lambda: session.namespace))
        return session

    def _parse_into(self, session: RenderSession, name: str, source: str) -> None:
        try:
            template = compile_template(session.environment, name, source)
        except jinja2.TemplateSyntaxError as e:
            _fail(classify(e, session.namespace, source, name), e)
        session.namespace = session.namespace.add_or_replace(name, template, source)

    def _execute(self, session: RenderSession, name: str) -> bytes:
        while True:
            try:
                text = self._run(session, name)
            except Exception as e:
                self._load_missing(session, classify(e, session.namespace, current=name), e)
                continue
            return self._finish(text)

    def _load_missing(self, session: RenderSession, error: TemplateError, cause: BaseException) -> None:
        target = error.target
        if not error.retryable or target in session.ledger:
            _fail(error, cause)

        session.ledger.add(target)
        session.attempts += 1
        if session.attempts > self.max_attempts:
            _fail(
                RecursionLimitError(
                    f"too many reference attempts ({self.max_attempts})",
                    error_type=error.error_type,
                    basename=error.basename,
                    line=error.line,
                    column=error.column,
                    root=error.root,
                ),
                cause,
            )

        try:
            entry = self.store.read(target)
        except NotDefinedError as e:
            log.info("lazy_reference_missing", target=target, basename=error.basename, line=error.line)
            _fail(error, e)
        except ResourceError as e:
            log.warning("lazy_reference_unreadable", target=target, error=str(e))
            _fail(error, e)
        if entry.is_binary:
            log.info("lazy_reference_is_binary", target=target)
            _fail(error, cause)

        self._parse_into(session, target, entry.text)
        log.debug("lazy_reference_loaded", target=target, attempts=session.attempts)
