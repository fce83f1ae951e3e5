# viewrender/core/templating/renderer.py
"""
Contains the Renderer facade: helper registration plus rendering of named
views and ad-hoc strings through a memory or disk resolver.
"""
from typing import Any, Callable, Mapping, Optional

import structlog

from viewrender.config.settings import RenderConfig
from viewrender.core.discovery import DirectoryStore, collect_fileset
from viewrender.core.fileset import FileSet
from viewrender.exceptions import ConfigError, TemplateError

from .helpers import HelperRegistry
from .resolution import LazyResolver, MemoryResolver, Resolver

log = structlog.get_logger(__name__)


class Renderer:
    """Renders views by name with caller data and registered helpers.

    The resolver (and the FileSet or store behind it) is shared between
    copies; the helper registry is owned by each Renderer.
    """

    def __init__(self, resolver: Resolver, helpers: Optional[HelperRegistry] = None):
        self.resolver = resolver
        self.helpers = helpers if helpers is not None else HelperRegistry()

    def register_helper_struct(self, instance: Any) -> None:
        self.helpers.register_struct(instance)

    def register_helper_methods(self, instance: Any) -> None:
        self.helpers.register_methods(instance)

    def register_helper_methods_lowercased(self, instance: Any) -> None:
        self.helpers.register_methods_lowercased(instance)

    def register_raw_helpers(self, helpers: Mapping[str, Callable[..., Any]]) -> None:
        self.helpers.register_raw(helpers)

    def has_helper(self, name: str) -> bool:
        return self.helpers.has(name)

    def copy(self) -> "Renderer":
        return Renderer(self.resolver, self.helpers.copy())

    def render(self, name: str, data: Any = None) -> bytes:
        log.info("rendering_view", name=name, mode=type(self.resolver).__name__)
        try:
            output = self.resolver.render(name, data, self.helpers.snapshot())
        except TemplateError as e:
            log.debug("view_render_failed", name=name, kind=e.kind, error=str(e))
            raise
        log.debug("view_rendered", name=name, size=len(output))
        return output

    def render_string(self, text: str, data: Any = None) -> bytes:
        log.info("rendering_string", size=len(text))
        return self.resolver.render_string(text, data, self.helpers.snapshot())


def memory_renderer(
    fileset: FileSet,
    config: Optional[RenderConfig] = None,
) -> Renderer:
    """Eager renderer over an in-memory FileSet; parse errors surface here."""
    config = config or RenderConfig(cache=True)
    resolver = MemoryResolver(fileset, config.exclude_pattern(), config.max_depth)
    return Renderer(resolver, HelperRegistry(config.duplicate_policy))


def disk_renderer(config: RenderConfig) -> Renderer:
    resolver = LazyResolver(
        DirectoryStore(config),
        config.exclude_pattern(),
        config.max_depth,
        config.max_attempts,
    )
    return Renderer(resolver, HelperRegistry(config.duplicate_policy))


def create_renderer(config: RenderConfig) -> Renderer:
    """Builds a memory renderer (``cache``) or a disk renderer for ``config.directory``."""
    directory = config.directory
    if not directory.exists():
        raise ConfigError(f"cannot access '{directory}' no such file or directory")
    if not directory.is_dir():
        raise ConfigError(f"cannot access '{directory}' not directory")

    log.info(
        "creating_renderer",
        directory=str(directory),
        cache=config.cache,
        duplicate_policy=config.duplicate_policy.value,
    )
    if config.cache:
        return memory_renderer(collect_fileset(config), config)
    return disk_renderer(config)
