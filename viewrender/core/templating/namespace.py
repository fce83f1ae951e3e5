# viewrender/core/templating/namespace.py
"""
Copy-on-write set of parsed fragments known to one render attempt.
"""
from types import MappingProxyType
from typing import Dict, Mapping, Optional

import jinja2


class Namespace:
    """Maps fragment name to its compiled template and raw source.

    Instances never change; ``add_or_replace`` returns a new version so a
    failed lazy load cannot corrupt a namespace another caller still holds.
    """

    def __init__(
        self,
        templates: Optional[Mapping[str, jinja2.Template]] = None,
        sources: Optional[Mapping[str, str]] = None,
    ):
        self._templates: Mapping[str, jinja2.Template] = MappingProxyType(dict(templates or {}))
        self._sources: Mapping[str, str] = MappingProxyType(dict(sources or {}))

    def add_or_replace(self, name: str, template: jinja2.Template, source: str) -> "Namespace":
        templates: Dict[str, jinja2.Template] = dict(self._templates)
        sources: Dict[str, str] = dict(self._sources)
        templates[name] = template
        sources[name] = source
        return Namespace(templates, sources)

    def lookup(self, name: str) -> Optional[jinja2.Template]:
        return self._templates.get(name)

    def source(self, name: str) -> Optional[str]:
        return self._sources.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._templates
