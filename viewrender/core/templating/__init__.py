# viewrender/core/templating/__init__.py
"""
Templating module for viewrender.

Provides the Renderer facade and its constructors, the helper registry and
the error classifier.
"""
from .classifier import classify, parse_error_message
from .helpers import BindingConvention, HelperRegistry
from .renderer import Renderer, create_renderer, disk_renderer, memory_renderer

__all__ = [
    "BindingConvention",
    "HelperRegistry",
    "Renderer",
    "classify",
    "create_renderer",
    "disk_renderer",
    "memory_renderer",
    "parse_error_message",
]
