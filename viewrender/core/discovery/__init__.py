# viewrender/core/discovery/__init__.py
"""
Finding view files on disk: the eager directory walker and the lazy backing store.
"""
from .store import DirectoryStore
from .walker import collect_fileset

__all__ = ["DirectoryStore", "collect_fileset"]
