"""
LibQuality: caches GitHub repository metadata and issues in MongoDB.
"""
from .version import __version__

__all__ = ["__version__"]
