"""
Mapping of WordPress records onto Contentful entries and assets.
"""

from .assets import AssetMapper
from .entries import CONTENT_TYPES, EntryMapper

__all__ = ["AssetMapper", "CONTENT_TYPES", "EntryMapper"]
