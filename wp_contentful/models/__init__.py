"""
Pydantic models of the records found in a WordPress REST export.

Only the keys the migration reads are declared; every other key is kept
(``extra="allow"``) so that a model round-trips the export unchanged.
"""

from .wordpress import WPCategory, WPContent, WPMedia, WPPage, WPPost, WPRecord, WPTag, WPUser

__all__ = ["WPCategory", "WPContent", "WPMedia", "WPPage", "WPPost", "WPRecord", "WPTag", "WPUser"]
