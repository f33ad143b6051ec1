"""
Contentful Management API writers.

This subpackage provides functions to create and publish entries, upload
files, create, process and publish assets, plus the asynchronous
:class:`ContentfulWriter` used by the migration pipeline and a
network-free :class:`DryRunWriter`.
"""

from .contentful_migrator import ContentfulWriter, DryRunWriter

__all__ = ["ContentfulWriter", "DryRunWriter"]
