"""
Top-level package for the WordPress → Contentful migration utility.

This package bundles all components required to export content from a
WordPress site, convert post and page HTML to Contentful Rich Text,
upload media as Contentful assets, create and publish entries while
keeping cross-references intact, and validate the result.  Modules are
split into subpackages:

* :mod:`wp_contentful.extractors` – WordPress REST export and export-file readers
* :mod:`wp_contentful.parsers` – HTML to Rich Text conversion
* :mod:`wp_contentful.migrators` – Contentful Management API interactions
* :mod:`wp_contentful.mappers` – per-family field builders and creators
* :mod:`wp_contentful.models` – pydantic models of the WordPress records
* :mod:`wp_contentful.utils` – errors, logging, identity maps, text helpers

Orchestration lives in :mod:`wp_contentful.pipeline` (batched,
resumable migration of one family) and
:mod:`wp_contentful.migration_tool` (the full run).
"""

__version__ = "1.0.0"
