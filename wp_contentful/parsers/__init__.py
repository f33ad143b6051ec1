"""
Parsers and converters used by the migration pipeline.

This subpackage exposes :class:`RichTextTransformer` and the one-shot
``html_to_rich_text`` helper from :mod:`wp_contentful.parsers.rich_text`.
"""

from .rich_text import RichTextTransformer, TransformOptions, TransformResult, html_to_rich_text

__all__ = ["RichTextTransformer", "TransformOptions", "TransformResult", "html_to_rich_text"]
