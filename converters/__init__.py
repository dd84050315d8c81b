"""Converters package for Confluence HTML export to Markdown conversion."""

import logging

from .content_renderer import ContentRenderer
from .element_classifier import ElementCategory, ElementClassifier, MacroKind, TableKind
from .errors import ConversionError, MissingContentError, ParseError
from .macro_handler import MacroHandler
from .markdown_converter import MarkdownConverter
from .markdown_normalizer import MarkdownNormalizer
from .metadata_extractor import MetadataExtractor
from .table_converter import TableConverter

logger = logging.getLogger('confluence_export_md.converters')


def convert_html(html_content, options=None, logger=None):
    """
    Convenience function to convert one exported page to Markdown.

    Args:
        html_content: Page HTML as exported by Confluence
        options: Optional ConversionOptions (defaults apply when omitted)
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        str: The Markdown document

    Example:
        >>> from converters import convert_html
        >>> from models import ConversionOptions
        >>> markdown = convert_html(html, ConversionOptions(include_breadcrumbs=True))
    """
    if logger is None:
        logger = logging.getLogger('confluence_export_md.converters')

    converter = MarkdownConverter(options=options, logger=logger)
    return converter.convert(html_content)


__all__ = [
    'convert_html',
    'ContentRenderer',
    'ConversionError',
    'ElementCategory',
    'ElementClassifier',
    'MacroHandler',
    'MacroKind',
    'MarkdownConverter',
    'MarkdownNormalizer',
    'MetadataExtractor',
    'MissingContentError',
    'ParseError',
    'TableConverter',
    'TableKind',
]
