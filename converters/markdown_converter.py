"""Conversion engine for Confluence HTML export pages."""

import logging
from typing import Dict, List

from bs4 import BeautifulSoup, Tag

from models import (
    AttachmentInfo,
    ConversionOptions,
    ConversionResult,
    DocumentMetadata,
    HeadingStyle,
)

from .content_renderer import ContentRenderer
from .element_classifier import ElementClassifier, TableKind
from .errors import ConversionError, MissingContentError, ParseError
from .markdown_normalizer import MarkdownNormalizer
from .metadata_extractor import MetadataExtractor

logger = logging.getLogger('confluence_export_md.converters.markdownconverter')


class MarkdownConverter:
    """
    Converts one exported Confluence page to Markdown.

    The pipeline is: parse, extract metadata, locate the main content, walk
    it with a fresh :class:`ContentRenderer`, assemble the document around
    the rendered body and normalize the result. No state survives between
    calls, so a single instance can convert any number of pages.
    """

    def __init__(self, options: ConversionOptions = None, logger: logging.Logger = None):
        """Initialize markdown converter with conversion options and logger."""
        self.options = options or ConversionOptions()
        self.logger = logger or logging.getLogger('confluence_export_md.converters.markdownconverter')

        self.classifier = ElementClassifier(self.logger)
        self.metadata_extractor = MetadataExtractor(self.options, self.logger)
        self.normalizer = MarkdownNormalizer(self.logger)

    def convert(self, html_content: str) -> str:
        """
        Convert an HTML export page to Markdown.

        Args:
            html_content: The page HTML

        Returns:
            str: Normalized Markdown, with frontmatter when enabled

        Raises:
            ParseError: If the input is empty, not a string, or unparsable
            MissingContentError: If no content container is found
            ConversionError: For any other failure during conversion
        """
        return self.convert_document(html_content).markdown

    def convert_document(self, html_content: str) -> ConversionResult:
        """Convert a page and return the Markdown with its metadata and attachments."""
        try:
            return self._convert(html_content)
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(f"Error converting HTML to Markdown: {str(e)}") from e

    def _convert(self, html_content: str) -> ConversionResult:
        soup = self._parse_html(html_content)

        metadata = self.metadata_extractor.extract_metadata(soup)
        attachments = self.metadata_extractor.extract_attachments(soup)

        content = self.classifier.find_main_content(soup)
        if content is None:
            raise MissingContentError("No content container found in document")

        renderer = ContentRenderer(self.options, self.classifier, self.logger)
        body = renderer.render_blocks(content).strip()
        self.logger.debug(f"Rendered body of '{metadata.title}', {len(renderer.processed)} elements consumed")

        sections = self._header_sections(metadata)
        if body:
            sections.append(body)
        sections.extend(self._trailing_sections(soup, renderer, metadata, attachments))

        markdown = self.normalizer.normalize('\n\n'.join(sections))
        return ConversionResult(markdown=markdown, metadata=metadata, attachments=attachments)

    def _parse_html(self, html_content: str) -> BeautifulSoup:
        """Parse HTML content with BeautifulSoup."""
        if not isinstance(html_content, str):
            raise ParseError(f"Expected HTML text, got {type(html_content).__name__}")
        if not html_content.strip():
            raise ParseError("HTML input is empty")

        soup = BeautifulSoup(html_content, 'lxml')
        if soup.find('parsererror') is not None:
            raise ParseError("HTML parser reported a structural error")
        return soup

    def _header_sections(self, metadata: DocumentMetadata) -> List[str]:
        sections = []

        frontmatter = self.metadata_extractor.generate_frontmatter(metadata)
        if frontmatter:
            sections.append(frontmatter.rstrip('\n'))

        trail = self.metadata_extractor.generate_breadcrumb_trail(metadata.breadcrumbs)
        if trail:
            sections.append(trail)

        if self.options.heading_style == HeadingStyle.SETEXT:
            sections.append(f"{metadata.title}\n{'=' * len(metadata.title)}")
        else:
            sections.append(f'# {metadata.title}')

        if self.options.include_page_info and metadata.page_info:
            sections.append(f'*{metadata.page_info}*')
        return sections

    def _trailing_sections(self, soup: BeautifulSoup, renderer: ContentRenderer,
                           metadata: DocumentMetadata, attachments: Dict[str, AttachmentInfo]) -> List[str]:
        """Page history, attachments, labels and comments, in that order."""
        sections = []

        if self.options.include_version_history:
            history = [
                renderer.table_converter.convert(table, TableKind.HISTORY)
                for table in self._unrendered_history_tables(soup, renderer)
            ]
            history = [table for table in history if table]
            if history:
                sections.append('## Page History')
                sections.extend(history)

        if self.options.include_attachments and attachments:
            sections.append('## Attachments')
            sections.append('\n'.join(
                f'* [{attachment.filename}]({attachment.href})' for attachment in attachments.values()
            ))

        if self.options.include_labels and metadata.labels:
            sections.append(f"**Labels:** {', '.join(metadata.labels)}")

        if self.options.include_comments and metadata.comments:
            sections.append('## Comments')
            sections.extend(f'**{comment.author}**: {comment.text}' for comment in metadata.comments)

        return sections

    def _unrendered_history_tables(self, soup: BeautifulSoup, renderer: ContentRenderer) -> List[Tag]:
        return [
            table for table in soup.find_all('table')
            if table not in renderer.processed and self.classifier.is_history_table(table)
        ]
