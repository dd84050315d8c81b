"""Page metadata, breadcrumb and attachment extraction for Confluence exports."""

import logging
import os
import re
from typing import Dict, List, Optional

import yaml
from bs4 import BeautifulSoup

from models import AttachmentInfo, Breadcrumb, ConversionOptions, DocumentMetadata, PageComment

logger = logging.getLogger('confluence_export_md.converters.metadataextractor')


TITLE_SELECTORS = [
    '#title-text',
    '.pagetitle',
    '#title-heading .page-title',
    '#title-heading',
    'h1',
]
UNTITLED = 'Untitled Page'

BREADCRUMB_ITEM_SELECTOR = '#breadcrumbs li, .breadcrumb-section ol li'
TITLE_SEGMENT_SEPARATOR = ' : '

LABEL_SELECTOR = '#labels-section .label-list li, .labels-section-content li, ul.label-list li'

_TITLE_PREFIX = re.compile(r'^.*:\s*')
_LAST_UPDATED = re.compile(r'last updated by\s+(.*?)(?:\s+on\s+(.*))?$', re.IGNORECASE)
_CREATED_BY = re.compile(r'Created by\s+(.*?)(?:,|\s+on|\s+last)', re.IGNORECASE)
_CREATED_DATE = re.compile(
    r'on\s+([A-Z][a-z]{2}\s+\d{1,2},\s+\d{4}|[A-Z][a-z]{2}\s+\d{1,2}\s+\d{4})',
    re.IGNORECASE,
)
_GREYBOX_HREF = re.compile(r'^attachments/([^/]+)/([^/?#]+?)(\.[^./?#]*)?(?:[?#].*)?$')
_URL_SCHEME = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*:')


class _QuotedStr(str):
    """String rendered as a double-quoted YAML scalar."""


def _represent_quoted(dumper, data):
    return dumper.represent_scalar('tag:yaml.org,2002:str', str(data), style='"')


class _FrontmatterDumper(yaml.SafeDumper):
    pass


_FrontmatterDumper.add_representer(_QuotedStr, _represent_quoted)


def _collapse(text: str) -> str:
    return ' '.join(text.split())


def strip_query(href: str) -> str:
    return href.split('?', 1)[0]


def normalize_breadcrumb_href(href: str) -> str:
    """
    Make a breadcrumb href relative to the export directory.

    Root-relative paths become ``./path`` and bare paths get a ``./`` prefix;
    fragments, explicit relative paths and absolute URLs are left untouched.
    """
    if href.startswith('/'):
        return '.' + href
    if href.startswith(('./', '../', '#')) or _URL_SCHEME.match(href):
        return href
    return './' + href


class MetadataExtractor:
    """
    Pull title, authorship, navigation trail and attachments out of a page.

    The extractor only reads from the parsed tree; rendering of the results is
    done by :meth:`generate_frontmatter` and :meth:`generate_breadcrumb_trail`.
    """

    def __init__(self, options: ConversionOptions = None, logger: logging.Logger = None):
        self.options = options or ConversionOptions()
        self.logger = logger or logging.getLogger('confluence_export_md.converters.metadataextractor')

    def extract_metadata(self, soup: BeautifulSoup) -> DocumentMetadata:
        """
        Build the metadata record for a page.

        Last-modified and breadcrumbs are only looked up when their options
        are enabled; everything else is always extracted.

        Args:
            soup: Parsed export document

        Returns:
            DocumentMetadata for the page
        """
        blob = self._metadata_blob(soup)
        created_by = ''
        created_date = ''
        if blob:
            match = _CREATED_BY.search(blob)
            if match:
                created_by = match.group(1).strip()
            match = _CREATED_DATE.search(blob)
            if match:
                created_date = match.group(1).strip()

        metadata = DocumentMetadata(
            title=self.extract_title(soup),
            last_modified=self.extract_last_modified(soup) if self.options.include_last_modified else '',
            created_by=created_by,
            created_date=created_date,
            breadcrumbs=self.extract_breadcrumbs(soup) if self.options.include_breadcrumbs else [],
            labels=self.extract_labels(soup),
            page_info=blob,
            comments=self.extract_comments(soup),
        )
        self.logger.debug(
            f"Extracted metadata: title='{metadata.title}', "
            f"{len(metadata.breadcrumbs)} breadcrumbs, {len(metadata.labels)} labels"
        )
        return metadata

    def extract_title(self, soup: BeautifulSoup) -> str:
        """Resolve the page title, dropping any ``Space : `` prefix."""
        title = ''
        for selector in TITLE_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                title = element.get_text().strip()
                if title:
                    break

        if not title:
            title = self._document_title(soup)
        if not title:
            return UNTITLED

        stripped = _TITLE_PREFIX.sub('', title).strip()
        return stripped or title

    def extract_last_modified(self, soup: BeautifulSoup) -> str:
        for selector in ('.last-modified', '.page-metadata .editor'):
            element = soup.select_one(selector)
            if element is not None:
                return _collapse(element.get_text())

        blob = self._metadata_blob(soup)
        match = _LAST_UPDATED.search(blob)
        return match.group(1).strip() if match else ''

    def extract_breadcrumbs(self, soup: BeautifulSoup) -> List[Breadcrumb]:
        """
        Extract the navigation trail.

        The breadcrumb list of the export is preferred. Without one, the
        document title is split on ``" : "`` and each segment becomes a crumb
        without a link, provided there are at least two segments.
        """
        breadcrumbs = []
        for item in soup.select(BREADCRUMB_ITEM_SELECTOR):
            link = item.find('a')
            if link is not None:
                href = normalize_breadcrumb_href(link.get('href') or '#')
                breadcrumbs.append(Breadcrumb(text=_collapse(link.get_text()), href=href))
            else:
                text = _collapse(item.get_text())
                if text:
                    breadcrumbs.append(Breadcrumb(text=text))

        if breadcrumbs:
            return breadcrumbs

        title = self._document_title(soup)
        if not title:
            for selector in TITLE_SELECTORS:
                element = soup.select_one(selector)
                if element is not None and element.get_text().strip():
                    title = element.get_text().strip()
                    break

        parts = [part.strip() for part in title.split(TITLE_SEGMENT_SEPARATOR)]
        if len(parts) < 2:
            return []
        return [Breadcrumb(text=part) for part in parts]

    def extract_labels(self, soup: BeautifulSoup) -> List[str]:
        labels = []
        for item in soup.select(LABEL_SELECTOR):
            text = _collapse(item.get_text())
            if text and text not in labels:
                labels.append(text)
        return labels

    def extract_comments(self, soup: BeautifulSoup) -> List[PageComment]:
        comments = []
        for comment in soup.select('.comment'):
            author = comment.select_one('.author')
            content = comment.select_one('.comment-content')
            if content is None:
                continue
            text = _collapse(content.get_text(' '))
            if text:
                comments.append(PageComment(
                    author=_collapse(author.get_text()) if author is not None else 'Anonymous',
                    text=text,
                ))
        return comments

    def extract_attachments(self, soup: BeautifulSoup) -> Dict[str, AttachmentInfo]:
        """
        Collect linked attachments keyed by attachment id.

        Sources, in order: attachment anchors, attachment images, and the
        attachment list at the bottom of the export. The first occurrence of
        an id wins.
        """
        attachments: Dict[str, AttachmentInfo] = {}

        for link in soup.select('a[data-linked-resource-type="attachment"]'):
            self._add_attachment(
                attachments,
                link.get('data-linked-resource-id'),
                link.get_text().strip(),
                link.get('data-linked-resource-container-id'),
                link.get('href'),
            )

        for img in soup.select('img[data-linked-resource-type="attachment"]'):
            self._add_attachment(
                attachments,
                img.get('data-linked-resource-id'),
                img.get('alt') or img.get('title') or '',
                img.get('data-linked-resource-container-id'),
                img.get('src'),
            )

        for link in soup.select('.greybox a[href^="attachments/"]'):
            href = link.get('href', '')
            match = _GREYBOX_HREF.match(href)
            if not match:
                continue
            container_id, attachment_id, ext = match.group(1), match.group(2), match.group(3) or ''
            filename = link.get_text().strip() or attachment_id + ext
            self._add_attachment(attachments, attachment_id, filename, container_id, href)

        if attachments:
            self.logger.debug(f"Found {len(attachments)} attachments")
        return attachments

    def _add_attachment(self, attachments: Dict[str, AttachmentInfo], attachment_id: Optional[str],
                        filename: str, container_id: Optional[str], href: Optional[str]):
        if not attachment_id or not filename or attachment_id in attachments:
            return
        container_id = container_id or ''
        ext = os.path.splitext(filename)[1]
        attachments[attachment_id] = AttachmentInfo(
            id=attachment_id,
            filename=filename,
            container_id=container_id,
            href=href or f'attachments/{container_id}/{attachment_id}{ext}',
        )

    def generate_frontmatter(self, metadata: DocumentMetadata) -> str:
        """
        Render the YAML frontmatter block.

        Returns:
            ``---`` delimited YAML, or an empty string when metadata,
            breadcrumbs and last-modified are all disabled
        """
        if not self.options.wants_frontmatter:
            return ''

        data = {'title': _QuotedStr(metadata.title)}
        if self.options.include_metadata and metadata.created_by:
            data['created_by'] = _QuotedStr(metadata.created_by)
        if self.options.include_metadata and metadata.created_date:
            data['created_date'] = _QuotedStr(metadata.created_date)
        if self.options.include_last_modified and metadata.last_modified:
            data['last_modified'] = _QuotedStr(metadata.last_modified)
        if self.options.include_breadcrumbs and metadata.breadcrumbs:
            crumbs = []
            for crumb in metadata.breadcrumbs:
                entry = {'title': _QuotedStr(crumb.text)}
                if crumb.href:
                    entry['url'] = _QuotedStr(strip_query(crumb.href))
                crumbs.append(entry)
            data['breadcrumbs'] = crumbs

        body = yaml.dump(
            data,
            Dumper=_FrontmatterDumper,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=4096,
        )
        return f'---\n{body}---\n'

    def generate_breadcrumb_trail(self, breadcrumbs: List[Breadcrumb]) -> str:
        """Render ``> [a](href) > [b](href)``, or an empty string."""
        if not self.options.include_breadcrumbs or not breadcrumbs:
            return ''
        links = [f'[{crumb.text}]({strip_query(crumb.href or "#")})' for crumb in breadcrumbs]
        return '> ' + ' > '.join(links)

    def _document_title(self, soup: BeautifulSoup) -> str:
        if soup.title is not None and soup.title.string:
            return soup.title.string.strip()
        if soup.title is not None:
            return soup.title.get_text().strip()
        return ''

    def _metadata_blob(self, soup: BeautifulSoup) -> str:
        element = soup.select_one('.page-metadata')
        return _collapse(element.get_text()) if element is not None else ''
