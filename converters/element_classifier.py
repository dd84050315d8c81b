"""Element classification for Confluence export HTML."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger('confluence_export_md.converters.elementclassifier')


class TableKind(Enum):
    """How a table should be rendered, in precedence order."""
    HISTORY = "history"
    LAYOUT = "layout"
    COMPLEX = "complex"
    STANDARD = "standard"


class MacroKind(Enum):
    """Panel and macro kinds with a dedicated rendering."""
    INFO = "info"
    WARNING = "warning"
    NOTE = "note"
    TIP = "tip"
    CODE = "code"
    EXPAND = "expand"
    TOC = "toc"
    STATUS = "status"
    JIRA = "jira"


class CategoryGroup(Enum):
    TABLE = "table"
    PANEL = "panel"
    MACRO = "macro"
    IGNORED = "ignored"
    PLAIN = "plain"


@dataclass(frozen=True)
class ElementCategory:
    """
    Classification result for one element.

    ``kind`` is the TableKind value for tables and the panel/macro kind for
    panels and macros. Categories are derived on demand and never stored on
    the element.
    """

    group: CategoryGroup
    kind: Optional[str] = None

    @classmethod
    def table(cls, kind: TableKind) -> 'ElementCategory':
        return cls(CategoryGroup.TABLE, kind.value)

    @classmethod
    def panel(cls, kind: str) -> 'ElementCategory':
        return cls(CategoryGroup.PANEL, kind)

    @classmethod
    def macro(cls, kind: str) -> 'ElementCategory':
        return cls(CategoryGroup.MACRO, kind)

    @property
    def is_specialized(self) -> bool:
        return self.group in (CategoryGroup.TABLE, CategoryGroup.PANEL, CategoryGroup.MACRO)


ElementCategory.IGNORED = ElementCategory(CategoryGroup.IGNORED)
ElementCategory.PLAIN = ElementCategory(CategoryGroup.PLAIN)


# Panel kinds rendered as call-out boxes; everything in MACRO_KINDS has its own renderer
PANEL_KINDS = {'info', 'warning', 'note', 'tip', 'panel'}
MACRO_KINDS = {
    MacroKind.CODE.value, MacroKind.EXPAND.value, MacroKind.TOC.value,
    MacroKind.STATUS.value, MacroKind.JIRA.value,
}

PANEL_CLASSES = {'panel', 'confluence-information-macro', 'aui-message', 'admonition', 'expand-container'}

# Classes that identify a macro kind on their own
MACRO_CLASS_KINDS = {
    'expand-container': 'expand',
    'expand-macro': 'expand',
    'toc-macro': 'toc',
    'status-macro': 'status',
    'jira-issues': 'jira',
}

MACRO_NAME_ALIASES = {
    'information': 'info',
    'noformat': 'code',
    'jiraissues': 'jira',
}

KIND_KEYWORDS = ('note', 'warning', 'tip', 'code')

IGNORED_TAGS = {'script', 'style', 'noscript', 'button'}

IGNORED_CLASSES = {
    'breadcrumb-section', 'footer', 'aui-nav', 'pageSectionHeader',
    'hidden', 'navigation', 'screenreader-only', 'hidden-xs',
    'hidden-sm', 'aui-icon', 'aui-avatar-inner', 'expand-control',
}

IGNORED_IDS = {
    'breadcrumbs', 'breadcrumb-section', 'footer', 'navigation', 'sidebar',
    'page-sidebar', 'header', 'actions', 'likes-and-labels-container',
    'page-metadata-secondary',
}

HISTORY_TABLE_IDS = {'page-history-container'}
HISTORY_TABLE_CLASSES = {'tableview'}

LAYOUT_TABLE_CLASSES = {'layout', 'contentLayoutTable', 'layout-table'}
LAYOUT_CONTAINER_CLASSES = ['contentLayout2', 'columnLayout', 'section', 'panelContent']
BLOCK_CHILD_TAGS = ['div', 'table', 'ul', 'ol', 'p']

COMPLEX_CELL_SELECTOR = 'h1, h2, h3, h4, h5, h6, img, ul, ol, table, .panel, .confluence-information-macro'
COMPLEX_CELL_TEXT_LIMIT = 100

MAIN_CONTENT_SELECTORS = [
    '#main-content',
    '#content .wiki-content',
    '.wiki-content',
    '#content',
    '.view',
    'body',
]

_HIDDEN_STYLE = re.compile(r'display\s*:\s*none|visibility\s*:\s*hidden', re.IGNORECASE)
_BORDERLESS_STYLE = re.compile(r'border(?:-style)?\s*:\s*(?:none|0)\b', re.IGNORECASE)
_VERSION_TOKEN = re.compile(r'\bversion\b')


def element_classes(element: Tag) -> List[str]:
    """Return the class list of an element, whatever form the parser stored it in."""
    classes = element.get('class') or []
    if isinstance(classes, str):
        classes = classes.split()
    return list(classes)


def table_rows(table: Tag) -> List[Tag]:
    """Rows that belong to this table, excluding rows of nested tables."""
    return [row for row in table.find_all('tr') if row.find_parent('table') is table]


def row_cells(row: Tag) -> List[Tag]:
    return row.find_all(['td', 'th'], recursive=False)


class ElementClassifier:
    """Pure predicates that sort Confluence elements into rendering categories."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('confluence_export_md.converters.elementclassifier')

    def classify(self, element) -> ElementCategory:
        """Resolve the single category an element is rendered as."""
        if not isinstance(element, Tag) or isinstance(element, BeautifulSoup):
            return ElementCategory.PLAIN

        if self.should_ignore(element):
            return ElementCategory.IGNORED

        if element.name == 'table':
            return ElementCategory.table(self.classify_table(element))

        kind = self.classify_panel_or_macro(element)
        if kind is None:
            return ElementCategory.PLAIN
        if kind in MACRO_KINDS:
            return ElementCategory.macro(kind)
        if kind in PANEL_KINDS or self._has_panel_class(element):
            return ElementCategory.panel(kind)

        self.logger.debug(f"Unsupported macro '{kind}' on <{element.name}>, rendering as plain content")
        return ElementCategory.PLAIN

    # Tables

    def classify_table(self, table: Tag) -> TableKind:
        """Classify a table. Precedence is History > Layout > Complex > Standard."""
        if self.is_history_table(table):
            return TableKind.HISTORY
        if self.is_layout_table(table):
            return TableKind.LAYOUT
        if self.is_complex_table(table):
            return TableKind.COMPLEX
        return TableKind.STANDARD

    def is_history_table(self, table: Tag) -> bool:
        """Check for the page-history view or version/changed-by headers."""
        if table.get('id') in HISTORY_TABLE_IDS:
            return True
        if HISTORY_TABLE_CLASSES.intersection(element_classes(table)):
            return True

        headers = self._header_texts(table)
        has_version = any(text == 'v.' or _VERSION_TOKEN.search(text) for text in headers)
        has_change = any('changed by' in text or 'published' in text for text in headers)
        return has_version and has_change

    def is_layout_table(self, table: Tag) -> bool:
        """Check whether a table only arranges content in columns."""
        classes = element_classes(table)
        if LAYOUT_TABLE_CLASSES.intersection(classes):
            return True

        if table.find_parent(class_=LAYOUT_CONTAINER_CLASSES) is not None and self._is_borderless(table):
            return True

        rows = table_rows(table)
        if len(rows) == 1:
            cells = row_cells(rows[0])
            if len(cells) == 1 and cells[0].find(BLOCK_CHILD_TAGS) is not None:
                return True

        return 'wysiwyg-macro' in classes

    def is_complex_table(self, table: Tag) -> bool:
        return any(self.is_complex_cell(cell) for row in table_rows(table) for cell in row_cells(row))

    def is_complex_cell(self, cell: Tag) -> bool:
        """Check whether a cell holds content a pipe table cannot represent."""
        if cell.select_one(COMPLEX_CELL_SELECTOR) is not None:
            return True
        if len(cell.find_all('p')) > 1:
            return True
        if len(cell.find_all('br')) > 2:
            return True
        return len(cell.get_text().strip()) > COMPLEX_CELL_TEXT_LIMIT

    def _header_texts(self, table: Tag) -> List[str]:
        cells = [th for th in table.find_all('th') if th.find_parent('table') is table]
        for thead in table.find_all('thead'):
            if thead.find_parent('table') is table:
                cells.extend(thead.find_all('td'))
        if not cells:
            rows = table_rows(table)
            if rows:
                cells = row_cells(rows[0])
        return [' '.join(cell.get_text().split()).lower() for cell in cells]

    def _is_borderless(self, table: Tag) -> bool:
        border = table.get('border')
        if border is not None:
            return border.strip() == '0'
        return bool(_BORDERLESS_STYLE.search(table.get('style', '')))

    # Panels and macros

    def is_panel_or_macro(self, element: Tag) -> bool:
        classes = element_classes(element)
        if PANEL_CLASSES.intersection(classes) or set(MACRO_CLASS_KINDS).intersection(classes):
            return True
        return element.get('data-macro-name') is not None

    def classify_panel_or_macro(self, element: Tag) -> Optional[str]:
        """
        Resolve the panel/macro kind of an element.

        Returns:
            The kind name, or None when the element is not a panel or macro
        """
        if not self.is_panel_or_macro(element):
            return None

        macro_name = (element.get('data-macro-name') or '').strip().lower()
        if macro_name:
            return MACRO_NAME_ALIASES.get(macro_name, macro_name)

        classes = element_classes(element)
        for cls in classes:
            if cls in MACRO_CLASS_KINDS:
                return MACRO_CLASS_KINDS[cls]

        for keyword in KIND_KEYWORDS:
            if any(cls == keyword or cls.endswith('-' + keyword) for cls in classes):
                return keyword

        return MacroKind.INFO.value

    def _has_panel_class(self, element: Tag) -> bool:
        return bool(PANEL_CLASSES.intersection(element_classes(element)))

    # Ignored elements

    def should_ignore(self, element: Tag) -> bool:
        """Check for non-content, hidden, or page-chrome elements."""
        if element.name in IGNORED_TAGS:
            return True

        if element.get('aria-hidden') == 'true':
            return True

        if _HIDDEN_STYLE.search(element.get('style', '')):
            return True

        if IGNORED_CLASSES.intersection(element_classes(element)):
            return True

        return element.get('id') in IGNORED_IDS

    # Document structure

    def find_main_content(self, soup: BeautifulSoup) -> Optional[Tag]:
        """Return the first content container found, most specific first."""
        for selector in MAIN_CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                self.logger.debug(f"Main content resolved by selector '{selector}'")
                return element
        return None


__all__ = [
    'CategoryGroup',
    'ElementCategory',
    'ElementClassifier',
    'MacroKind',
    'TableKind',
    'element_classes',
    'row_cells',
    'table_rows',
]
