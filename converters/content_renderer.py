"""Tree walker that classifies each element and dispatches it to a renderer."""

import html
import logging
import re
from typing import Optional, Set

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from markdownify import MarkdownConverter as MarkdownifyConverter

from models import ConversionOptions, HeadingStyle, ImageStyle, LinkStyle

from .element_classifier import CategoryGroup, ElementClassifier, TableKind
from .macro_handler import INLINE_TAGS, MacroHandler
from .processed_set import ProcessedSet
from .table_converter import TableConverter

logger = logging.getLogger('confluence_export_md.converters.contentrenderer')


EMOTICON_MAP = {
    'smile': '😊',
    'sad': '😢',
    'wink': '😉',
    'laugh': '😄',
    'cheeky': '😏',
    'grin': '😁',
    'wondering': '🤔',
    'cool': '😎',
    'cry': '😭',
    'thumbs-up': '👍',
    'thumbs-down': '👎',
    'information': 'ℹ️',
    'warning': '⚠️',
    'error': '❌',
    'tick': '✅',
    'cross': '❌',
    'plus': '➕',
    'minus': '➖',
    'question': '❓',
    'lightbulb-on': '💡',
    'lightbulb': '💡',
    'star': '⭐',
    'heart': '❤️',
}

SPECIAL_CHARACTERS = str.maketrans({
    '\u00a0': ' ',
    '\u2018': "'",
    '\u2019': "'",
    '\u201c': '"',
    '\u201d': '"',
    '\u2013': '-',
    '\u2014': '--',
    '\u2026': '...',
})

_EMOTICON_SRC = re.compile(r'/([^/]+)\.(?:svg|png|gif)$')
_EMOTICON_ALT = re.compile(r'\(([^)]+)\)')
_EDGE_NEWLINES = re.compile(r'^(\n*)((?:.*[^\n])?)(\n*)$', flags=re.DOTALL)


def join_blocks(parts) -> str:
    """Concatenate rendered siblings, merging the newlines where two blocks meet to at most two."""
    joined = ['']
    for part in parts:
        if not part:
            continue
        leading, content, trailing = _EDGE_NEWLINES.match(part).groups()
        if joined[-1] and leading:
            previous = joined.pop()
            leading = '\n' * min(2, max(len(previous), len(leading)))
        joined.extend([leading, content, trailing])
    return ''.join(joined)


def _formatting_toggle(name):
    """Inline formatting converter that falls back to bare text when formatting is off."""
    def convert(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_inline_formatting:
            return text
        return getattr(super(ContentRenderer, self), name)(el, text, parent_tags)
    return convert


class ContentRenderer(MarkdownifyConverter):
    """
    Markdownify converter with classify-then-dispatch.

    Every element is classified before its children are walked. Tables,
    panels and macros go to their sub-converters, which render the whole
    subtree and mark it processed; everything else falls through to the
    markdownify conversion rules, adjusted for the conversion options.

    One instance renders one document: it owns the processed set of that
    conversion and must not be reused.
    """

    def __init__(self, options: ConversionOptions = None, classifier: ElementClassifier = None,
                 logger: logging.Logger = None):
        self.conversion_options = options or ConversionOptions()

        markdownify_options = {
            'heading_style': 'underlined' if self.conversion_options.heading_style == HeadingStyle.SETEXT else 'atx',
            'bullets': '-',
            'escape_asterisks': False,
            'escape_underscores': False,
            'escape_misc': False,
        }
        super().__init__(**markdownify_options)

        self.logger = logger or logging.getLogger('confluence_export_md.converters.contentrenderer')
        self.classifier = classifier or ElementClassifier(self.logger)
        self.processed = ProcessedSet()
        self.table_converter = TableConverter(self, self.processed, self.conversion_options, self.logger)
        self.macro_handler = MacroHandler(
            self, self.processed, self.conversion_options, self.classifier, self.logger
        )

    # Entry points used by the engine and sub-converters

    def render_element(self, element: Tag, inline: bool = False) -> str:
        """Render an element, including its own conversion rule."""
        return self.process_tag(element, parent_tags={'_inline'} if inline else set())

    def render_blocks(self, element: Tag) -> str:
        """Render the children of an element as block content."""
        return self._render_children(element, set())

    def render_inline(self, element: Tag) -> str:
        """Render the children of an element as a single run of inline text."""
        return self._render_children(element, {'_inline'})

    def _render_children(self, element: Tag, parent_tags: Set[str]) -> str:
        child_tags = set(parent_tags)
        child_tags.add(element.name)
        parts = []
        for child in element.children:
            if isinstance(child, PreformattedString):
                continue
            if isinstance(child, NavigableString):
                parts.append(self.process_text(child, parent_tags=child_tags))
            else:
                parts.append(self.process_tag(child, parent_tags=child_tags))
        return join_blocks(parts)

    # Dispatch

    def process_tag(self, node, parent_tags=None):
        if isinstance(node, BeautifulSoup):
            return super().process_tag(node, parent_tags=parent_tags)

        if node in self.processed:
            return ''

        category = self.classifier.classify(node)
        if category.group == CategoryGroup.IGNORED:
            return ''

        if category.is_specialized and (category.group == CategoryGroup.TABLE or self.conversion_options.include_macros):
            return self._dispatch(node, lambda: self._render_specialized(node, category), parent_tags)

        return super().process_tag(node, parent_tags=parent_tags)

    def _render_specialized(self, node: Tag, category) -> str:
        if category.group == CategoryGroup.TABLE:
            return self.table_converter.convert(node, TableKind(category.kind))
        return self.macro_handler.convert(node, category.kind)

    def _dispatch(self, node: Tag, render, parent_tags: Optional[Set[str]]) -> str:
        try:
            text = render()
        except Exception as e:
            self.logger.warning(f"Failed to render <{node.name}> element, falling back to plain text: {str(e)}")
            self.processed.add_subtree(node)
            text = node.get_text(' ', strip=True)

        if not text:
            return ''
        if node.name in INLINE_TAGS or (parent_tags and '_inline' in parent_tags):
            return text
        return f'\n\n{text}\n\n'

    # Text

    def process_text(self, el, parent_tags=None):
        text = super().process_text(el, parent_tags=parent_tags)
        if not self.conversion_options.include_special_characters:
            text = text.translate(SPECIAL_CHARACTERS)
        return text

    # Conversion rule overrides

    def convert_img(self, el, text, parent_tags=None, **kwargs):
        """Handle images and emoticons."""
        if 'emoticon' in (el.get('class') or []):
            return self._convert_emoticon(el)

        if not self.conversion_options.include_images:
            return ''

        src = el.get('src', '')
        alt = el.get('alt', '')
        title = el.get('title', '')

        if self.conversion_options.image_style == ImageStyle.HTML:
            attrs = f'src="{html.escape(src)}" alt="{html.escape(alt)}"'
            if title:
                attrs += f' title="{html.escape(title)}"'
            return f'<img {attrs}>'

        title_part = ' "%s"' % title.replace('"', r'\"') if title else ''
        return f'![{alt}]({src}{title_part})'

    def _convert_emoticon(self, img) -> str:
        """Convert an emoticon image to emoji or a :name: shortcode."""
        src = img.get('src', '')
        alt = img.get('alt', '')

        name = img.get('data-emoticon-name', '')
        if not name and src:
            match = _EMOTICON_SRC.search(src)
            if match:
                name = match.group(1)
        if not name and alt:
            match = _EMOTICON_ALT.search(alt)
            if match:
                name = match.group(1)

        if not name:
            return alt
        if self.conversion_options.include_emojis:
            return EMOTICON_MAP.get(name, alt or f':{name}:')
        return f':{name}:'

    def convert_a(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_links:
            return text

        href = el.get('href')
        if self.conversion_options.link_style == LinkStyle.HTML and href and text.strip():
            return f'<a href="{html.escape(href)}">{text.strip()}</a>'
        return super().convert_a(el, text, parent_tags)

    def convert_br(self, el, text, parent_tags=None, **kwargs):
        if parent_tags and '_inline' in parent_tags:
            return ' '
        return '\n'

    def convert_hN(self, n, el, text, parent_tags=None):
        if not self.conversion_options.include_headings:
            if parent_tags and '_inline' in parent_tags:
                return text
            text = ' '.join(text.split())
            return f'\n\n{text}\n\n' if text else ''
        return super().convert_hN(n, el, text, parent_tags)

    def convert_ul(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_lists:
            return f'\n\n{text.strip()}\n\n' if text.strip() else ''
        return super().convert_ul(el, text, parent_tags)

    def convert_ol(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_lists:
            return f'\n\n{text.strip()}\n\n' if text.strip() else ''
        return super().convert_ol(el, text, parent_tags)

    def convert_li(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_lists:
            text = text.strip()
            return f'{text}\n' if text else ''
        return super().convert_li(el, text, parent_tags)

    def convert_blockquote(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_blockquotes:
            text = text.strip()
            return f'\n\n{text}\n\n' if text else ''
        return super().convert_blockquote(el, text, parent_tags)

    def convert_hr(self, el, text, parent_tags=None, **kwargs):
        if not self.conversion_options.include_horizontal_rules:
            return ''
        return super().convert_hr(el, text, parent_tags)

    def convert_pre(self, el, text, parent_tags=None, **kwargs):
        """Render preformatted blocks like code macros."""
        if not self.conversion_options.include_code_blocks:
            return ''
        code = el.get_text().strip('\n').rstrip()
        if not code:
            return ''
        block = self.macro_handler.format_code_block(code, self.macro_handler.code_language(el))
        return f'\n\n{block}\n\n'

    convert_b = _formatting_toggle('convert_b')
    convert_strong = _formatting_toggle('convert_strong')
    convert_em = _formatting_toggle('convert_em')
    convert_i = _formatting_toggle('convert_i')
    convert_code = _formatting_toggle('convert_code')
    convert_del = _formatting_toggle('convert_del')
    convert_s = _formatting_toggle('convert_s')
