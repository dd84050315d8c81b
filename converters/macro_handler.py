"""Confluence panel and macro rendering."""

import functools
import logging
import re
from typing import Optional

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString

from models import CodeBlockStyle, ConversionOptions, MacroHandling, PanelStyle

from .element_classifier import ElementClassifier, element_classes
from .processed_set import ProcessedSet

logger = logging.getLogger('confluence_export_md.converters.macrohandler')

PANEL_TITLE_SELECTOR = '.panelHeader, .panel-header, .aui-message-header, p.title'
PANEL_BODY_SELECTOR = '.panelContent, .panel-body, .aui-message-content, .confluence-information-macro-body'

HEADING_TAGS = {'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}
INLINE_TAGS = {
    'a', 'abbr', 'b', 'code', 'em', 'i', 'img', 'kbd', 'mark', 's', 'small',
    'span', 'strong', 'sub', 'sup', 'time', 'u', 'del', 'ins', 'strike',
}

JIRA_FALLBACK = '* (Jira macro content could not be resolved)'

_LANGUAGE_PARAM = re.compile(r'language=([A-Za-z0-9+#-]+)')
_BRUSH_PARAM = re.compile(r'brush:\s*([A-Za-z0-9+#-]+)')
_LOZENGE_CLASS = re.compile(r'^aui-lozenge-(?!subtle$)([a-z]+)$')


def consumes_element(method):
    """
    Make a rendering method idempotent per element.

    The element is claimed in the processed set before rendering (an
    element that is already claimed renders as an empty string) and its
    whole subtree is marked processed afterwards.
    """
    @functools.wraps(method)
    def wrapper(self, element, *args, **kwargs):
        if not self.processed.add(element):
            return ''
        try:
            return method(self, element, *args, **kwargs)
        finally:
            self.processed.add_subtree(element)
    return wrapper


class MacroHandler:
    """Renders panels, admonitions and macros to markdown."""

    def __init__(self, renderer, processed: ProcessedSet, options: ConversionOptions = None,
                 classifier: ElementClassifier = None, logger: logging.Logger = None):
        """
        Initialize macro handler.

        Args:
            renderer: Content renderer used for nested content
            processed: Processed set of the current conversion
            options: Conversion options
            classifier: Element classifier, used to skip hidden children
            logger: Logger instance
        """
        self.renderer = renderer
        self.processed = processed
        self.options = options or ConversionOptions()
        self.classifier = classifier or ElementClassifier()
        self.logger = logger or logging.getLogger('confluence_export_md.converters.macrohandler')

        self.macro_renderers = {
            'code': self.convert_code_macro,
            'expand': self.convert_expand_macro,
            'toc': self.convert_toc_macro,
            'jira': self.convert_jira_macro,
            'status': self.convert_status_macro,
        }

    def convert(self, element: Tag, kind: str) -> str:
        """
        Render a panel or macro element of the given kind.

        Args:
            element: The macro element
            kind: Panel or macro kind from the classifier

        Returns:
            Markdown for the element
        """
        if self.options.macro_handling != MacroHandling.CONVERT:
            return self.passthrough(element)

        self.logger.debug(f"Converting macro: {kind}")
        handler = self.macro_renderers.get(kind, self.convert_panel)
        return handler(element, kind)

    @consumes_element
    def passthrough(self, element: Tag) -> str:
        """Drop or keep the raw markup, depending on macro handling."""
        if self.options.macro_handling == MacroHandling.PRESERVE:
            return str(element)
        return ''

    @consumes_element
    def convert_panel(self, panel: Tag, kind: str = 'info') -> str:
        """Render a panel or admonition in the configured panel style."""
        title_element = panel.select_one(PANEL_TITLE_SELECTOR)
        title = ' '.join(title_element.get_text().split()) if title_element is not None else ''
        title = title or kind.upper()

        body_element = panel.select_one(PANEL_BODY_SELECTOR)
        if body_element is not None:
            body = self.render_body(body_element)
        else:
            body = self.render_body(panel, skip=title_element)

        style = self.options.panel_style
        if style == PanelStyle.DIV:
            return f'<div class="panel {kind}">\n<h3>{title}</h3>\n{body}\n</div>'
        if style == PanelStyle.SECTION:
            return f'## {title}\n\n{body}'.rstrip()

        lines = [f'> **{title}**']
        for line in body.split('\n'):
            lines.append(f'> {line}' if line.strip() else '>')
        return '\n'.join(lines)

    @consumes_element
    def convert_expand_macro(self, element: Tag, kind: str = 'expand') -> str:
        title_element = element.select_one('.expand-control-text')
        title = ' '.join(title_element.get_text().split()) if title_element is not None else ''
        content = element.select_one('.expand-content')
        body = self.render_body(content) if content is not None else ''
        return f'<details>\n<summary>{title or "Details"}</summary>\n\n{body}\n</details>'

    @consumes_element
    def convert_code_macro(self, element: Tag, kind: str = 'code') -> str:
        """Render a code macro as a fenced or indented block."""
        if not self.options.include_code_blocks:
            return ''

        language = self.code_language(element)
        header = element.select_one('.codeHeader')
        pre = element.find('pre')
        source = pre if pre is not None else element
        if pre is None and header is not None:
            code = ''.join(
                child.get_text() if isinstance(child, Tag) else str(child)
                for child in element.children if child is not header
            )
        else:
            code = source.get_text()
        code = code.strip('\n').rstrip()
        if not code:
            return ''

        block = self.format_code_block(code, language)
        if header is not None:
            title = ' '.join(header.get_text().split())
            if title:
                return f'**{title}**\n\n{block}'
        return block

    def code_language(self, element: Tag) -> str:
        """Language from the macro parameters, else from the highlighter brush."""
        match = _LANGUAGE_PARAM.search(element.get('data-macro-parameters', ''))
        if match:
            return match.group(1)

        if element.name == 'pre':
            pre = element if element.get('data-syntaxhighlighter-params') else None
        else:
            pre = element.find('pre', attrs={'data-syntaxhighlighter-params': True})
        if pre is not None:
            match = _BRUSH_PARAM.search(pre['data-syntaxhighlighter-params'])
            if match:
                return match.group(1)
        return ''

    def format_code_block(self, code: str, language: str = '') -> str:
        if self.options.code_block_style == CodeBlockStyle.INDENTED:
            return '\n'.join(f'    {line}' if line else '' for line in code.split('\n'))

        fence = '```'
        while fence in code:
            fence += '`'
        return f'{fence}{language}\n{code}\n{fence}'

    @consumes_element
    def convert_toc_macro(self, element: Tag, kind: str = 'toc') -> str:
        if not self.options.include_table_of_contents:
            return ''
        return '## Table of Contents\n\n[TOC]'

    @consumes_element
    def convert_jira_macro(self, element: Tag, kind: str = 'jira') -> str:
        """List the linked issues of a Jira macro."""
        lines = ['**Jira Issues:**', '']
        links = element.select('a[href*="/browse/"]')
        if element.name == 'a' and '/browse/' in element.get('href', ''):
            links.insert(0, element)

        for link in links:
            key = link.get_text().strip() or 'Jira Issue'
            lines.append(f"* [{key}]({link.get('href') or '#'})")
        if not links:
            lines.append(JIRA_FALLBACK)
        return '\n'.join(lines)

    @consumes_element
    def convert_status_macro(self, element: Tag, kind: str = 'status') -> str:
        text = ' '.join(element.get_text().split())
        color = self.status_color(element)
        if self.options.panel_style == PanelStyle.DIV:
            css_class = f'status-macro {color}' if color else 'status-macro'
            return f'<span class="{css_class}">{text}</span>'
        return f'[{text}]'

    def status_color(self, element: Tag) -> Optional[str]:
        if element.get('data-color'):
            return element['data-color']
        for cls in element_classes(element):
            match = _LOZENGE_CLASS.match(cls)
            if match:
                return match.group(1)
        return None

    def render_body(self, container: Tag, skip: Tag = None) -> str:
        """
        Render the children of a panel or expand body.

        Line breaks become newlines, paragraphs and other blocks end with a
        blank line, headings keep their level and inline content flows.
        """
        parts = []
        for child in container.children:
            if skip is not None and child is skip:
                continue

            if isinstance(child, NavigableString):
                if not isinstance(child, PreformattedString):
                    parts.append(self.renderer.process_text(child, parent_tags={container.name}))
                continue

            if child in self.processed or self.classifier.should_ignore(child):
                continue

            if child.name == 'br':
                parts.append('\n')
            elif child.name == 'p':
                text = self.renderer.render_inline(child).strip()
                if text:
                    parts.append(text + '\n\n')
            elif child.name in HEADING_TAGS:
                text = ' '.join(child.get_text().split())
                if text:
                    parts.append('#' * int(child.name[1]) + ' ' + text + '\n\n')
            elif child.name in INLINE_TAGS:
                parts.append(self.renderer.render_element(child, inline=True))
            else:
                text = self.renderer.render_element(child).strip()
                if text:
                    parts.append(text + '\n\n')

        lines = [line.rstrip() for line in ''.join(parts).strip().split('\n')]
        return '\n'.join(lines)
