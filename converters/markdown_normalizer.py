"""Final cleanup pass over generated markdown."""

import logging
import re
from typing import List, Tuple

logger = logging.getLogger('confluence_export_md.converters.markdownnormalizer')

# A line of text and whether it sits inside frontmatter or a fenced code block
Line = Tuple[str, bool]

_FENCE_OPEN = re.compile(r'^ {0,3}(`{3,}|~{3,})')
_DUPLICATE_HASHES = re.compile(r'^(#+)[ \t]+(#+)(?=[ \t]|$)')
_HEADING_SPACING = re.compile(r'^(#{1,6})[ \t]*([^\s#])')
_SEPARATOR_ROW = re.compile(r'^\|(?:[ \t]*:?-{3,}:?[ \t]*\|)+[ \t]*$')
_HEADING = re.compile(r'^#{1,6}(?:[ \t]|$)')
_LIST_ITEM = re.compile(r'^[ \t]*(?:[-*+]|\d+[.)])[ \t]')
_BLOCKQUOTE = re.compile(r'^ {0,3}>')


class MarkdownNormalizer:
    """
    Idempotent spacing and artifact cleanup.

    Frontmatter and fenced code blocks are left exactly as they are; every
    rule applies to the remaining lines only.
    """

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('confluence_export_md.converters.markdownnormalizer')

    def normalize(self, markdown: str) -> str:
        """
        Normalize markdown text.

        Args:
            markdown: Markdown text

        Returns:
            Normalized markdown ending in a single newline, or an empty
            string for blank input
        """
        lines = self._mark_protected(markdown.replace('\r\n', '\n').split('\n'))
        lines = [(line, True) if protected else (self._fix_heading(line.rstrip()), False)
                 for line, protected in lines]
        lines = self._collapse_separator_rows(lines)
        lines = self._separate_blocks(lines)
        return self._collapse_blank_lines(lines)

    def _mark_protected(self, lines: List[str]) -> List[Line]:
        result = []
        index = 0

        if lines and lines[0].strip() == '---':
            for end in range(1, len(lines)):
                if lines[end].strip() == '---':
                    result.extend((line, True) for line in lines[:end + 1])
                    index = end + 1
                    break

        fence = None
        for line in lines[index:]:
            if fence is None:
                match = _FENCE_OPEN.match(line)
                if match:
                    fence = match.group(1)
                    result.append((line, True))
                else:
                    result.append((line, False))
                continue

            result.append((line, True))
            stripped = line.strip()
            if stripped.startswith(fence) and not stripped.strip(fence[0]):
                fence = None
        return result

    def _fix_heading(self, line: str) -> str:
        """Merge '# #' artifacts and put exactly one space after the hashes."""
        merged = _DUPLICATE_HASHES.sub(r'\1\2', line)
        while merged != line:
            line = merged
            merged = _DUPLICATE_HASHES.sub(r'\1\2', line)
        return _HEADING_SPACING.sub(r'\1 \2', line)

    def _collapse_separator_rows(self, lines: List[Line]) -> List[Line]:
        result: List[Line] = []
        for line, protected in lines:
            if not protected and _SEPARATOR_ROW.match(line):
                previous = len(result) - 1
                while previous >= 0 and not result[previous][1] and not result[previous][0]:
                    previous -= 1
                if previous >= 0 and not result[previous][1] and _SEPARATOR_ROW.match(result[previous][0]):
                    del result[previous + 1:]
                    continue
            result.append((line, protected))
        return result

    def _separate_blocks(self, lines: List[Line]) -> List[Line]:
        """Insert a blank line before headings, lists and quotes that follow other content."""
        result: List[Line] = []
        for line, protected in lines:
            if not protected and result and result[-1][0].strip():
                previous = result[-1][0]
                if _HEADING.match(line):
                    result.append(('', False))
                elif _LIST_ITEM.match(line):
                    if not (_LIST_ITEM.match(previous) or previous[:1] in (' ', '\t')):
                        result.append(('', False))
                elif _BLOCKQUOTE.match(line) and not _BLOCKQUOTE.match(previous):
                    result.append(('', False))
            result.append((line, protected))
        return result

    def _collapse_blank_lines(self, lines: List[Line]) -> str:
        result = []
        for line, protected in lines:
            if not protected and not line:
                if not result or not result[-1][0] and not result[-1][1]:
                    continue
            result.append((line, protected))

        # Trailing blank lines go even inside an unterminated fence
        while result and not result[-1][0].strip():
            result.pop()
        if not result:
            return ''
        return '\n'.join(line for line, _ in result) + '\n'


def normalize(markdown: str) -> str:
    """Normalize markdown with a default normalizer."""
    return MarkdownNormalizer().normalize(markdown)
