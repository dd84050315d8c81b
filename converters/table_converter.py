"""Table rendering for Confluence exports."""

import logging
from typing import List

from bs4 import Tag

from models import ConversionOptions, TableStyle

from .element_classifier import TableKind, row_cells, table_rows
from .processed_set import ProcessedSet

logger = logging.getLogger('confluence_export_md.converters.tableconverter')

HISTORY_HEADERS = ['Version', 'Published', 'Changed By', 'Comment']


def escape_cell(text: str) -> str:
    """Flatten text to a single line and escape pipe characters."""
    return ' '.join(text.split()).replace('|', '\\|')


def separator_row(columns: int) -> str:
    return '| ' + ' | '.join(['---'] * columns) + ' |'


def pipe_row(cells: List[str]) -> str:
    return '| ' + ' | '.join(cells) + ' |'


class TableConverter:
    """
    Render tables by category.

    History, layout, complex and standard tables each have their own
    algorithm. Cell content goes back through the renderer so links, images
    and nested macros keep their markdown form. Every path marks the rows and
    cells it touched as processed.
    """

    def __init__(self, renderer, processed: ProcessedSet, options: ConversionOptions = None,
                 logger: logging.Logger = None):
        self.renderer = renderer
        self.processed = processed
        self.options = options or ConversionOptions()
        self.logger = logger or logging.getLogger('confluence_export_md.converters.tableconverter')

    def convert(self, table: Tag, kind: TableKind) -> str:
        """
        Render a table of the given kind.

        Args:
            table: The table element
            kind: Classification of the table

        Returns:
            Markdown for the table, or an empty string when the table was
            already rendered or its kind is switched off
        """
        if not self.processed.add(table):
            return ''

        try:
            if kind == TableKind.HISTORY:
                if not self.options.include_version_history:
                    return ''
                return self.convert_history_table(table)
            if kind == TableKind.LAYOUT:
                return self.convert_layout_table(table)
            if not self.options.include_tables:
                return ''
            if kind == TableKind.COMPLEX:
                return self.convert_complex_table(table)
            return self.convert_standard_table(table)
        finally:
            self.processed.add_subtree(table)

    def convert_history_table(self, table: Tag) -> str:
        """Render a page history table with fixed columns."""
        lines = [pipe_row(HISTORY_HEADERS), separator_row(len(HISTORY_HEADERS))]

        for row in table_rows(table):
            self.processed.add(row)
            cells = row.find_all('td', recursive=False)
            if len(cells) < 3:
                continue
            for cell in cells:
                self.processed.add(cell)

            version = self._history_version(cells[0])
            published = escape_cell(cells[1].get_text())
            changed_by = self._history_contributor(cells[2])
            comment = escape_cell(cells[3].get_text()) if len(cells) > 3 else ''
            lines.append(pipe_row([version, published, changed_by, comment]))

        self.logger.debug(f"Rendered history table with {len(lines) - 2} versions")
        return '\n'.join(lines)

    def _history_version(self, cell: Tag) -> str:
        text = escape_cell(cell.get_text())
        link = cell.find('a')
        if link is not None:
            return f"[{escape_cell(link.get_text()) or text}]({link.get('href', '')})"
        return text

    def _history_contributor(self, cell: Tag) -> str:
        result = ''
        avatar = cell.select_one('img.userLogo')
        if avatar is not None:
            result += f"![{avatar.get('alt') or 'User'}]({avatar.get('src', '')}) "

        name = cell.select_one('.page-history-contributor-name a, .page-history-contributor-name span')
        if name is None:
            return result + escape_cell(cell.get_text())
        if name.name == 'a':
            return result + f"[{escape_cell(name.get_text())}]({name.get('href', '')})"
        return result + escape_cell(name.get_text())

    def convert_layout_table(self, table: Tag) -> str:
        """Drop the table structure and emit each cell's content as blocks."""
        blocks = []
        for row in table_rows(table):
            self.processed.add(row)
            for cell in row_cells(row):
                if not self.processed.add(cell):
                    continue
                content = self.renderer.render_blocks(cell).strip()
                if content:
                    blocks.append(content)
        return '\n\n'.join(blocks)

    def convert_complex_table(self, table: Tag) -> str:
        """Turn each row into a section titled by its first cell."""
        blocks = []
        for row in table_rows(table):
            self.processed.add(row)
            cells = row_cells(row)
            if not cells:
                continue

            title = ' '.join(cells[0].get_text().split())
            self.processed.add_subtree(cells[0])
            if title:
                blocks.append(f'## {title}')

            for cell in cells[1:]:
                if not self.processed.add(cell):
                    continue
                content = self.renderer.render_blocks(cell).strip()
                if content:
                    blocks.append(content)
        return '\n\n'.join(blocks)

    def convert_standard_table(self, table: Tag) -> str:
        """Render a data table in the configured table style."""
        if self.options.table_style == TableStyle.HTML:
            return str(table)

        rows = table_rows(table)
        grid = []
        header_index = None
        for index, row in enumerate(rows):
            self.processed.add(row)
            cells = row_cells(row)
            if header_index is None and any(cell.name == 'th' for cell in cells):
                header_index = index
            grid.append([self._render_cell(cell) for cell in cells])

        columns = max((len(cells) for cells in grid), default=0)
        if columns == 0:
            return ''

        if self.options.table_style == TableStyle.SIMPLE:
            return '\n'.join('  '.join(cells) for cells in grid if cells)

        if header_index is None:
            header_index = 0

        lines = []
        for index, cells in enumerate(grid):
            lines.append(pipe_row(cells + [''] * (columns - len(cells))))
            if index == header_index:
                lines.append(separator_row(columns))
        return '\n'.join(lines)

    def _render_cell(self, cell: Tag) -> str:
        self.processed.add(cell)
        return escape_cell(self.renderer.render_inline(cell))
