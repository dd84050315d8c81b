"""Markdown export package: writes converted pages and their attachments to disk.

Package Structure:
- markdown_exporter: Converts single files or whole export directories, placing
  each page under the directories named by its breadcrumb trail
- attachment_manager: Copies attachment files next to the generated markdown

Configuration Referenced:
- export.output_directory: Base output path for exported files
- export.post_process: Re-normalize every markdown file after the export
- conversion.attachment_option: 'hidden' skips attachment copying
"""

from .attachment_manager import AttachmentManager
from .markdown_exporter import MarkdownExporter, sanitize_filename

__all__ = [
    'AttachmentManager',
    'MarkdownExporter',
    'sanitize_filename',
]
