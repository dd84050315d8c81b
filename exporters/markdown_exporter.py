"""File and directory export of Confluence HTML pages to markdown."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from converters import MarkdownConverter, MarkdownNormalizer, MetadataExtractor
from logger import ProgressTracker
from models import AttachmentOption, ConversionOptions, ConversionResult, ProcessedFile
from .attachment_manager import AttachmentManager

SKIPPED_DIRECTORIES = {'attachments', 'images'}

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r'\s+')


def sanitize_filename(name: str) -> str:
    """
    Make a breadcrumb or page name safe to use as a path component.

    Args:
        name: Raw name

    Returns:
        Sanitized name, at most 255 characters
    """
    sanitized = _INVALID_FILENAME_CHARS.sub('_', name)
    sanitized = _WHITESPACE.sub('_', sanitized)
    sanitized = sanitized.strip('.')
    return sanitized[:255]


class MarkdownExporter:
    """
    Converts exported HTML files to markdown files on disk.

    This exporter:
    1. Finds HTML pages in an export directory
    2. Places each page in a directory derived from its breadcrumb trail
    3. Converts and writes the markdown
    4. Copies attachments unless they are hidden
    """

    def __init__(self, options: Optional[ConversionOptions] = None, logger: Optional[logging.Logger] = None):
        """
        Initialize the markdown exporter.

        Args:
            options: Conversion options used for every page
            logger: Logger instance
        """
        self.options = options or ConversionOptions()
        self.logger = logger or logging.getLogger('confluence_export_md.exporters.markdown_exporter')

        self.converter = MarkdownConverter(self.options, self.logger)
        # Breadcrumbs drive the output layout, whether or not they are rendered
        self.breadcrumb_extractor = MetadataExtractor(self.options, self.logger)
        self.normalizer = MarkdownNormalizer(self.logger)
        self.attachment_manager = AttachmentManager(logger=self.logger)

        self.stats = {
            'total': 0,
            'converted': 0,
            'failed': 0,
            'attachments_copied': 0,
            'attachments_missing': 0,
        }

    def process_file(self, input_path, output_path) -> ConversionResult:
        """
        Convert one HTML file and write the markdown.

        Args:
            input_path: HTML file to read
            output_path: Markdown file to write; parent directories are created

        Returns:
            ConversionResult for the page
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        self.logger.info(f"Processing: {input_path}")

        html_content = input_path.read_text(encoding='utf-8')
        result = self.converter.convert_document(html_content)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.markdown, encoding='utf-8')

        if result.attachments and self.options.attachment_option != AttachmentOption.HIDDEN:
            counts = self.attachment_manager.copy_attachments(
                input_path.parent, output_path.parent, result.attachments
            )
            self.stats['attachments_copied'] += counts['copied']
            self.stats['attachments_missing'] += counts['missing']

        self.logger.debug(f"Converted: {output_path}")
        return result

    def process_directory(self, input_dir, output_dir) -> Dict[str, Any]:
        """
        Convert every HTML page below a directory.

        Pages are analysed first so each one can be placed under the
        directories named by its breadcrumb trail. A failing page is logged
        and counted; the run continues.

        Args:
            input_dir: Root of the HTML export
            output_dir: Root of the markdown output

        Returns:
            Statistics dictionary
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        files = self.analyze_directory(input_dir)
        self.stats['total'] += len(files)

        with ProgressTracker(total_items=len(files)) as tracker:
            for processed_file in files:
                output_path = self.output_path_for(processed_file, output_dir)
                try:
                    self.process_file(processed_file.input_path, output_path)
                    self.stats['converted'] += 1
                    tracker.record(processed_file.relative_path, success=True)
                except Exception as e:
                    self.logger.error(f"Error processing file {processed_file.input_path}: {e}", exc_info=True)
                    self.stats['failed'] += 1
                    tracker.record(processed_file.relative_path, success=False)

        return self.stats.copy()

    def analyze_directory(self, input_dir: Path) -> List[ProcessedFile]:
        """First pass: list HTML pages and read their breadcrumbs."""
        files = []
        for path in self.list_html_files(input_dir):
            relative_path = path.relative_to(input_dir).as_posix()
            try:
                soup = BeautifulSoup(path.read_text(encoding='utf-8'), 'lxml')
                breadcrumbs = self.breadcrumb_extractor.extract_breadcrumbs(soup)
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(f"Error analyzing breadcrumbs for {path}: {e}")
                breadcrumbs = []
            files.append(ProcessedFile(input_path=str(path), relative_path=relative_path, breadcrumbs=breadcrumbs))

        self.logger.info(f"Found {len(files)} HTML files in {input_dir}")
        return files

    def list_html_files(self, directory: Path) -> List[Path]:
        """HTML files below a directory, skipping attachment and image folders."""
        found = []
        for entry in sorted(Path(directory).iterdir()):
            if entry.is_dir():
                if entry.name not in SKIPPED_DIRECTORIES:
                    found.extend(self.list_html_files(entry))
            elif entry.suffix.lower() == '.html':
                found.append(entry)
        return found

    def output_path_for(self, processed_file: ProcessedFile, output_dir: Path) -> Path:
        """
        Markdown path for a page.

        The breadcrumb texts except the last become directories; a page
        without breadcrumbs mirrors its location in the export.
        """
        stem = Path(processed_file.input_path).stem
        if processed_file.breadcrumbs:
            segments = [sanitize_filename(crumb.text) for crumb in processed_file.breadcrumbs[:-1]]
            directory = output_dir.joinpath(*[segment for segment in segments if segment])
        else:
            directory = output_dir / Path(processed_file.relative_path).parent
        return directory / f'{stem}.md'

    def post_process_directory(self, output_dir) -> int:
        """
        Re-normalize every markdown file below a directory in place.

        Returns:
            Number of files rewritten
        """
        self.logger.info("Starting post-processing of markdown files...")
        count = 0
        for path in sorted(Path(output_dir).rglob('*.md')):
            try:
                content = path.read_text(encoding='utf-8')
                path.write_text(self.normalizer.normalize(content), encoding='utf-8')
                count += 1
                self.logger.debug(f"Post-processed: {path}")
            except (OSError, UnicodeDecodeError) as e:
                self.logger.error(f"Error post-processing file {path}: {e}")
        return count
