#!/usr/bin/env python3
"""
Confluence HTML Export to Markdown - Command Line Entry Point

Converts a single exported page, or a whole HTML export directory, into
Markdown files with optional frontmatter, breadcrumb trails and attachments.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config_loader import ConfigLoader, build_conversion_options, get_nested
from converters import ConversionError, MarkdownConverter
from exporters import MarkdownExporter
from logger import log_config, setup_logging
from models import (
    AttachmentOption,
    CodeBlockStyle,
    HeadingStyle,
    ImageStyle,
    LinkStyle,
    MacroHandling,
    PanelStyle,
    TableStyle,
)

__version__ = "1.0.0"


def _choices(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='confluence-export-md',
        description="Convert Confluence HTML exports to Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert one page to stdout
  confluence-export-md export/Page_123.html

  # Convert a whole export with frontmatter and breadcrumbs
  confluence-export-md export/ -o markdown/ --metadata --breadcrumbs

  # Use a configuration file, then re-normalize the output
  confluence-export-md export/ --config config.yaml --post-process -v
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        'input',
        type=str,
        help='HTML file or export directory to convert'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        help='Output file or directory (single files print to stdout when omitted)'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration YAML file'
    )

    style_arguments = [
        ('--panel-style', PanelStyle, 'Panel rendering'),
        ('--table-style', TableStyle, 'Data table rendering'),
        ('--code-block-style', CodeBlockStyle, 'Code block rendering'),
        ('--image-style', ImageStyle, 'Image rendering'),
        ('--link-style', LinkStyle, 'Link rendering'),
        ('--heading-style', HeadingStyle, 'Heading rendering'),
        ('--macro-handling', MacroHandling, 'What to do with macros'),
        ('--attachment-option', AttachmentOption, 'Copy attachments (visible) or skip them (hidden)'),
    ]
    for flag, enum_cls, help_text in style_arguments:
        parser.add_argument(
            flag,
            choices=_choices(enum_cls),
            default=None,
            help=help_text
        )

    toggle_arguments = [
        ('--breadcrumbs', 'Include the breadcrumb trail and frontmatter breadcrumbs'),
        ('--metadata', 'Include author and creation date in frontmatter'),
        ('--last-modified', 'Include the last modified editor in frontmatter'),
        ('--attachments', 'Append a list of page attachments'),
    ]
    for flag, help_text in toggle_arguments:
        parser.add_argument(
            flag,
            action=argparse.BooleanOptionalAction,
            default=None,
            help=help_text
        )

    parser.add_argument(
        '--post-process',
        action='store_true',
        help='Re-normalize every markdown file in the output directory afterwards'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Write logs to a rotating log file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def run_conversion(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """
    Convert the input file or directory.

    Returns:
        Process exit code
    """
    options = build_conversion_options(config)
    logger.debug(f"Conversion options: {options.to_dict()}")
    input_path = Path(args.input)
    output = get_nested(config, 'export.output_directory')

    if not input_path.exists():
        logger.error(f"Input not found: {input_path}")
        return 1

    if input_path.is_file():
        if not output:
            result = MarkdownConverter(options, logger).convert_document(
                input_path.read_text(encoding='utf-8')
            )
            sys.stdout.write(result.markdown)
            return 0

        # A configured output_directory is always a directory; -o may name the file
        output_path = Path(output)
        if not args.output or output_path.is_dir() or output.endswith(('/', '\\')):
            output_path = output_path / f'{input_path.stem}.md'
        MarkdownExporter(options, logger).process_file(input_path, output_path)
        logger.info(f"Wrote {output_path}")
        return 0

    if not output:
        logger.error("An output directory is required when converting a directory (-o or export.output_directory)")
        return 1

    exporter = MarkdownExporter(options, logger)
    stats = exporter.process_directory(input_path, output)
    if get_nested(config, 'export.post_process', False):
        exporter.post_process_directory(output)

    logger.info(
        f"Converted {stats['converted']}/{stats['total']} files, {stats['failed']} failed, "
        f"{stats['attachments_copied']} attachments copied, {stats['attachments_missing']} missing"
    )
    return 1 if stats['failed'] else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('confluence_export_md.cli')

        config = {}
        if args.config:
            logger.info(f"Loading configuration from {args.config}")
            config = ConfigLoader.load(args.config)

        # CLI takes precedence
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)

        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level'),
        )
        log_config(config)

        return run_conversion(config, args, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1
    except ConversionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nConversion interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
