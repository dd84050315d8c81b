"""Attachment copying for converted export pages."""

import logging
import re
import shutil
from pathlib import Path, PurePosixPath
from typing import Dict, Optional
from urllib.parse import unquote

from models import AttachmentInfo

_URL_SCHEME = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*:')


class AttachmentManager:
    """
    Copies attachment files from an HTML export next to the generated markdown.

    Files keep their export-relative location (``attachments/<container>/<id>.<ext>``)
    so links in the converted markdown keep working. A missing source file is
    logged and counted, never raised.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('confluence_export_md.exporters.attachment_manager')
        self.stats = {
            'copied': 0,
            'missing': 0,
            'failed': 0,
        }

    def copy_attachments(self, source_dir, target_dir, attachments: Dict[str, AttachmentInfo]) -> Dict[str, int]:
        """
        Copy a page's attachments.

        Args:
            source_dir: Directory holding the exported HTML page
            target_dir: Directory the markdown file was written to
            attachments: Attachments keyed by id

        Returns:
            Counts for this call ('copied', 'missing', 'failed')
        """
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        counts = {'copied': 0, 'missing': 0, 'failed': 0}

        for attachment in attachments.values():
            relative = self.resolve_relative_path(attachment)
            source_path = source_dir / relative
            target_path = target_dir / relative

            if not source_path.is_file():
                self.logger.warning(f"Attachment '{attachment.filename}' not found: {source_path}")
                counts['missing'] += 1
                continue

            try:
                target_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source_path, target_path)
                counts['copied'] += 1
                self.logger.debug(f"Copied attachment: {attachment.filename} -> {target_path}")
            except OSError as e:
                self.logger.error(f"Failed to copy attachment '{attachment.filename}': {e}")
                counts['failed'] += 1

        for key, value in counts.items():
            self.stats[key] += value
        return counts

    def resolve_relative_path(self, attachment: AttachmentInfo) -> Path:
        """
        Export-relative path of an attachment file.

        The href is used when it is a plain relative path below
        ``attachments/``; otherwise the path is rebuilt from the container id,
        attachment id and filename extension.
        """
        href = unquote(attachment.href.split('?', 1)[0].split('#', 1)[0])
        if href and not _URL_SCHEME.match(href) and not href.startswith('/'):
            parts = PurePosixPath(href).parts
            if parts and parts[0] == 'attachments' and '..' not in parts:
                return Path(*parts)

        ext = PurePosixPath(attachment.filename).suffix
        return Path('attachments', attachment.container_id, f'{attachment.id}{ext}')
