"""Upload Extraction
====================

Pulls the HTML (or plain text) to recreate out of an uploaded file.

Single ``.html``/``.htm``/``.txt`` files are decoded as they are. For ``.zip``
archives one entry is chosen:

1. an entry whose file name is ``index.html`` (shallowest first), otherwise
2. the shallowest HTML entry by path-segment count, ties broken by path.
"""
from __future__ import annotations

import io
import logging
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from .errors import ContentError, NoHtmlFound

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = ('.html', '.htm', '.txt')
ARCHIVE_EXTENSIONS = ('.zip',)
HTML_ENTRY_EXTENSIONS = ('.html', '.htm')

# Upload size ceiling, matches MAX_CONTENT_LENGTH default
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
# Ceiling on the decompressed size of the selected archive entry
MAX_EXTRACTED_BYTES = 10 * 1024 * 1024

# Everything zipfile raises for a damaged, encrypted or unsupported archive
_ARCHIVE_READ_ERRORS = (zipfile.BadZipFile, zlib.error, RuntimeError, NotImplementedError, EOFError)

_IGNORED_PREFIXES = ('__MACOSX/',)


@dataclass(frozen=True)
class ExtractedUpload:
    filename: str
    content: str
    source_entry: Optional[str] = None  # archive member, when extracted from a zip


def _decode(data: bytes) -> str:
    return data.decode('utf-8-sig', errors='replace')


def _segments(name: str) -> int:
    return len(PurePosixPath(name).parts)


def select_html_entry(names: Iterable[str]) -> str:
    """Pick the archive entry to recreate.

    Raises:
        NoHtmlFound: when no entry qualifies
    """
    candidates: List[str] = [
        n for n in names
        if not n.endswith('/')
        and not n.startswith(_IGNORED_PREFIXES)
        and n.lower().endswith(HTML_ENTRY_EXTENSIONS)
    ]
    if not candidates:
        raise NoHtmlFound("No HTML files found in the ZIP.")

    index_entries = [n for n in candidates if PurePosixPath(n).name.lower() == 'index.html']
    pool = index_entries or candidates
    return min(pool, key=lambda n: (_segments(n), n))


def extract_archive_html(data: bytes) -> tuple[str, str]:
    """Return ``(entry_name, html)`` for the best HTML entry of a zip archive."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            entry = select_html_entry(archive.namelist())
            size = archive.getinfo(entry).file_size
            if size > MAX_EXTRACTED_BYTES:
                raise ContentError(
                    f"Archive entry {entry} expands beyond {MAX_EXTRACTED_BYTES // (1024 * 1024)} MiB."
                )
            html = _decode(archive.read(entry))
    except _ARCHIVE_READ_ERRORS as exc:
        raise ContentError(f"Could not read ZIP archive: {exc}")
    logger.info(f"Selected archive entry {entry}")
    return entry, html


def extract_upload(filename: str, data: bytes) -> ExtractedUpload:
    """Extract textual site content from an uploaded file.

    Raises:
        ContentError: empty file, unsupported extension, unreadable archive,
            oversized archive entry
        NoHtmlFound: archive without HTML entries
    """
    name = (filename or '').strip()
    if not name:
        raise ContentError("Uploaded file has no name.")
    if not data:
        raise ContentError(f"Uploaded file {name} is empty.")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ContentError(f"Uploaded file {name} exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)} MiB.")

    lowered = name.lower()
    if lowered.endswith(ARCHIVE_EXTENSIONS):
        entry, content = extract_archive_html(data)
        source_entry: Optional[str] = entry
    elif lowered.endswith(TEXT_EXTENSIONS):
        content = _decode(data)
        source_entry = None
    else:
        raise ContentError("Unsupported file format. Please upload .html or .zip")

    if not content.strip():
        raise ContentError(f"Uploaded file {name} has no content.")
    return ExtractedUpload(filename=name, content=content, source_entry=source_entry)


__all__ = [
    'ExtractedUpload',
    'extract_upload',
    'extract_archive_html',
    'select_html_entry',
    'MAX_UPLOAD_BYTES',
    'MAX_EXTRACTED_BYTES',
]
