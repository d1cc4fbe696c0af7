import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from bs4 import BeautifulSoup

from docquill.features.registry import Feature, FeatureState, FeatureType

logger = logging.getLogger(__name__)

# Constants
EXPORT_BASENAME = "document"
MAX_IMPORT_SIZE = 20 * 1024 * 1024  # 20 MB
IMPORT_MIMETYPES = {'text/html', 'text/plain'}

EXPORT_MIMETYPES = {
    'html': 'text/html',
    'txt': 'text/plain',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}

BLANK_LINES_PATTERN = re.compile(r'\n\s*\n+')


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    mimetype: str
    data: bytes


def export_html(content: str) -> bytes:
    """Current content, verbatim."""
    return (content or '').encode('utf-8')


def html_to_text(content: str) -> str:
    """Markup stripped (entities decoded), runs of blank lines collapsed to one newline."""
    if not content:
        return ''
    soup = BeautifulSoup(content, 'html.parser')
    for tag in soup.find_all(['script', 'style']):
        tag.decompose()
    text = soup.get_text()
    return BLANK_LINES_PATTERN.sub('\n', text).strip('\n')


def export_text(content: str) -> bytes:
    return html_to_text(content).encode('utf-8')


def core_export_features() -> List[Feature]:
    """Export handlers that ship with the core (plugins may add more)."""
    return [
        Feature("html_export", export_html, FeatureState.STANDARD, FeatureType.EXPORT_HANDLER,
                meta={'extension': 'html', 'preinstalled': True}),
        Feature("txt_export", export_text, FeatureState.STANDARD, FeatureType.EXPORT_HANDLER,
                meta={'extension': 'txt', 'preinstalled': True}),
    ]


def export_document(content: str, format_ext: str, features=None) -> Optional[ExportedFile]:
    """
    Export through the handler registered for format_ext.
    Falls back to the core handlers when no FeatureManager is given.
    Returns None when no handler is available.
    """
    format_ext = (format_ext or '').lower().lstrip('.')
    handler = None
    if features is not None:
        handler = features.get_export_handler(format_ext)
    else:
        handler = next((f.handler for f in core_export_features() if f.meta.get('extension') == format_ext), None)

    if handler is None:
        logger.warning(f"Export: no handler for {format_ext!r}")
        return None

    data = handler(content or '')
    mimetype = EXPORT_MIMETYPES.get(format_ext, 'application/octet-stream')
    logger.info(f"Export: produced {len(data)} bytes as {format_ext}")
    return ExportedFile(f"{EXPORT_BASENAME}.{format_ext}", mimetype, data)


def normalize_mimetype(mimetype: Optional[str]) -> str:
    """'text/HTML; charset=utf-8' -> 'text/html'"""
    return (mimetype or '').split(';', 1)[0].strip().lower()


def decode_import(data: Union[bytes, str], mimetype: Optional[str]) -> Optional[str]:
    """
    Text of an imported file, or None when the type is not importable.
    Both accepted types are taken whole: the text becomes the new content.
    """
    kind = normalize_mimetype(mimetype)
    if kind not in IMPORT_MIMETYPES:
        logger.warning(f"Import: ignoring unsupported file type {mimetype!r}")
        return None

    if isinstance(data, bytes):
        if len(data) > MAX_IMPORT_SIZE:
            logger.warning(f"Import: file too large ({len(data)} bytes), ignored")
            return None
        # utf-8-sig drops a leading BOM
        return data.decode('utf-8-sig', errors='replace')
    return data or ''
