import logging
import io

# Note: Feature, FeatureType, FeatureState are INJECTED by the loader.
# Do not import them directly to avoid split-brain issues.

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Constants
MAX_EXPORT_HTML_SIZE = 50 * 1024 * 1024  # 50 MB
UNSUPPORTED_STYLE_PROPS = ('stroke', 'stroke-width', 'fill', 'fill-opacity', 'stroke-opacity')


def prepare_html(html_content: str) -> str:
    """
    Clean editor markup for HtmlToDocx: drop scripts, replace images with their
    alt text (export never fetches remote files) and strip CSS Word cannot use.
    """
    soup = BeautifulSoup(html_content or '', 'html.parser')

    for tag in soup.find_all(['script', 'style']):
        tag.decompose()

    for img in soup.find_all('img'):
        replacement = soup.new_tag('span')
        replacement.string = f"[{img.get('alt') or 'Image'}]"
        replacement['style'] = "color: #666; font-style: italic;"
        img.replace_with(replacement)

    for tag in soup.find_all(True):
        if not tag.has_attr('style'):
            continue
        clean_styles = []
        for s in (s.strip() for s in tag['style'].split(';')):
            if ':' not in s:
                continue
            prop, val = (part.strip().lower() for part in s.split(':', 1))
            if prop in UNSUPPORTED_STYLE_PROPS:
                continue
            if 'color' in prop and (val in ('none', 'auto', 'transparent', 'inherit', 'initial', 'unset') or 'rgba' in val):
                continue
            clean_styles.append(s)
        if clean_styles:
            tag['style'] = "; ".join(clean_styles)
        else:
            del tag['style']

    # Editor tables get visible borders in Word
    for table in soup.find_all('table'):
        table['border'] = '1'

    return f'<html><head><meta charset="utf-8"></head><body>{soup.decode_contents()}</body></html>'


def export_to_word(html_content: str) -> bytes:
    """
    Exports editor content to a Word (.docx) file byte stream.
    """
    try:
        from htmldocx import HtmlToDocx
        from docx import Document
        from docx.shared import RGBColor, Pt
    except ImportError as e:
        logger.error(f"Failed to import Word export dependencies: {e}")
        raise RuntimeError("Word export dependencies (htmldocx, python-docx) not installed.")

    html_size = len((html_content or '').encode('utf-8'))
    if html_size > MAX_EXPORT_HTML_SIZE:
        raise ValueError(f"Content too large ({html_size/1024/1024:.2f} MB). Max {MAX_EXPORT_HTML_SIZE/1024/1024} MB.")

    logger.info(f"WordExport: Generating document from {html_size} bytes of HTML...")
    clean_html = prepare_html(html_content)

    doc = Document()
    parser = HtmlToDocx()
    try:
        parser.add_html_to_document(clean_html, doc)
    except Exception as e:
        # Keep the export usable: report the failure inside the document
        logger.error(f"HtmlToDocx conversion failed: {e}", exc_info=True)
        doc.add_paragraph("[Export Error: Document content could not be fully converted.]")
        run = doc.add_paragraph().add_run(f"Details: {str(e)}")
        run.font.size = Pt(8)
        run.font.color.rgb = RGBColor(128, 128, 128)

    buffer = io.BytesIO()
    doc.save(buffer)
    data = buffer.getvalue()
    logger.info(f"WordExport: Generated {len(data)} bytes")
    return data


def get_features():
    """Register the Word export handler."""
    return [
        Feature(
            name="docx_export",
            handler=export_to_word,
            state=FeatureState.STANDARD,
            feature_type=FeatureType.EXPORT_HANDLER,
            meta={"extension": "docx", "source": "bundled", "preinstalled": True}
        )
    ]

# Metadata
PLUGIN_METADATA = {
    'name': 'Word Export',
    'description': 'Exports editor documents to Microsoft Word (.docx).',
    'category': 'export',
    'preinstalled': True
}
