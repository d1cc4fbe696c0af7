import re
import html
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

CELL_PLACEHOLDER = "&nbsp;"
TABLE_CLASS = "rte-table"
LINK_CLASS = "rte-link"
RULE_MARKUP = '<hr class="rte-rule">'

LINK_SCHEMES = ('http', 'https', 'mailto')
IMAGE_SCHEMES = ('http', 'https')
# Browsers ignore these when reading a URL scheme
URL_IGNORED_CHARS = re.compile(r'[\x00-\x20\x7f]')


@dataclass(frozen=True)
class TableSpec:
    rows: int
    cols: int


@dataclass(frozen=True)
class ImageSpec:
    url: str
    alt: str = ""
    width_px: Optional[int] = None
    height_px: Optional[int] = None


@dataclass(frozen=True)
class LinkSpec:
    url: str
    text: str


@dataclass(frozen=True)
class RuleSpec:
    pass


FragmentSpec = Union[TableSpec, ImageSpec, LinkSpec, RuleSpec]


def escape_attr(value) -> str:
    """Escape a value for use inside a double-quoted attribute."""
    return html.escape(str(value or ''), quote=True)


def is_safe_url(url: str, schemes: Tuple[str, ...] = LINK_SCHEMES) -> bool:
    """Relative URLs and the listed schemes pass; javascript:, data: and the like do not."""
    try:
        scheme = urlsplit(URL_IGNORED_CHARS.sub('', url)).scheme
    except ValueError:
        return False
    return not scheme or scheme.lower() in schemes


def _positive_int(value) -> Optional[int]:
    # bool is an int subclass; True is not a dimension
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    if isinstance(value, float) and value != number:
        return None
    return number if number > 0 else None


def table(rows, cols) -> str:
    """
    Grid of `rows` rows with `cols` cells each. Every cell holds a
    non-breaking space so it renders with height.
    Non-positive or non-integer dimensions produce no fragment.
    """
    n_rows = _positive_int(rows)
    n_cols = _positive_int(cols)
    if n_rows is None or n_cols is None:
        logger.warning(f"Fragments: rejected table dimensions {rows!r}x{cols!r}")
        return ''

    row = '<tr>' + f'<td>{CELL_PLACEHOLDER}</td>' * n_cols + '</tr>'
    return f'<table class="{TABLE_CLASS}"><tbody>' + row * n_rows + '</tbody></table>'


def image(spec: ImageSpec) -> str:
    if not spec.url:
        logger.warning("Fragments: image without url skipped")
        return ''
    if not is_safe_url(spec.url, IMAGE_SCHEMES):
        logger.warning(f"Fragments: image url with disallowed scheme skipped: {spec.url!r}")
        return ''

    styles = []
    width = _positive_int(spec.width_px) if spec.width_px is not None else None
    height = _positive_int(spec.height_px) if spec.height_px is not None else None
    if width:
        styles.append(f"width: {width}px;")
    if height:
        styles.append(f"height: {height}px;")

    markup = f'<img src="{escape_attr(spec.url)}" alt="{escape_attr(spec.alt)}"'
    if styles:
        markup += f' style="{" ".join(styles)}"'
    return markup + '>'


def link(spec: LinkSpec) -> str:
    if not spec.url or not spec.text:
        logger.warning("Fragments: link needs both url and text, skipped")
        return ''
    if not is_safe_url(spec.url, LINK_SCHEMES):
        logger.warning(f"Fragments: link url with disallowed scheme skipped: {spec.url!r}")
        return ''
    label = html.escape(spec.text, quote=True)
    return f'<a href="{escape_attr(spec.url)}" class="{LINK_CLASS}">{label}</a>'


def rule() -> str:
    return RULE_MARKUP


def build_fragment(spec: FragmentSpec) -> str:
    """Dispatch on the fragment variant. Returns '' when there is nothing to insert."""
    if isinstance(spec, TableSpec):
        return table(spec.rows, spec.cols)
    if isinstance(spec, ImageSpec):
        return image(spec)
    if isinstance(spec, LinkSpec):
        return link(spec)
    if isinstance(spec, RuleSpec):
        return rule()
    raise TypeError(f"Unknown fragment spec: {type(spec).__name__}")


def _text_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise TypeError(f"Fragment field {key!r} must be a string")
    return value


def fragment_from_dict(data: dict) -> Optional[FragmentSpec]:
    """
    Build a spec from a JSON payload ({"type": "table", "rows": 3, ...}).
    Returns None for an unknown type; raises TypeError for non-string text fields.
    """
    kind = _text_field(data, 'type').lower()
    if kind == 'table':
        return TableSpec(rows=data.get('rows'), cols=data.get('cols'))
    if kind == 'image':
        return ImageSpec(
            url=_text_field(data, 'url'),
            alt=_text_field(data, 'alt'),
            width_px=data.get('width'),
            height_px=data.get('height'),
        )
    if kind == 'link':
        return LinkSpec(url=_text_field(data, 'url'), text=_text_field(data, 'text'))
    if kind == 'rule':
        return RuleSpec()
    logger.warning(f"Fragments: unknown fragment type {kind!r}")
    return None
