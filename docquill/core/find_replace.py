"""
Literal find/replace over serialized markup.

Search text is always escaped before it is compiled, so user input can never
inject a regular expression. Matching only touches text between tags: element
names and attribute values are left alone. Character references (&amp;,
&nbsp;, &#160;) are matched by the character they stand for and are never
split or rewritten unless a match covers them whole.
"""

import re
import html
import logging
from dataclasses import dataclass
from typing import List, Pattern, Optional, Tuple

logger = logging.getLogger(__name__)

HIGHLIGHT_CLASS = "rte-highlight"
HIGHLIGHT_OPEN = f'<span class="{HIGHLIGHT_CLASS}" style="background-color: yellow;">'
HIGHLIGHT_CLOSE = '</span>'

# Highlight spans only ever wrap plain text, so their body cannot contain '<'
HIGHLIGHT_SPAN_PATTERN = re.compile(
    r'<span class="' + re.escape(HIGHLIGHT_CLASS) + r'"[^>]*>([^<]*)</span>'
)
TAG_SPLIT_PATTERN = re.compile(r'(<[^>]*>)')
ENTITY_PATTERN = re.compile(r'&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);')


@dataclass(frozen=True)
class FindReplaceSpec:
    pattern: str
    replacement: str = ""

    @property
    def is_highlight(self) -> bool:
        return not self.replacement


def compile_search(pattern: str) -> Optional[Pattern]:
    """Case-insensitive matcher for the literal search text."""
    if not pattern:
        return None
    return re.compile(re.escape(pattern), re.IGNORECASE)


def _text_units(segment: str) -> List[Tuple[str, str]]:
    """
    Split a text segment into (source, decoded) units: one per character
    reference and one per other character.
    """
    units = []
    pos = 0
    for m in ENTITY_PATTERN.finditer(segment):
        units.extend((ch, ch) for ch in segment[pos:m.start()])
        units.append((m.group(0), html.unescape(m.group(0))))
        pos = m.end()
    units.extend((ch, ch) for ch in segment[pos:])
    return units


def _sub_in_segment(segment: str, regex: Pattern, repl) -> str:
    units = _text_units(segment)
    decoded = ''.join(text for _, text in units)
    owner = []
    for index, (_, text) in enumerate(units):
        owner.extend([index] * len(text))

    out = []
    next_unit = 0
    for m in regex.finditer(decoded):
        first, last = owner[m.start()], owner[m.end() - 1]
        # A match inside a multi-character reference can overlap the previous one
        if first < next_unit:
            continue
        out.extend(source for source, _ in units[next_unit:first])
        out.append(repl(''.join(source for source, _ in units[first:last + 1])))
        next_unit = last + 1
    out.extend(source for source, _ in units[next_unit:])
    return ''.join(out)


def _sub_in_text(content: str, regex: Pattern, repl) -> str:
    parts = TAG_SPLIT_PATTERN.split(content)
    # Odd indices are the captured tags
    for i in range(0, len(parts), 2):
        if parts[i]:
            parts[i] = _sub_in_segment(parts[i], regex, repl)
    return ''.join(parts)


def clear_highlights(content: str) -> str:
    """Unwrap every highlight span produced by find_replace()."""
    if not content or HIGHLIGHT_CLASS not in content:
        return content
    return HIGHLIGHT_SPAN_PATTERN.sub(lambda m: m.group(1), content)


def count_matches(content: str, pattern: str) -> int:
    regex = compile_search(pattern)
    if regex is None or not content:
        return 0
    parts = TAG_SPLIT_PATTERN.split(clear_highlights(content))
    total = 0
    for i in range(0, len(parts), 2):
        decoded = ''.join(text for _, text in _text_units(parts[i]))
        total += len(regex.findall(decoded))
    return total


def find_replace(content: str, spec: FindReplaceSpec) -> str:
    """
    Replace every match of spec.pattern with spec.replacement, or, when the
    replacement is empty, wrap every match in a highlight span instead.

    Highlights from an earlier call are removed first, so repeated searches
    never nest spans.
    """
    regex = compile_search(spec.pattern)
    if regex is None:
        logger.debug("FindReplace: empty pattern, nothing to do")
        return content

    text = clear_highlights(content or '')

    if spec.is_highlight:
        result = _sub_in_text(text, regex, lambda source: f"{HIGHLIGHT_OPEN}{source}{HIGHLIGHT_CLOSE}")
        logger.debug(f"FindReplace: highlighted matches for {spec.pattern!r}")
        return result

    # Written as markup text and never expanded as a template
    literal = html.escape(spec.replacement, quote=False)
    result = _sub_in_text(text, regex, lambda source: literal)
    logger.debug(f"FindReplace: replaced {spec.pattern!r} with {spec.replacement!r}")
    return result
