import re
import logging
from dataclasses import dataclass
from typing import Dict

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r'<[^>]*>')
WHITESPACE_PATTERN = re.compile(r'\s+')


@dataclass(frozen=True)
class Stats:
    char_count: int = 0
    word_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {'charCount': self.char_count, 'wordCount': self.word_count}


def strip_markup(content: str) -> str:
    """Remove every <...> span, leaving the plain text (entities untouched)."""
    if not content:
        return ''
    return TAG_PATTERN.sub('', content)


def plain_text_length(content: str) -> int:
    return len(strip_markup(content))


def compute_stats(content: str) -> Stats:
    """
    Derive character and word counts from serialized markup.

    Characters include whitespace. Words are the non-empty tokens left after
    splitting the plain text on runs of whitespace.
    """
    text = strip_markup(content)
    words = [token for token in WHITESPACE_PATTERN.split(text) if token]
    return Stats(char_count=len(text), word_count=len(words))
