import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from docquill.core.stats import Stats, compute_stats, strip_markup, plain_text_length

class TestStats(unittest.TestCase):
    def test_empty_content(self):
        self.assertEqual(compute_stats(""), Stats(char_count=0, word_count=0))

    def test_simple_paragraph(self):
        self.assertEqual(compute_stats("<p>hi there</p>"), Stats(char_count=8, word_count=2))

    def test_whitespace_runs_and_boundaries(self):
        stats = compute_stats("  one\n\t two   three  ")
        self.assertEqual(stats.word_count, 3)
        self.assertEqual(stats.char_count, len("  one\n\t two   three  "))

    def test_markup_only(self):
        self.assertEqual(compute_stats("<p><br></p>"), Stats(0, 0))

    def test_adjacent_tags_do_not_insert_spaces(self):
        self.assertEqual(strip_markup("<b>bold</b><i>italic</i>"), "bolditalic")
        self.assertEqual(compute_stats("<b>bold</b><i>italic</i>").word_count, 1)

    def test_attributes_are_stripped(self):
        markup = '<a href="https://example.com" class="rte-link">link</a>'
        self.assertEqual(plain_text_length(markup), 4)

    def test_to_dict(self):
        self.assertEqual(Stats(8, 2).to_dict(), {'charCount': 8, 'wordCount': 2})

if __name__ == '__main__':
    unittest.main()
