#!/usr/bin/env python3
"""
Tests for file name escaping.
"""

import sys
import unittest
from pathlib import Path

# Add the parent directory to sys.path so we can import ccsum
sys.path.insert(0, str(Path(__file__).parent.parent))

import ccsum


class TestEscape(unittest.TestCase):

    def test_plain_text_unchanged(self):
        self.assertEqual(ccsum.escape("hello, world!"), "hello, world!")

    def test_escapes(self):
        cases = [
            ('hello, "world"!', 'hello, \\"world\\"!'),
            ("hello, 'world'!", "hello, \\'world\\'!"),
            ("hello, \\world\\!", "hello, \\\\world\\\\!"),
            ("hello, \x07world\x08!", "hello, \\aworld\\b!"),
            ("hello, \tworld\n!", "hello, \\tworld\\n!"),
            ("hello, \x0bworld\x0c!", "hello, \\vworld\\f!"),
            ("hello, \rworld!", "hello, \\rworld!"),
            ("hello, \x1bworld!", "hello, \\eworld!"),
            ("hello, \0world!", "hello, \\0world!"),
        ]
        for raw, escaped in cases:
            self.assertEqual(ccsum.escape(raw), escaped)

    def test_non_ascii_unchanged(self):
        self.assertEqual(ccsum.escape("résumé ✓.txt"), "résumé ✓.txt")


class TestUnescape(unittest.TestCase):

    def test_unescapes(self):
        cases = [
            ("hello, world!", "hello, world!"),
            ('hello, \\"world\\"!', 'hello, "world"!'),
            ("hello, \\'world\\'!", "hello, 'world'!"),
            ("hello, \\\\world\\\\!", "hello, \\world\\!"),
            ("hello, \\aworld\\b!", "hello, \x07world\x08!"),
            ("hello, \\tworld\\n!", "hello, \tworld\n!"),
            ("hello, \\vworld\\f!", "hello, \x0bworld\x0c!"),
            ("hello, \\rworld!", "hello, \rworld!"),
            ("hello, \\eworld!", "hello, \x1bworld!"),
            ("hello, \\0world!", "hello, \0world!"),
        ]
        for escaped, raw in cases:
            self.assertEqual(ccsum.unescape(escaped), raw)

    def test_invalid_escape(self):
        with self.assertRaises(ccsum.InvalidEscapeError) as cm:
            ccsum.unescape("bad\\qname")
        self.assertEqual(str(cm.exception), "invalid escape sequence: \\q")

    def test_incomplete_escape(self):
        with self.assertRaises(ccsum.InvalidEscapeError) as cm:
            ccsum.unescape("trailing\\")
        self.assertEqual(str(cm.exception), "incomplete escape sequence")

    def test_round_trip(self):
        samples = [
            "",
            "plain.txt",
            "dir/with space/file.bin",
            "\0\x07\x08\t\n\x0b\x0c\r\x1b\\'\"",
            "\\\\n is not a newline",
            "mixed\\ \"quotes\" and 'ticks'\n",
        ]
        for sample in samples:
            self.assertEqual(ccsum.unescape(ccsum.escape(sample)), sample)


if __name__ == '__main__':
    unittest.main()
