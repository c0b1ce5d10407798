#!/usr/bin/env python3
"""
Basic tests for ccsum: module surface, algorithms and the digest provider.
"""

import io
import os
import sys
import shutil
import hashlib
import tempfile
import unittest
from pathlib import Path

import xxhash

# Add the parent directory to sys.path so we can import ccsum
sys.path.insert(0, str(Path(__file__).parent.parent))

import ccsum


HELLO_SHA256 = '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
HELLO_MD5 = '5d41402abc4b2a76b9719d911017c592'


class TestBasicFunctionality(unittest.TestCase):
    """Test basic ccsum functionality."""

    def test_import_works(self):
        """Test that we can import ccsum."""
        self.assertTrue(hasattr(ccsum, 'main'))
        self.assertTrue(hasattr(ccsum, '__version__'))

    def test_version_string(self):
        """Test that version string matches MAJOR.MINOR.PATCH."""
        self.assertEqual(ccsum.__version__, f"{ccsum.MAJOR}.{ccsum.MINOR}.{ccsum.PATCH}")

    def test_default_algorithm(self):
        self.assertEqual(ccsum.DEFAULT_ALGORITHM, 'sha256')
        self.assertIn(ccsum.DEFAULT_ALGORITHM, ccsum.SUPPORTED_ALGORITHMS)

    def test_supported_algorithms(self):
        self.assertEqual(
            ccsum.SUPPORTED_ALGORITHMS,
            ['md5', 'sha1', 'sha224', 'sha256', 'sha384', 'sha512', 'xxh32', 'xxh64', 'xxh3'],
        )


class TestAlgorithm(unittest.TestCase):
    """Test the closed algorithm set."""

    def test_display_is_lowercase_name(self):
        self.assertEqual(str(ccsum.Algorithm.SHA256), 'sha256')
        self.assertEqual(str(ccsum.Algorithm.XXH3), 'xxh3')

    def test_from_name_round_trip(self):
        for algorithm in ccsum.Algorithm:
            self.assertIs(ccsum.Algorithm.from_name(str(algorithm)), algorithm)

    def test_from_name_is_case_sensitive(self):
        with self.assertRaises(ccsum.UnrecognizedAlgorithmError) as cm:
            ccsum.Algorithm.from_name('SHA256')
        self.assertIn('unrecognized algorithm', str(cm.exception))

    def test_from_name_unknown(self):
        with self.assertRaises(ValueError):
            ccsum.Algorithm.from_name('crc32')

    def test_tags(self):
        self.assertEqual(ccsum.Algorithm.SHA256.tag, 'SHA256')
        self.assertEqual(ccsum.Algorithm.MD5.tag, 'MD5')
        self.assertEqual(ccsum.Algorithm.XXH64.tag, 'XXH64')
        for algorithm in ccsum.Algorithm:
            self.assertIs(ccsum.Algorithm.from_tag(algorithm.tag), algorithm)

    def test_every_algorithm_has_a_hasher_of_declared_width(self):
        for algorithm in ccsum.Algorithm:
            hasher = ccsum.new_hasher(algorithm)
            hasher.update(b'hello')
            self.assertEqual(len(hasher.digest()), algorithm.digest_size, algorithm)


class TestDigestProvider(unittest.TestCase):
    """Test chunked digest computation."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.test_file = os.path.join(self.test_dir, "a.txt")
        with open(self.test_file, 'wb') as f:
            f.write(b"hello")

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_sha256_of_hello(self):
        digest = ccsum.checksum_file(self.test_file, ccsum.Algorithm.SHA256)
        self.assertEqual(digest.hex(), HELLO_SHA256)

    def test_md5_of_hello(self):
        digest = ccsum.checksum_file(self.test_file, ccsum.Algorithm.MD5)
        self.assertEqual(digest.hex(), HELLO_MD5)

    def test_xxhash_dispatch(self):
        self.assertEqual(ccsum.checksum_file(self.test_file, ccsum.Algorithm.XXH32),
                         xxhash.xxh32(b"hello").digest())
        self.assertEqual(ccsum.checksum_file(self.test_file, ccsum.Algorithm.XXH64),
                         xxhash.xxh64(b"hello").digest())
        self.assertEqual(ccsum.checksum_file(self.test_file, ccsum.Algorithm.XXH3),
                         xxhash.xxh3_64(b"hello").digest())

    def test_chunk_size_does_not_change_digest(self):
        data = os.urandom(10000)
        expected = hashlib.sha512(data).digest()
        for chunk_size in (1, 7, 4096, 1 << 20):
            digest = ccsum.compute_digest(ccsum.Algorithm.SHA512, io.BytesIO(data), chunk_size)
            self.assertEqual(digest, expected)

    def test_empty_stream(self):
        digest = ccsum.compute_digest(ccsum.Algorithm.SHA1, io.BytesIO(b''))
        self.assertEqual(digest, hashlib.sha1(b'').digest())

    def test_missing_file_raises_os_error(self):
        with self.assertRaises(OSError):
            ccsum.checksum_file(os.path.join(self.test_dir, "missing"), ccsum.Algorithm.SHA256)

    def test_read_errors_propagate(self):
        class FailingStream:
            def read(self, size):
                raise OSError("device went away")

        with self.assertRaises(OSError):
            ccsum.compute_digest(ccsum.Algorithm.SHA256, FailingStream())


if __name__ == '__main__':
    unittest.main()
