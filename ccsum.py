#!/usr/bin/env python3
"""
ccsum.py - Colored Checksum Tool

Computes file digests, prints them with a deterministic per-digest color
gradient, and verifies files against previously recorded checksum lines.

Features:
- MD5, SHA-1, SHA-2 family and xxHash (XXH32, XXH64, XXH3) digests
- Output compatible with sha256sum and BSD-style tagged records
- Verification of both record formats with coreutils-style switches
- Grouping of files by trailing path segments to cross-check copies
- Color gradient derived from the digest bytes

Usage:
    ccsum.py [OPTIONS] [FILE ...]

Examples:
    ccsum.py a.txt b.txt                       # SHA-256 of two files
    ccsum.py -a xxh64 --tag image.iso          # Tagged xxHash record
    ccsum.py a.txt > sums && ccsum.py -c sums  # Record then verify
    ccsum.py -g 2 backup1/x/a.txt backup2/x/a.txt   # Group copies by suffix
    ccsum.py -g 1 -c copy1/a.txt copy2/a.txt        # Fail if copies differ
"""

import os
import re
import sys
import random
import hashlib
import logging
import argparse
import functools
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import colorama
import xxhash
from coloraide import Color

# Base semantic version
MAJOR, MINOR, PATCH = 0, 4, 0

__version__ = f"{MAJOR}.{MINOR}.{PATCH}"

__author__ = "ccsum contributors"

# Constants
DEFAULT_ALGORITHM = 'sha256'
DEFAULT_CHUNK_SIZE = 8192
STDIN_PLACEHOLDER = '-'

# Seed of the hue permutation table; changing it changes every rendered color
HUE_TABLE_SEED = 0x63637375
HUE_TABLE_SIZE = 65536

# (lightness, chroma) in OKLCH
NORMAL_LIGHTNESS_CHROMA = (0.7, 0.4)
DIM_LIGHTNESS_CHROMA = (0.5, 0.1)

logger = logging.getLogger('ccsum')

# Marks user-facing report lines; they are printed without log prefixes.
REPORT_LINE = {'report_line': True}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CcsumError(Exception):
    """Base class for errors raised by ccsum."""


class UnrecognizedAlgorithmError(CcsumError, ValueError):
    """Raised when an algorithm name or tag is not part of the closed set."""

    def __init__(self, name):
        super().__init__(f"unrecognized algorithm: {name}")
        self.name = name


class InvalidEscapeError(CcsumError, ValueError):
    """Raised when an escaped file name cannot be decoded."""


# ---------------------------------------------------------------------------
# Algorithms and digest provider
# ---------------------------------------------------------------------------

class Algorithm(Enum):
    """Closed set of supported digest algorithms, valued by canonical name."""

    MD5 = 'md5'
    SHA1 = 'sha1'
    SHA224 = 'sha224'
    SHA256 = 'sha256'
    SHA384 = 'sha384'
    SHA512 = 'sha512'
    XXH32 = 'xxh32'
    XXH64 = 'xxh64'
    XXH3 = 'xxh3'

    def __str__(self):
        return self.value

    @property
    def tag(self) -> str:
        """Name used in tagged records, e.g. ``SHA256 (file) = ...``."""
        return self.name

    @property
    def digest_size(self) -> int:
        return _DIGEST_SIZES[self]

    @classmethod
    def from_name(cls, name: str) -> 'Algorithm':
        for algorithm in cls:
            if algorithm.value == name:
                return algorithm
        raise UnrecognizedAlgorithmError(name)

    @classmethod
    def from_tag(cls, tag: str) -> 'Algorithm':
        for algorithm in cls:
            if algorithm.tag == tag:
                return algorithm
        raise UnrecognizedAlgorithmError(tag)


_DIGEST_SIZES = {
    Algorithm.MD5: 16,
    Algorithm.SHA1: 20,
    Algorithm.SHA224: 28,
    Algorithm.SHA256: 32,
    Algorithm.SHA384: 48,
    Algorithm.SHA512: 64,
    Algorithm.XXH32: 4,
    Algorithm.XXH64: 8,
    Algorithm.XXH3: 8,
}

_HASHER_FACTORIES = {
    Algorithm.MD5: hashlib.md5,
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA224: hashlib.sha224,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA384: hashlib.sha384,
    Algorithm.SHA512: hashlib.sha512,
    Algorithm.XXH32: xxhash.xxh32,
    Algorithm.XXH64: xxhash.xxh64,
    Algorithm.XXH3: xxhash.xxh3_64,
}

SUPPORTED_ALGORITHMS = [algorithm.value for algorithm in Algorithm]


def new_hasher(algorithm: Algorithm):
    """Return a fresh hasher object for ``algorithm``."""
    try:
        factory = _HASHER_FACTORIES[algorithm]
    except KeyError:
        raise UnrecognizedAlgorithmError(algorithm) from None
    return factory()


def compute_digest(algorithm: Algorithm, stream, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """Read a binary stream to exhaustion and return its raw digest.

    Args:
        algorithm: Digest algorithm to apply
        stream: Binary file object
        chunk_size: Number of bytes requested per read

    Returns:
        Digest bytes, ``algorithm.digest_size`` long

    Raises:
        OSError: Propagated from the underlying read
    """
    hasher = new_hasher(algorithm)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        hasher.update(chunk)
    return hasher.digest()


def checksum_file(path: str, algorithm: Algorithm, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """Digest a file by path, or standard input when ``path`` is ``-``."""
    if path == STDIN_PLACEHOLDER:
        logger.debug(f"Hashing standard input with {algorithm}")
        return compute_digest(algorithm, sys.stdin.buffer, chunk_size)

    logger.debug(f"Hashing {path} with {algorithm} ({chunk_size} byte chunks)")
    with open(path, 'rb') as f:
        return compute_digest(algorithm, f, chunk_size)


def read_failure_reason(error: OSError) -> str:
    return f"failed to read file: {error}"


# ---------------------------------------------------------------------------
# File name escaping
# ---------------------------------------------------------------------------

_ESCAPES = {
    '\0': '0',
    '\x07': 'a',
    '\x08': 'b',
    '\t': 't',
    '\n': 'n',
    '\x0b': 'v',
    '\x0c': 'f',
    '\r': 'r',
    '\x1b': 'e',
    '\\': '\\',
    "'": "'",
    '"': '"',
}
_UNESCAPES = {code: char for char, code in _ESCAPES.items()}


def escape(s: str) -> str:
    """Escape control characters, backslashes and quotes C-style."""
    return ''.join('\\' + _ESCAPES[c] if c in _ESCAPES else c for c in s)


def unescape(s: str) -> str:
    """Reverse :func:`escape`.

    Raises:
        InvalidEscapeError: On an unknown escape code or a trailing backslash
    """
    out = []
    chars = iter(s)
    for c in chars:
        if c != '\\':
            out.append(c)
            continue
        code = next(chars, None)
        if code is None:
            raise InvalidEscapeError("incomplete escape sequence")
        if code not in _UNESCAPES:
            raise InvalidEscapeError(f"invalid escape sequence: \\{code}")
        out.append(_UNESCAPES[code])
    return ''.join(out)


# ---------------------------------------------------------------------------
# Digest colors
# ---------------------------------------------------------------------------

@functools.lru_cache(maxsize=None)
def hue_table() -> Tuple[int, ...]:
    """Fixed permutation of 0..65535 used to spread byte pairs over the hue circle."""
    table = list(range(HUE_TABLE_SIZE))
    random.Random(HUE_TABLE_SEED).shuffle(table)
    return tuple(table)


def bytes_to_hue(high: int, low: int) -> float:
    """Map a big-endian byte pair to a hue in [0, 360)."""
    index = hue_table()[(high << 8) | low]
    return index * (360.0 / HUE_TABLE_SIZE)


def oklch_to_srgb(lightness: float, chroma: float, hue: float) -> Tuple[float, float, float]:
    """Convert an OKLCH color to gamma-encoded sRGB channels (not clamped)."""
    color = Color('oklch', [lightness, chroma, hue]).convert('srgb')
    return color.get('red'), color.get('green'), color.get('blue')


def _gradient_endpoints(digest: bytes, dim: bool):
    lightness, chroma = DIM_LIGHTNESS_CHROMA if dim else NORMAL_LIGHTNESS_CHROMA
    hue_start = bytes_to_hue(digest[0], digest[1])
    hue_end = bytes_to_hue(digest[-1], digest[-2])
    return (oklch_to_srgb(lightness, chroma, hue_start),
            oklch_to_srgb(lightness, chroma, hue_end))


def mix_channel(start: float, end: float, t: float) -> int:
    """Interpolate one channel and quantize it to 0..255, rounding halves up."""
    value = start + (end - start) * t
    value = min(max(value, 0.0), 1.0) * 255.0
    # floor(x + 0.5) rounds half away from zero for non-negative values
    return min(max(int(value + 0.5), 0), 255)


def gradient(digest: bytes, length: int, dim: bool = False) -> List[Tuple[int, int, int]]:
    """Return one 8-bit RGB triple per character of a ``length``-long string.

    Args:
        digest: Raw digest bytes (at least two)
        length: Number of characters to color
        dim: Use the low-chroma variant

    Returns:
        List of ``(r, g, b)`` tuples, empty when ``length`` is 0
    """
    if length <= 0:
        return []

    start, end = _gradient_endpoints(digest, dim)
    colors = []
    for index in range(length):
        t = index / (length - 1) if length > 1 else 0.0
        colors.append(tuple(mix_channel(s, e, t) for s, e in zip(start, end)))
    return colors


def color_map(digest: bytes, dim: bool = False) -> Tuple[Tuple[int, int, int], Tuple[int, int, int]]:
    """Return the start and end 8-bit colors derived from a digest."""
    start, end = gradient(digest, 2, dim)
    return start, end


class ColorFormatter:
    """Cross-platform color formatter for terminal output."""

    def __init__(self, use_colors=None, stream=None):
        """Initialize color formatter.

        Args:
            use_colors: If None, auto-detect terminal support. Otherwise bool.
            stream: Stream whose tty status drives auto-detection (stdout)
        """
        # Enable ANSI escape sequences on Windows consoles; no-op elsewhere
        colorama.just_fix_windows_console()

        if use_colors is None:
            self.use_colors = self._supports_color(stream or sys.stdout)
        else:
            self.use_colors = use_colors

    @staticmethod
    def _supports_color(stream):
        """Check if terminal supports ANSI colors."""
        if os.environ.get('NO_COLOR') or os.environ.get('CCSUM_NO_COLOR'):
            return False
        if os.environ.get('FORCE_COLOR') or os.environ.get('CCSUM_FORCE_COLOR'):
            return True
        return hasattr(stream, 'isatty') and stream.isatty()

    # ANSI color codes
    COLORS = {
        'green': '\033[92m',
        'light_red': '\033[91m',
        'light_yellow': '\033[93m',
        'light_gray': '\033[90m',
        'bold': '\033[1m',
        'reset': '\033[0m'
    }

    def colorize(self, text, color=None, bold=False):
        """Apply color and formatting to text.

        Args:
            text: Text to colorize
            color: Color name from COLORS dict
            bold: Whether to make text bold

        Returns:
            Formatted text with ANSI codes or plain text if colors disabled
        """
        if not self.use_colors or not text:
            return text

        codes = []
        if bold:
            codes.append(self.COLORS['bold'])
        if color and color in self.COLORS:
            codes.append(self.COLORS[color])

        if codes:
            return ''.join(codes) + text + self.COLORS['reset']
        return text

    def success(self, text, bold=False):
        """Format success text (green)."""
        return self.colorize(text, 'green', bold)

    def error(self, text, bold=False):
        """Format error text (red)."""
        return self.colorize(text, 'light_red', bold)

    def warning(self, text, bold=False):
        """Format warning text (yellow)."""
        return self.colorize(text, 'light_yellow', bold)

    def muted(self, text):
        """Format de-emphasized text (gray), used for unmatched path prefixes."""
        return self.colorize(text, 'light_gray')

    def gradient(self, text, digest, dim=False):
        """Color each character of ``text`` along the digest's gradient."""
        if not self.use_colors or not text:
            return text

        parts = []
        for ch, (r, g, b) in zip(text, gradient(digest, len(text), dim)):
            parts.append(f"\033[38;2;{r};{g};{b}m{ch}")
        return ''.join(parts) + self.COLORS['reset']


# ---------------------------------------------------------------------------
# Record formatting
# ---------------------------------------------------------------------------

def format_record(algorithm: Algorithm, digest: bytes, name: str, tag: bool = False,
                  formatter: Optional[ColorFormatter] = None, dim: bool = False) -> str:
    """Render one checksum record without its terminator.

    ``name`` is used as given; callers escape it (or not) beforehand.
    """
    hex_digest = digest.hex()
    if formatter:
        hex_digest = formatter.gradient(hex_digest, digest, dim)
    if tag:
        return f"{algorithm.tag} ({name}) = {hex_digest}"
    return f"{hex_digest}  {name}"


def display_name(path: str, zero: bool = False, tag: bool = False) -> str:
    """File name as written in a record; tagged and NUL-terminated records keep it literal."""
    return path if zero or tag else escape(path)


# ---------------------------------------------------------------------------
# Checksum line parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckLine:
    """A parsed verification request."""
    algorithm: Algorithm
    filename: str
    expected: str


@dataclass(frozen=True)
class MalformedLine:
    """A line that could not be turned into a :class:`CheckLine`."""
    reason: str


PLAIN_LINE_RE = re.compile(r'^((?:[0-9a-fA-F]{2})+)  (.+)$')
TAGGED_LINE_RE = re.compile(
    r'^(?P<algorithm>{}) \((?P<filename>.+)\) = (?P<hash>(?:[0-9a-fA-F]{{2}})+)$'.format(
        '|'.join(re.escape(a.tag) for a in sorted(Algorithm, key=lambda a: -len(a.tag)))
    )
)


def _check_width(algorithm: Algorithm, filename: str, hex_digest: str) -> Union[CheckLine, MalformedLine]:
    expected_len = algorithm.digest_size * 2
    if len(hex_digest) != expected_len:
        return MalformedLine(
            f"digest length mismatch: expected {expected_len} hex digits "
            f"for {algorithm}, got {len(hex_digest)}"
        )
    return CheckLine(algorithm, filename, hex_digest.lower())


def parse_line(line: str) -> Union[CheckLine, MalformedLine]:
    """Parse one checksum line in plain or tagged form.

    Plain lines (``<hex>  <name>``) are SHA-256 and carry an escaped name.
    Tagged lines (``ALG (<name>) = <hex>``) carry the name literally.
    """
    line = line.rstrip('\n').rstrip('\r')

    match = PLAIN_LINE_RE.match(line)
    if match:
        hex_digest, filename = match.groups()
        try:
            filename = unescape(filename)
        except InvalidEscapeError as e:
            return MalformedLine(str(e))
        return _check_width(Algorithm.SHA256, filename, hex_digest)

    match = TAGGED_LINE_RE.match(line)
    if match:
        token = match.group('algorithm')
        try:
            algorithm = Algorithm.from_tag(token)
        except UnrecognizedAlgorithmError:
            return MalformedLine(f"invalid algorithm: {token}")
        return _check_width(algorithm, match.group('filename'), match.group('hash'))

    return MalformedLine("pattern not matched")


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

class Reporter:
    """Writes records to stdout and diagnostics to the ccsum logger.

    Diagnostics are logged with ``extra=REPORT_LINE`` so the handler installed
    by ``setup_logging`` prints them bare at every verbosity.
    """

    def __init__(self, formatter=None, quiet=False, status=False, terminator='\n', out=None):
        self.formatter = formatter or ColorFormatter(use_colors=False)
        self.quiet = quiet
        self.status = status
        self.terminator = terminator
        self.out = out

    def _write(self, text, terminator=None):
        stream = self.out or sys.stdout
        stream.write(text + (self.terminator if terminator is None else terminator))

    def record(self, text):
        """Emit one checksum record."""
        self._write(text)

    def ok(self, filename):
        # Status lines are not records; -z does not apply to them.
        if self.quiet or self.status:
            return
        self._write(f"{filename}: {self.formatter.success('OK')}", '\n')

    def failed(self, filename, reason):
        if self.quiet or self.status:
            return
        logger.error(f"{filename}: {self.formatter.error(reason)}", extra=REPORT_LINE)

    def notice(self, filename, reason):
        """Non-fatal per-file message, e.g. a missing file under --ignore-missing."""
        if self.quiet or self.status:
            return
        logger.warning(f"{filename}: {self.formatter.warning(reason)}", extra=REPORT_LINE)

    def invalid_line(self, source, line_number, reason):
        if self.status:
            return
        logger.warning(f"{source}: {line_number}: {self.formatter.warning('invalid line')}: {reason}",
                       extra=REPORT_LINE)

    def unreadable(self, path, reason):
        """A whole input (check file) could not be opened; not silenced by --quiet."""
        if self.status:
            return
        logger.error(f"{path}: {self.formatter.error(reason)}", extra=REPORT_LINE)

    def error(self, msg):
        if self.status:
            return
        logger.error(f"{self.formatter.error('error')}: {msg}", extra=REPORT_LINE)

    def warning(self, msg):
        if self.status:
            return
        logger.warning(f"{self.formatter.warning('warning')}: {msg}", extra=REPORT_LINE)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

class Outcome(Enum):
    VERIFIED = 'verified'
    MISMATCH = 'mismatch'
    READ_FAILED = 'read_failed'
    MALFORMED = 'malformed'


@dataclass
class CheckOptions:
    """Switches governing check mode verbosity and exit semantics."""
    ignore_missing: bool = False
    quiet: bool = False
    status: bool = False
    strict: bool = False
    warn: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass(frozen=True)
class LineResult:
    source: str
    line_number: int
    outcome: Outcome
    filename: Optional[str] = None
    reason: str = ''


@dataclass
class CheckSummary:
    """Invocation-wide aggregate of verification outcomes."""
    verified: int = 0
    mismatched: int = 0
    read_failed: int = 0
    ignored: int = 0
    malformed: int = 0
    failed: int = 0
    results: List[LineResult] = field(default_factory=list)

    @property
    def validated(self):
        return self.verified + self.mismatched

    @property
    def any_succeeded(self):
        return self.validated > 0

    @property
    def any_failed(self):
        return self.failed > 0

    @property
    def exit_code(self):
        if self.any_failed or not self.any_succeeded:
            return 1
        return 0


class ChecksumVerifier:
    """Re-computes digests named by checksum lines and classifies each line."""

    def __init__(self, options: Optional[CheckOptions] = None, reporter: Optional[Reporter] = None):
        self.options = options or CheckOptions()
        self.reporter = reporter or Reporter(quiet=self.options.quiet, status=self.options.status)
        self.summary = CheckSummary()

    def verify_line(self, source: str, line_number: int, line: str) -> LineResult:
        """Parse, verify and report a single line, updating the summary."""
        parsed = parse_line(line)
        if isinstance(parsed, MalformedLine):
            result = LineResult(source, line_number, Outcome.MALFORMED, reason=parsed.reason)
            self._record_malformed(result)
            return result

        result = self._verify(source, line_number, parsed)
        self._record(result)
        return result

    def _verify(self, source, line_number, check: CheckLine) -> LineResult:
        try:
            actual = checksum_file(check.filename, check.algorithm, self.options.chunk_size)
        except OSError as e:
            return LineResult(source, line_number, Outcome.READ_FAILED, check.filename,
                              read_failure_reason(e))

        expected = bytes.fromhex(check.expected)
        if actual == expected:
            return LineResult(source, line_number, Outcome.VERIFIED, check.filename)
        return LineResult(source, line_number, Outcome.MISMATCH, check.filename,
                          f"checksum mismatch: expected {expected.hex()}, got {actual.hex()}")

    def _record_malformed(self, result: LineResult):
        summary = self.summary
        summary.results.append(result)
        summary.malformed += 1
        if self.options.strict:
            summary.failed += 1
        if self.options.warn:
            self.reporter.invalid_line(result.source, result.line_number, result.reason)
        logger.debug(f"{result.source}: {result.line_number}: skipped ({result.reason})")

    def _record(self, result: LineResult):
        summary = self.summary
        summary.results.append(result)

        if result.outcome is Outcome.VERIFIED:
            summary.verified += 1
            self.reporter.ok(result.filename)
        elif result.outcome is Outcome.MISMATCH:
            summary.mismatched += 1
            summary.failed += 1
            self.reporter.failed(result.filename, result.reason)
        elif self.options.ignore_missing:
            summary.ignored += 1
            self.reporter.notice(result.filename, result.reason)
        else:
            summary.read_failed += 1
            summary.failed += 1
            self.reporter.failed(result.filename, result.reason)

    def verify_lines(self, source: str, lines: Iterable[str]):
        for line_number, line in enumerate(lines, start=1):
            self.verify_line(source, line_number, line)

    def verify_sources(self, paths: Sequence[str]) -> CheckSummary:
        """Verify every line of every check file, ``-`` meaning standard input."""
        for path in paths or [STDIN_PLACEHOLDER]:
            if path == STDIN_PLACEHOLDER:
                self.verify_lines(path, sys.stdin)
                continue
            try:
                with open(path, 'r', encoding='utf-8', errors='surrogateescape') as f:
                    self.verify_lines(path, f)
            except OSError as e:
                self.summary.failed += 1
                self.reporter.unreadable(path, read_failure_reason(e))

        if not self.summary.any_failed and not self.summary.any_succeeded:
            self.reporter.error("no checksums validated")
        return self.summary


# ---------------------------------------------------------------------------
# Grouping by trailing path segments
# ---------------------------------------------------------------------------

def split_at_last_segments(path: str, n: int, sep: str = os.sep) -> Tuple[Optional[str], str]:
    """Split ``path`` into the prefix and its last ``n`` segments.

    Segments keep their trailing separator, so ``prefix + suffix == path``.
    A path with ``n`` segments or fewer is returned whole as the suffix.

    Example:
        >>> split_at_last_segments('/a/b/c/d', 2, '/')
        ('/a/b/', 'c/d')
    """
    sep_re = re.escape(sep)
    segments = re.findall(f'[^{sep_re}]*{sep_re}|[^{sep_re}]+$', path)
    if len(segments) <= n:
        return None, path
    return ''.join(segments[:-n]), ''.join(segments[-n:])


@dataclass
class GroupMember:
    path: str
    prefix: Optional[str]
    suffix: str
    digest: Optional[bytes] = None
    error: Optional[str] = None


@dataclass
class FileGroup:
    """Files sharing the same trailing-segment suffix, in argument order."""
    key: str
    members: List[GroupMember] = field(default_factory=list)

    @property
    def digests(self) -> List[bytes]:
        return [m.digest for m in self.members if m.digest is not None]

    @property
    def matches(self) -> bool:
        return len(set(self.digests)) <= 1

    @property
    def cross_validated(self) -> bool:
        """True when at least two members were hashed and all agree."""
        return len(self.digests) >= 2 and self.matches


def build_groups(paths: Sequence[str], n: int, sep: str = os.sep) -> List[FileGroup]:
    """Partition ``paths`` by their last ``n`` segments, sorted by suffix."""
    if n < 1:
        raise ValueError(f"group segment count must be at least 1, got {n}")

    groups: Dict[str, FileGroup] = {}
    for path in paths:
        prefix, suffix = split_at_last_segments(path, n, sep)
        group = groups.setdefault(suffix, FileGroup(suffix))
        group.members.append(GroupMember(path, prefix, suffix))
    return [groups[key] for key in sorted(groups)]


@dataclass
class GroupSummary:
    groups: List[FileGroup] = field(default_factory=list)
    read_failed: int = 0

    @property
    def any_failed(self):
        return self.read_failed > 0

    @property
    def mismatched_groups(self) -> List[FileGroup]:
        return [g for g in self.groups if len(g.members) > 1 and not g.matches]

    @property
    def any_group_mismatch(self):
        return bool(self.mismatched_groups)

    @property
    def cross_validated(self):
        return sum(1 for g in self.groups if g.cross_validated)

    def exit_code(self, check=False):
        if self.any_failed:
            return 1
        if check and self.any_group_mismatch:
            return 1
        return 0


class GroupChecker:
    """Hashes grouped files and renders each group with its consistency colors."""

    def __init__(self, algorithm: Algorithm, segments: int, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 reporter: Optional[Reporter] = None, tag=False, zero=False):
        self.algorithm = algorithm
        self.segments = segments
        self.chunk_size = chunk_size
        self.reporter = reporter or Reporter()
        self.tag = tag
        self.zero = zero

    def hash_group(self, group: FileGroup) -> int:
        """Digest every member; returns the number of members that failed."""
        failures = 0
        for member in group.members:
            try:
                member.digest = checksum_file(member.path, self.algorithm, self.chunk_size)
            except OSError as e:
                member.error = read_failure_reason(e)
                failures += 1
                self.reporter.failed(member.path, member.error)
        return failures

    def format_member(self, member: GroupMember, dim: bool) -> str:
        formatter = self.reporter.formatter
        suffix = display_name(member.suffix, self.zero, self.tag)
        name = formatter.gradient(suffix, member.digest, dim)
        if member.prefix is not None:
            name = formatter.muted(display_name(member.prefix, self.zero, self.tag)) + name
        return format_record(self.algorithm, member.digest, name, self.tag, formatter, dim)

    def run(self, paths: Sequence[str]) -> GroupSummary:
        groups = build_groups(paths, self.segments)
        logger.debug(f"Built {len(groups)} groups from {len(paths)} files "
                     f"using the last {self.segments} segment(s)")

        summary = GroupSummary(groups)
        for group in groups:
            summary.read_failed += self.hash_group(group)
            dim = not group.matches
            if dim:
                logger.debug(f"Group {group.key!r}: digests disagree")
            for member in group.members:
                if member.digest is not None:
                    self.reporter.record(self.format_member(member, dim))
        return summary


# ---------------------------------------------------------------------------
# Plain emission
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DigestRecord:
    """A computed digest of one input."""
    algorithm: Algorithm
    digest: bytes
    path: str


def emit_checksums(paths: Sequence[str], algorithm: Algorithm, reporter: Reporter,
                   chunk_size: int = DEFAULT_CHUNK_SIZE, tag=False, zero=False) -> int:
    """Print one record per path in argument order; returns the exit code."""
    anything_failed = False
    for path in paths:
        try:
            record = DigestRecord(algorithm, checksum_file(path, algorithm, chunk_size), path)
        except OSError as e:
            reporter.failed(path, read_failure_reason(e))
            anything_failed = True
            continue
        reporter.record(format_record(record.algorithm, record.digest,
                                      display_name(record.path, zero, tag), tag,
                                      reporter.formatter))
    return 1 if anything_failed else 0


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def create_argument_parser():
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        prog='ccsum',
        description='Print or check checksums, colored by digest',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s a.txt b.txt                    # SHA-256 records
  %(prog)s -a md5 --tag a.txt             # Tagged MD5 record
  %(prog)s -c sums.txt                    # Verify recorded checksums
  %(prog)s -g 1 -c x/a.txt y/a.txt        # Require copies to be identical
        """
    )

    parser.add_argument('files', nargs='*', metavar='FILE',
                        help='Files to checksum (default or "-": standard input)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-a', '--algorithm', choices=SUPPORTED_ALGORITHMS, default=None,
                        help=f'Digest algorithm (default: {DEFAULT_ALGORITHM})')
    parser.add_argument('--buffer-size', type=positive_int, default=DEFAULT_CHUNK_SIZE,
                        metavar='BYTES', help=f'I/O buffer size (default: {DEFAULT_CHUNK_SIZE})')
    parser.add_argument('-b', '--binary', action='store_true',
                        help='Read in binary mode (no effect)')
    parser.add_argument('-t', '--text', action='store_true',
                        help='Read in text mode (no effect)')
    parser.add_argument('-c', '--check', action='store_true',
                        help='Read checksums from FILEs and check them; '
                             'with --group, fail when grouped copies differ')
    parser.add_argument('--tag', action='store_true',
                        help='Create BSD-style tagged records')
    parser.add_argument('-z', '--zero', action='store_true',
                        help='End each record with NUL instead of newline, '
                             'and disable file name escaping')
    parser.add_argument('-g', '--group', type=positive_int, metavar='N',
                        help='Group files by their last N path segments')
    parser.add_argument('-C', '--color', action='store_true',
                        help='Colorize output even if stdout is not a terminal')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colored output')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log verbosity (-v, -vv)')

    check = parser.add_argument_group('Check mode options')
    check.add_argument('--ignore-missing', action='store_true',
                       help="Don't fail or report status for missing files")
    check.add_argument('--quiet', action='store_true',
                       help="Don't print OK for each successfully verified file")
    check.add_argument('--status', action='store_true',
                       help="Don't output anything, the exit status shows success")
    check.add_argument('--strict', action='store_true',
                       help='Exit non-zero for improperly formatted checksum lines')
    check.add_argument('-w', '--warn', action='store_true',
                       help='Warn about improperly formatted checksum lines')

    return parser


def verbosity_from_environment():
    """Default verbosity from CCSUM_VERBOSITY, clamped to 0..2."""
    value = os.environ.get('CCSUM_VERBOSITY')
    if not value:
        return 0
    try:
        return max(0, min(2, int(value)))
    except ValueError:
        return 0


class LogFormatter(logging.Formatter):
    """Verbosity-dependent format that leaves report lines untouched."""

    def format(self, record):
        if getattr(record, 'report_line', False):
            return record.getMessage()
        return super().format(record)


def setup_logging(verbosity=0):
    """Configure logging based on verbosity settings."""
    level = logging.DEBUG if verbosity >= 2 else logging.INFO

    if verbosity >= 2:
        formatter = LogFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
    elif verbosity == 1:
        formatter = LogFormatter('%(levelname)s - %(message)s')
    else:
        formatter = LogFormatter('%(message)s')

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


def resolve_color_choice(args):
    if args.no_color:
        return False
    if args.color:
        return True
    return None


def run(args) -> int:
    """Dispatch to plain emission, grouping or verification."""
    files = args.files or [STDIN_PLACEHOLDER]
    algorithm = Algorithm.from_name(args.algorithm or DEFAULT_ALGORITHM)
    reporter = Reporter(
        formatter=ColorFormatter(use_colors=resolve_color_choice(args)),
        quiet=args.quiet and args.check,
        status=args.status,
        terminator='\0' if args.zero else '\n',
    )
    logger.debug(f"ccsum {__version__}: algorithm={algorithm}, buffer={args.buffer_size}, "
                 f"files={len(files)}")

    if args.group is not None:
        checker = GroupChecker(algorithm, args.group, args.buffer_size, reporter,
                               tag=args.tag, zero=args.zero)
        summary = checker.run(files)
        if args.check:
            for group in summary.mismatched_groups:
                reporter.failed(group.key, "checksums differ within group")
            if summary.cross_validated == 0:
                reporter.warning("no groups were cross-validated")
        return summary.exit_code(check=args.check)

    if args.check:
        if args.algorithm:
            logger.debug("--algorithm is ignored in check mode; each line names its own")
        options = CheckOptions(
            ignore_missing=args.ignore_missing,
            quiet=args.quiet,
            status=args.status,
            strict=args.strict,
            warn=args.warn,
            chunk_size=args.buffer_size,
        )
        verifier = ChecksumVerifier(options, reporter)
        return verifier.verify_sources(files).exit_code

    return emit_checksums(files, algorithm, reporter, args.buffer_size,
                          tag=args.tag, zero=args.zero)


def main(argv=None):
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    setup_logging(max(args.verbose, verbosity_from_environment()))

    try:
        return run(args)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        logger.info("Operation interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Traceback:", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
