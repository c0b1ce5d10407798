#!/usr/bin/env python3
import re
from setuptools import setup


def get_version():
    """PEP 440 version from the ``MAJOR, MINOR, PATCH = ...`` line in ccsum.py."""
    with open('ccsum.py', 'r', encoding='utf-8') as f:
        match = re.search(r'^MAJOR, MINOR, PATCH = (\d+), (\d+), (\d+)', f.read(), re.MULTILINE)
    if not match:
        raise RuntimeError("version not found in ccsum.py")
    return '.'.join(match.groups())


setup(
    name="ccsum",
    version=get_version(),
    description="Checksum generation and verification with deterministic per-digest color gradients",
    py_modules=["ccsum"],
    entry_points={
        "console_scripts": [
            "ccsum=ccsum:main",
        ],
    },
    install_requires=[
        'xxhash>=3.0.0',  # XXH32 / XXH64 / XXH3 digests
        'coloraide>=2.0',  # OKLCH to sRGB conversion for digest colors
        'colorama>=0.4.6',  # ANSI escape support on Windows consoles
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
        'dev': [
            'pytest>=7.0.0',
            'black>=23.0.0',
            'flake8>=6.0.0',
            'mypy>=1.0.0',
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Archiving",
        "Topic :: Utilities",
    ],
    keywords="checksum hash verification sha256 xxhash color",
    python_requires=">=3.9",
)
