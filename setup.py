#!/usr/bin/env python3
# =============================================================================
#  livexpr setup.py
#
#  The version lives in livexpr/__init__.py; dependencies live in
#  requirements.txt.  This file wires both into setuptools.
#
#  For development:
#      pip install -e ".[dev]"
#      python -m pytest
# =============================================================================

from __future__ import annotations

import re
from pathlib import Path

from setuptools import setup, find_packages

# ---------------------------------------------------------------------------
#  Read version from livexpr/__init__.py so we have a single source of truth.
# ---------------------------------------------------------------------------
_HERE = Path(__file__).resolve().parent


def _read_version() -> str:
    """Extract ``__version__`` from livexpr/__init__.py without importing it."""
    init_py = _HERE / "livexpr" / "__init__.py"
    text = init_py.read_text(encoding="utf-8")
    match = re.search(r'^__version__(?::\s*str)?\s*=\s*"([^"]+)"', text, re.MULTILINE)
    if match:
        return match.group(1)
    return "0.0.0"


def _read_long_description() -> str:
    """Read README.md for the long description."""
    readme = _HERE / "README.md"
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


def _read_requirements() -> list[str]:
    """Read requirements.txt if it exists."""
    req_file = _HERE / "requirements.txt"
    if req_file.exists():
        lines = req_file.read_text(encoding="utf-8").splitlines()
        return [
            ln.strip()
            for ln in lines
            if ln.strip() and not ln.strip().startswith("#")
        ]
    return []


setup(
    name="livexpr",
    version=_read_version(),
    description=(
        "Compile t/u/v formulas to postfix 64-bit instruction words "
        "and hot-swap them into a running evaluator."
    ),
    long_description=_read_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    author="livexpr contributors",
    python_requires=">=3.10",
    packages=find_packages(
        include=[
            "livexpr",
            "livexpr.*",
        ],
        exclude=[
            "tests",
            "tests.*",
        ],
    ),
    install_requires=_read_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "ruff>=0.4",
            "mypy>=1.10",
            "black>=24.0",
            "isort>=5.13",
        ],
    },

    # setuptools generates the wrapper; calls livexpr.main:main.
    entry_points={
        "console_scripts": [
            "livexpr=livexpr.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Compilers",
        "Topic :: Multimedia :: Graphics",
    ],
    keywords=[
        "expression",
        "compiler",
        "postfix",
        "live-coding",
        "shader",
    ],
    zip_safe=False,
)
