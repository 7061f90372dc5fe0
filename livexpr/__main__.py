#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
livexpr/__main__.py
===================

Entry point for ``python -m livexpr``.

Pipeline
--------
::

    formula text
        │
        ▼
    ┌──────────┐
    │  Parser   │   recursive descent → expression tree
    └────┬─────┘
         │
         ▼
    ┌──────────┐
    │  Encoder  │   postorder walk → 64-bit instruction words
    └────┬─────┘
         │
         ▼
    ┌──────────────┐
    │  ProgramSlot  │   last write wins, drained once per frame
    └────┬─────────┘
         │
         ▼
    evaluator.install_program(...)

See :mod:`livexpr.main` for the subcommands.
"""

from __future__ import annotations

import sys

from livexpr.main import main

if __name__ == "__main__":
    sys.exit(main())
