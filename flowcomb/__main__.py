"""
flowcomb/__main__.py
====================

Entry point for ``python -m flowcomb``.

Pipeline
--------
    annotated source (S-expression host tree)
        │
        ▼
    ┌──────────┐
    │  Parser   │   sexpdata → host tree
    └────┬─────┘
         │
         ▼
    ┌──────────────┐
    │  Translator   │   aliases/interfaces → tcomb definitions,
    │               │   functions → assertions
    └────┬─────────┘
         │
         ▼
    ┌──────────────┐
    │  Code         │   host tree → JavaScript
    │  Generator    │
    └────┬─────────┘
         │
         ▼
    <stem>.js
"""

import sys

from flowcomb.main import main

if __name__ == "__main__":
    sys.exit(main())
