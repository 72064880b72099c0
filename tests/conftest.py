"""Pytest configuration.

Application code lives under the top-level `src/` package. Depending on how
pytest is invoked, the repository root may not be on `sys.path`, which breaks
imports like `from src.modules...`, so it is added here during collection.
The tests directory itself is added too so test modules can share
`factories.py`.
"""

from __future__ import annotations

import sys
from pathlib import Path


TESTS_DIR = Path(__file__).resolve().parent
REPO_ROOT = TESTS_DIR.parent

for path in (REPO_ROOT, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
