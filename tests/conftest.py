from __future__ import annotations

import sys
from pathlib import Path


def pytest_configure(config) -> None:  # pragma: no cover - pytest hook
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if src_path.exists() and str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))
    tests_path = Path(__file__).resolve().parent
    if str(tests_path) not in sys.path:
        sys.path.insert(0, str(tests_path))
