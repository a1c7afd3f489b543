"""Pytest configuration for pnmlsort tests"""

import sys
sys.path.insert(0, "src")

from pathlib import Path

import pytest


@pytest.fixture
def write_pnml(tmp_path):
    """Factory writing a PNML string to a file under tmp_path.

    Returns the path of the written file. The file name defaults to
    model.pnml; pass another name to create several documents.
    """
    def _write(content: str, name: str = "model.pnml") -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every PNMLSORT_* variable from the environment."""
    import os
    for key in list(os.environ):
        if key.startswith("PNMLSORT_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
