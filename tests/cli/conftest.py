from __future__ import annotations

import textwrap
from pathlib import Path

import pytest


def _normalize_code(code: str) -> str:
    code = textwrap.dedent(code).lstrip("\n")
    if code and not code.endswith("\n"):
        code += "\n"
    return code


@pytest.fixture
def write_source(tmp_path):
    """Write a snippet to a file under tmp_path and return its path."""

    def _write(code: str, name: str = "snippet.py") -> Path:
        path = tmp_path / name
        path.write_text(_normalize_code(code), encoding="utf-8")
        return path

    return _write
