"""Test configuration: src importable, no real HTTP."""
import sys
from pathlib import Path

import pytest

# Project root on the path so `from src.xxx import` works
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """Any test reaching the real transport fails loudly instead of calling Supabase."""
    import requests

    def refuse(*args, **kwargs):
        raise AssertionError(f"unexpected HTTP call: {args[:2]}")

    monkeypatch.setattr(requests, "request", refuse)
