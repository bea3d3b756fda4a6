"""Shared fixtures for preflight_core tests."""

from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep host PREFLIGHT_* variables and any local .env file out of tests."""
    for key in list(os.environ):
        if key.startswith("PREFLIGHT_") or key == "SERVER_SOFTWARE":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
