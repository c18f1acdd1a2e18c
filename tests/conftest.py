"""
Pytest configuration and fixtures for the ownership model tests.

Provides reusable fixtures for:
- A fresh diagnostics heap per test
- Recording destructor hook calls
- Running the demo driver as a subprocess
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ownership import RcDiagnostics, set_diagnostics


class DropRecorder:
    """Destructor hook that remembers what it was called with.

    Payloads with a .value attribute (tree and cycle nodes) are recorded by
    that value, anything else as-is.
    """

    def __init__(self):
        self.values = []

    def __call__(self, payload):
        self.values.append(getattr(payload, 'value', payload))


@pytest.fixture(autouse=True)
def diagnostics():
    """Isolate every test on its own heap."""
    fresh = RcDiagnostics()
    previous = set_diagnostics(fresh)
    yield fresh
    set_diagnostics(previous)


@pytest.fixture
def drops():
    return DropRecorder()


@pytest.fixture
def project_root():
    """Path to project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def run_demo(project_root, tmp_path):
    """
    Fixture that returns a function running ownership_demo.py.

    Usage:
        result = run_demo("tree", "--heap")
        assert result.returncode == 0
        assert "Total blocks: 0" in result.stdout
    """
    def _run(*args: str) -> subprocess.CompletedProcess:
        env = dict(os.environ)
        env.pop("OWNERSHIP_TRACE", None)
        script = os.path.join(project_root, "ownership_demo.py")
        return subprocess.run(
            [sys.executable, script, *args],
            capture_output=True,
            text=True,
            cwd=tmp_path,
            env=env,
        )

    return _run
