"""Pytest configuration shared by the unit and end-to-end suites.

What:
  Establish project import paths and define fixtures that apply a canned runtime
  configuration to every test.

Why:
  The tests exercise the real ``mailhooks`` package from the source tree. To
  ensure imports resolve there rather than to an installed wheel, we prepend
  the ``mailhooks/src`` directory to ``sys.path``. The autouse fixture keeps
  configuration state deterministic between tests.

How:
  Compute the project root relative to the file, inject the source directory into
  ``sys.path`` when available, and define :func:`runtime_config` to manage the
  ``MAILHOOKS_CONFIG_PATH`` environment variable while resetting the shared
  runtime cache before and after each test.

Interfaces:
  :func:`runtime_config` (pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailhooks" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailhooks.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test.

    Sets ``MAILHOOKS_CONFIG_PATH`` to the repository fixture and clears the
    runtime configuration cache both before and after each test, since the
    loader caches process-wide.
    """

    monkeypatch.setenv("MAILHOOKS_CONFIG_PATH", str(CONFIG_PATH))
    reset_runtime_config()
    try:
        yield
    finally:
        reset_runtime_config()
