"""Pytest fixtures for unit tests of the hook core.

What:
  Make ``tests/unit`` importable for the shared fakes and provide ready-built
  settings, loggers and hook services.

Why:
  Most tests need the same wiring (settings, paths, registry, engine) with a
  silent error channel and a captured log stream. Building it once keeps the
  tests focused on behaviour.

Interfaces:
  :func:`settings`, :func:`log_stream`, :func:`logger`, :func:`channel`,
  :func:`service` (pytest fixtures).
"""

import io
import sys
from pathlib import Path

import pytest

from mailhooks.config.schema import MailSettings
from mailhooks.core.service import HookService
from mailhooks.utils.logging import JsonLogger

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import SilentChannel


@pytest.fixture
def settings() -> MailSettings:
    """Mail settings rooted at a fixed, non-existent home directory."""

    return MailSettings(
        folder="/home/tester/Mail",
        spoolfile="/var/mail/tester",
        mbox="/home/tester/Mail/received",
        record="=sent",
        home="/home/tester",
        from_address="tester@example.com",
    )


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> JsonLogger:
    return JsonLogger(stream=log_stream, component="mailhooks-tests")


@pytest.fixture
def channel() -> SilentChannel:
    return SilentChannel()


@pytest.fixture
def service(settings: MailSettings, channel: SilentChannel, logger: JsonLogger) -> HookService:
    """A fully wired hook service using the default interpreter and evaluator."""

    return HookService(settings, channel=channel, logger=logger, error_pause_s=0.5)
