"""Test doubles for the hook engine collaborators.

What:
  Provide a command interpreter that records what it is asked to run, an error
  channel that records instead of printing and sleeping, and helpers to build
  an engine around them.

Why:
  Engine tests assert on ordering, failure handling and re-entrancy. Recording
  doubles make those observable without depending on the rc interpreter.

Interfaces:
  :class:`RecordingInterpreter`, :class:`SilentChannel`, :class:`CountingEvaluator`,
  :func:`build_engine`, :func:`log_events`.
"""

from __future__ import annotations

import io
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from mailhooks.config.schema import MailSettings
from mailhooks.core.engine import HookEngine
from mailhooks.core.errors import CommandError
from mailhooks.core.normalize import Normalizer
from mailhooks.core.patterns import PatternCache, PatternEvaluator
from mailhooks.core.registry import HookRegistry
from mailhooks.utils.logging import JsonLogger
from mailhooks.utils.paths import MailboxPaths


class RecordingInterpreter:
    """Record executed commands; fail the ones listed in ``failing``."""

    def __init__(
        self,
        failing: Iterable[str] = (),
        on_execute: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.commands: List[str] = []
        self.failing = set(failing)
        self.on_execute = on_execute

    def execute(self, command: str) -> None:
        self.commands.append(command)
        if command in self.failing:
            raise CommandError(f"{command}: failed")
        if self.on_execute is not None:
            self.on_execute(command)


class SilentChannel:
    """Error channel keeping messages and pauses for assertions."""

    def __init__(self) -> None:
        self.errors: List[str] = []
        self.pauses: List[float] = []

    def error(self, text: str) -> None:
        self.errors.append(text)

    def pause(self, seconds: float) -> None:
        self.pauses.append(seconds)


class CountingCache(PatternCache):
    """Pattern cache that counts how often it is cleared."""

    def __init__(self) -> None:
        super().__init__()
        self.clears = 0

    def clear(self) -> None:
        self.clears += 1
        super().clear()


class CountingEvaluator(PatternEvaluator):
    """Pattern evaluator keeping every cache it hands out."""

    def __init__(self, settings: MailSettings) -> None:
        super().__init__(settings)
        self.caches: List[CountingCache] = []

    def new_cache(self) -> CountingCache:
        cache = CountingCache()
        self.caches.append(cache)
        return cache


def build_engine(
    settings: MailSettings,
    interpreter: Any,
    channel: SilentChannel,
    logger: JsonLogger,
    evaluator: Any = None,
) -> Tuple[HookRegistry, HookEngine, MailboxPaths]:
    """Wire a registry and engine around ``interpreter``."""

    paths = MailboxPaths(settings)
    registry = HookRegistry(Normalizer(settings, paths), logger=logger)
    engine = HookEngine(
        registry,
        interpreter,
        evaluator or PatternEvaluator(settings),
        channel=channel,
        logger=logger,
        error_pause_s=0.25,
    )
    return registry, engine, paths


def log_events(stream: io.StringIO) -> List[Dict[str, Any]]:
    """Parse every JSON line written to ``stream``."""

    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]
