"""Ordered registry of hook entries.

What:
  Store every registered hook in registration order, apply the per-category
  mutation rules when a rule is registered again, and remove hooks by category
  or wholesale.

Why:
  Registration order is execution order: users rely on a catch-all ``.`` rule
  placed first and more specific rules overriding it later. The registry is
  therefore append-only except for two sanctioned mutations: single-command
  categories overwrite the command of an existing rule in place, and removal
  drops entries while keeping the survivors in order.

How:
  - :meth:`HookRegistry.register` normalises the raw text, compiles the matcher
    the category calls for (structured predicate or plain regex), then scans
    for an entry with the same category, negation and pattern text.
  - Multi-command categories keep one entry per distinct command; exact
    duplicates are ignored. Single-command categories overwrite in place.
  - :meth:`HookRegistry.dispatching` records the active category for the
    duration of a dispatch pass; :meth:`HookRegistry.unregister` consults it so
    a hook command cannot remove the rules of the pass it is running in.

Interfaces:
  :class:`RegexMatcher`, :class:`PatternMatcher`, :class:`HookEntry`,
  :class:`HookRegistry`, :data:`ALL`.

Invariants & Safety:
  - An entry's category, matcher kind and negation never change after creation.
  - A failed registration or removal leaves the registry untouched.
  - Iteration always walks a snapshot, so hook commands that register or
    remove hooks never disturb a pass in progress.
"""
from __future__ import annotations

import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Pattern, Tuple, Union

from ..utils.logging import JsonLogger, get_logger
from ..utils.tokens import TokenStream
from .categories import (
    CASE_INSENSITIVE,
    ENVELOPE_ONLY,
    FULL_PATTERN,
    MULTI_COMMAND,
    HookCategory,
    categories_for_command,
)
from .errors import HookCompileError, HookRemovalError
from .normalize import Normalizer, parse_hook_args
from .patterns import compile_pattern

ALL = "*"
"""Removal target meaning every registered hook."""

_TOO_DEEP = "pattern too deeply nested"

PatternCompiler = Callable[[str, bool], Any]


@dataclass(frozen=True)
class RegexMatcher:
    """Plain regular expression plus the source text it was compiled from."""

    source: str
    regex: Pattern[str]

    def matches(self, subject: Optional[str]) -> bool:
        return subject is not None and self.regex.search(subject) is not None


@dataclass(frozen=True)
class PatternMatcher:
    """Opaque structured predicate plus its (expanded) source text."""

    source: str
    predicate: Any


Matcher = Union[RegexMatcher, PatternMatcher]


def _quote(text: str) -> str:
    if text and not any(ch.isspace() or ch in "\"'\\;#" for ch in text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(eq=False)
class HookEntry:
    """One registered rule; ``command`` is ``None`` for placeholder entries."""

    category: HookCategory
    matcher: Matcher
    negate: bool = False
    command: Optional[str] = None

    @property
    def pattern(self) -> str:
        return self.matcher.source

    def describe(self) -> str:
        """Render the entry back as an rc line."""

        bang = "!" if self.negate else ""
        return f"{self.category.value} {bang}{_quote(self.pattern)} {_quote(self.command or '')}"


class HookRegistry:
    """Process-lifetime, ordered collection of :class:`HookEntry` objects."""

    def __init__(
        self,
        normalizer: Normalizer,
        *,
        compiler: PatternCompiler = compile_pattern,
        logger: Optional[JsonLogger] = None,
    ) -> None:
        self.normalizer = normalizer
        self.compiler = compiler
        self.logger = logger or get_logger("mailhooks.registry")
        self.active: Optional[HookCategory] = None
        self._entries: List[HookEntry] = []

    @property
    def entries(self) -> Tuple[HookEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HookEntry]:
        return iter(self.entries)

    @contextmanager
    def dispatching(self, category: HookCategory) -> Iterator[None]:
        """Mark ``category`` active for the duration of a dispatch pass."""

        previous = self.active
        self.active = category
        try:
            yield
        finally:
            self.active = previous

    def _compile(self, category: HookCategory, pattern: str) -> Matcher:
        if category in FULL_PATTERN:
            try:
                predicate = self.compiler(pattern, category not in ENVELOPE_ONLY)
            except (ValueError, re.error) as exc:
                raise HookCompileError(str(exc)) from exc
            except RecursionError as exc:
                raise HookCompileError(_TOO_DEEP) from exc
            return PatternMatcher(source=pattern, predicate=predicate)
        flags = re.I if category in CASE_INSENSITIVE else 0
        try:
            return RegexMatcher(source=pattern, regex=re.compile(pattern, flags))
        except re.error as exc:
            raise HookCompileError(str(exc)) from exc
        except RecursionError as exc:
            raise HookCompileError(_TOO_DEEP) from exc

    def register(
        self,
        category: HookCategory,
        pattern: str,
        command: str,
        negate: bool = False,
    ) -> Optional[HookEntry]:
        """Normalise, compile and store one rule.

        What:
          Install ``command`` to run (or be returned) when ``pattern`` selects a
          subject of ``category``.

        How:
          Normalise via :class:`~mailhooks.core.normalize.Normalizer`, compile
          the matcher, then apply the duplicate rules: an identical
          multi-command rule is ignored, a single-command rule with the same
          pattern gets its command overwritten in place, anything else is
          appended.

        Returns:
          The stored or updated entry, or ``None`` when the registration was an
          exact duplicate.

        Raises:
          HookNormalizationError: From the normaliser.
          HookCompileError: With the compiler's diagnostic text.
        """

        pattern, command = self.normalizer.normalize(category, pattern, command)
        matcher = self._compile(category, pattern)
        same_key = [
            entry
            for entry in self._entries
            if entry.category is category and entry.negate == negate and entry.pattern == pattern
        ]
        if same_key and category in MULTI_COMMAND:
            if any(entry.command == command for entry in same_key):
                self.logger.info("hook_duplicate_ignored", category=category.value, pattern=pattern)
                return None
        elif same_key:
            entry = same_key[0]
            entry.command = command
            self.logger.info("hook_updated", category=category.value, pattern=pattern)
            return entry

        entry = HookEntry(category=category, matcher=matcher, negate=negate, command=command)
        self._entries.append(entry)
        self.logger.info(
            "hook_registered",
            category=category.value,
            pattern=pattern,
            negate=negate,
            position=len(self._entries) - 1,
        )
        return entry

    def register_line(self, categories: Iterable[HookCategory], stream: TokenStream) -> List[HookEntry]:
        """Parse ``[!]pattern command`` once and register it for each category."""

        categories = tuple(categories)
        pattern, command, negate = parse_hook_args(stream, categories)
        stored = []
        for category in categories:
            entry = self.register(category, pattern, command, negate)
            if entry is not None:
                stored.append(entry)
        return stored

    def unregister(self, target: Union[str, HookCategory, Iterable[HookCategory]]) -> int:
        """Remove every hook of ``target``, or every hook for :data:`ALL`.

        ``target`` may also be an rc command name such as ``"fcc-save-hook"``.

        Returns:
          Number of entries removed.

        Raises:
          HookRemovalError: When removing everything from inside any dispatch
            pass, or removing the category whose pass is running, or
            when a command name is not a hook type.
        """

        if target == ALL:
            if self.active is not None:
                raise HookRemovalError("unhook: can't do unhook * from within a hook")
            removed = len(self._entries)
            self._entries = []
            label = ALL
        else:
            targets = self._removal_targets(target)
            if self.active in targets:
                name = self.active.value
                raise HookRemovalError(f"unhook: can't delete a {name} from within a {name}")
            survivors = [entry for entry in self._entries if entry.category not in targets]
            removed = len(self._entries) - len(survivors)
            self._entries = survivors
            label = ",".join(sorted(category.value for category in targets))
        self.logger.info("hooks_removed", target=label, removed=removed)
        return removed

    @staticmethod
    def _removal_targets(target: Union[str, HookCategory, Iterable[HookCategory]]) -> frozenset:
        if isinstance(target, HookCategory):
            return frozenset([target])
        if isinstance(target, str):
            categories = categories_for_command(target)
            if categories is None:
                raise HookRemovalError(f"unhook: unknown hook type: {target}")
            return frozenset(categories)
        return frozenset(target)
