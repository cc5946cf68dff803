"""mailhooks.core.engine

What:
  Match application events against the hook registry and either run the
  selected hook commands or return their command text. Folder opens, account
  connects and message view/compose/send events run commands; charset, iconv,
  crypt, mailbox and archive lookups return text.

Why:
  Every event source (the folder browser, the network layer, the compose
  screen, the save prompt) must observe the same ordering, negation, failure
  and re-entrancy rules. Centralising dispatch here keeps those guarantees in
  one place and keeps the event sources ignorant of how hooks are stored.

How:
  - String-subject dispatch evaluates each entry's regex against the subject,
    applies negation, and skips placeholder entries without a command.
  - Message-context dispatch evaluates structured predicates through the
    pattern evaluator with a cache scoped to the pass. The cache is cleared
    after every successful command, since a command can change the settings a
    predicate depends on.
  - Triggering passes mark their category active on the registry for the
    duration of the pass and stop at the first failing command: the error is
    shown on the :class:`~mailhooks.core.channel.ErrorChannel`, the display
    pauses, and the trigger returns ``False``.
  - Account dispatch holds a :class:`ReentryGuard` while a command runs; an
    account connect caused by that command is skipped instead of recursing.

Interfaces:
  - :class:`CommandInterpreter`, :class:`PredicateEvaluator`: collaborator
    protocols.
  - :class:`ReentryGuard`, :class:`HookEngine`.

Invariants & Safety:
  - Entries run in registration order; nothing here reorders the registry.
  - The active-hook marker is restored on every exit path of a pass.
  - A failing hook command never raises out of a trigger; it only ends the
    pass.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Protocol

from ..utils.ids import new_pass_id
from ..utils.logging import JsonLogger, get_logger
from .categories import CategorySet, HookCategory, category_set
from .channel import ConsoleChannel, ErrorChannel
from .errors import HookError
from .message import MessageContext, format_command
from .registry import HookEntry, HookRegistry, PatternMatcher, RegexMatcher

MESSAGE_TRIGGERS: CategorySet = category_set(
    HookCategory.MESSAGE,
    HookCategory.REPLY,
    HookCategory.SEND,
    HookCategory.SEND2,
)

ADDRESS_LOOKUPS: CategorySet = category_set(HookCategory.SAVE, HookCategory.FCC)

PATH_LOOKUPS: CategorySet = category_set(
    HookCategory.MBOX,
    HookCategory.OPEN,
    HookCategory.APPEND,
    HookCategory.CLOSE,
)


class CommandInterpreter(Protocol):
    """Runs hook command text; raises :class:`HookError` on failure."""

    def execute(self, command: str) -> None:
        ...


class PredicateCache(Protocol):
    def clear(self) -> None:
        ...


class PredicateEvaluator(Protocol):
    """Evaluates compiled structured predicates."""

    def new_cache(self) -> PredicateCache:
        ...

    def evaluate(self, predicate: Any, context: MessageContext, cache: PredicateCache) -> bool:
        ...


class ReentryGuard:
    """One-shot flag held while a guarded hook command runs."""

    def __init__(self) -> None:
        self.engaged = False

    @contextmanager
    def hold(self) -> Iterator[None]:
        self.engaged = True
        try:
            yield
        finally:
            self.engaged = False


class HookEngine:
    """Dispatch events to the hooks stored in a :class:`HookRegistry`.

    What:
      Expose one method per event kind: triggers return ``True`` when every
      selected command ran, lookups return command text.

    Why:
      Event sources call a single object; swapping the interpreter, evaluator
      or error channel (tests, batch tools) does not change any call site.

    Attributes:
      registry: Ordered hook storage, also holding the active-hook marker.
      interpreter: Executes command text for triggering categories.
      evaluator: Evaluates structured predicates for message categories.
      channel: User-facing error display.
      account_guard: Re-entrancy guard for account-connect dispatch.
      error_pause_s: Seconds to pause after showing a hook error.
    """

    def __init__(
        self,
        registry: HookRegistry,
        interpreter: CommandInterpreter,
        evaluator: PredicateEvaluator,
        *,
        channel: Optional[ErrorChannel] = None,
        logger: Optional[JsonLogger] = None,
        error_pause_s: float = 1.0,
        formatter: Callable[[str, Optional[MessageContext]], str] = format_command,
    ) -> None:
        self.registry = registry
        self.interpreter = interpreter
        self.evaluator = evaluator
        self.channel = channel or ConsoleChannel()
        self.logger = logger or get_logger("mailhooks.engine")
        self.error_pause_s = error_pause_s
        self.formatter = formatter
        self.account_guard = ReentryGuard()

    @property
    def active(self) -> Optional[HookCategory]:
        return self.registry.active

    # -- selection -----------------------------------------------------------------

    @staticmethod
    def _string_selected(entry: HookEntry, categories: CategorySet, subject: Optional[str]) -> bool:
        if entry.command is None or entry.category not in categories:
            return False
        if not isinstance(entry.matcher, RegexMatcher):
            return False
        return entry.matcher.matches(subject) != entry.negate

    def _context_selected(
        self,
        entry: HookEntry,
        categories: CategorySet,
        context: MessageContext,
        cache: PredicateCache,
    ) -> bool:
        if entry.command is None or entry.category not in categories:
            return False
        if not isinstance(entry.matcher, PatternMatcher):
            return False
        matched = self.evaluator.evaluate(entry.matcher.predicate, context, cache)
        return bool(matched) != entry.negate

    def _execute(self, entry: HookEntry, pass_id: str) -> bool:
        try:
            self.interpreter.execute(entry.command or "")
        except HookError as exc:
            self.logger.error(
                "hook_failed",
                pass_id=pass_id,
                category=entry.category.value,
                pattern=entry.pattern,
                error=str(exc),
            )
            self.channel.error(str(exc))
            self.channel.pause(self.error_pause_s)
            return False
        self.logger.info(
            "hook_fired",
            pass_id=pass_id,
            category=entry.category.value,
            pattern=entry.pattern,
        )
        return True

    # -- triggers ------------------------------------------------------------------

    def _string_trigger(self, category: HookCategory, subject: str) -> bool:
        mask = category_set(category)
        pass_id = new_pass_id()
        with self.registry.dispatching(category):
            for entry in self.registry:
                if self._string_selected(entry, mask, subject) and not self._execute(entry, pass_id):
                    return False
        return True

    def folder_hook(self, path: str) -> bool:
        """Run every folder hook whose pattern selects ``path``."""

        return self._string_trigger(HookCategory.FOLDER, path)

    def account_hook(self, url: str, guard: Optional[ReentryGuard] = None) -> bool:
        """Run every account hook whose pattern selects ``url``.

        A call made while ``guard`` is held (that is, from inside an account
        hook command) returns immediately without running anything.
        """

        guard = guard or self.account_guard
        if guard.engaged:
            self.logger.warning("account_hook_reentry_skipped", url=url)
            return True
        mask = category_set(HookCategory.ACCOUNT)
        pass_id = new_pass_id()
        with self.registry.dispatching(HookCategory.ACCOUNT):
            for entry in self.registry:
                if not self._string_selected(entry, mask, url):
                    continue
                with guard.hold():
                    ok = self._execute(entry, pass_id)
                if not ok:
                    return False
        return True

    def message_hook(self, context: MessageContext, category: HookCategory) -> bool:
        """Run every ``category`` hook whose pattern selects ``context``.

        Args:
          context: The message being viewed, replied to, composed or sent.
          category: One of :data:`MESSAGE_TRIGGERS`.

        Raises:
          ValueError: If ``category`` is not a message trigger.
        """

        if category not in MESSAGE_TRIGGERS:
            raise ValueError(f"{category.value} is not a message trigger")
        mask = category_set(category)
        pass_id = new_pass_id()
        cache = self.evaluator.new_cache()
        with self.registry.dispatching(category):
            for entry in self.registry:
                if not self._context_selected(entry, mask, context, cache):
                    continue
                if not self._execute(entry, pass_id):
                    return False
                cache.clear()
        return True

    # -- lookups -------------------------------------------------------------------

    def _first_command(self, categories: CategorySet, subject: Optional[str]) -> Optional[str]:
        for entry in self.registry:
            if self._string_selected(entry, categories, subject):
                return entry.command
        return None

    def find_hook(self, category: HookCategory, subject: str) -> Optional[str]:
        """Return the command of the first mailbox or archive hook selecting ``subject``."""

        if category not in PATH_LOOKUPS:
            raise ValueError(f"{category.value} is not a path lookup")
        return self._first_command(category_set(category), subject)

    def charset_hook(self, charset: Optional[str]) -> Optional[str]:
        """Return the alias registered for ``charset``, if any."""

        return self._first_command(category_set(HookCategory.CHARSET), charset)

    def iconv_hook(self, charset: Optional[str]) -> Optional[str]:
        """Return the converter name registered for ``charset``, if any."""

        return self._first_command(category_set(HookCategory.ICONV), charset)

    def crypt_hook(self, mailbox: Optional[str]) -> List[str]:
        """Return the key ids of every crypt hook selecting ``mailbox``, in order."""

        mask = category_set(HookCategory.CRYPT)
        return [entry.command for entry in self.registry if self._string_selected(entry, mask, mailbox)]

    def addr_hook(self, context: MessageContext, category: HookCategory) -> Optional[str]:
        """Return the formatted command of the first save or fcc hook selecting ``context``."""

        if category not in ADDRESS_LOOKUPS:
            raise ValueError(f"{category.value} is not an address lookup")
        mask = category_set(category)
        cache = self.evaluator.new_cache()
        for entry in self.registry:
            if self._context_selected(entry, mask, context, cache):
                return self.formatter(entry.command or "", context)
        return None
