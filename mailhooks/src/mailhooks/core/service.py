"""Assemble the hook registry, interpreter and engine from configuration.

What:
  Build one ready-to-use hook subsystem from a
  :class:`~mailhooks.config.schema.RuntimeConfig`: private mutable settings,
  mailbox paths, normaliser, registry, rc interpreter, pattern evaluator and
  engine, with the configured rc files already replayed.

Why:
  The engine, interpreter and registry reference each other: the interpreter
  registers hooks into the registry, the engine executes commands through the
  interpreter, and a ``set folder=imaps://...`` executed by the interpreter
  must trigger account dispatch on the engine. Wiring the cycle in one place
  keeps event sources and the CLI free of construction details.

How:
  :meth:`HookService.from_config` deep-copies ``runtime.mail`` so ``set``
  commands never mutate the cached configuration, then wires the components
  and sources every ``hooks.rc_files`` entry in order. The thin event methods
  translate application events (open a folder, compose, save) into engine
  calls.

Interfaces:
  :class:`HookService`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Union

from ..config.schema import MailSettings, RuntimeConfig
from ..utils.logging import JsonLogger
from ..utils.paths import MailboxPaths
from .categories import HookCategory
from .channel import ErrorChannel
from .engine import HookEngine
from .interpreter import RcInterpreter
from .message import MessageContext
from .normalize import Normalizer
from .patterns import PatternEvaluator
from .registry import HookRegistry
from .resolvers import resolve_copy_destination, resolve_save_destination


class HookService:
    """Facade over a fully wired hook subsystem."""

    def __init__(
        self,
        settings: MailSettings,
        *,
        channel: Optional[ErrorChannel] = None,
        logger: Optional[JsonLogger] = None,
        error_pause_s: float = 1.0,
    ) -> None:
        self.settings = settings
        self.logger = logger or JsonLogger()
        self.paths = MailboxPaths(settings)
        self.normalizer = Normalizer(settings, self.paths)
        self.registry = HookRegistry(self.normalizer, logger=self.logger)
        self.interpreter = RcInterpreter(settings, self.registry, self.paths, logger=self.logger)
        self.evaluator = PatternEvaluator(settings)
        self.engine = HookEngine(
            self.registry,
            self.interpreter,
            self.evaluator,
            channel=channel,
            logger=self.logger,
            error_pause_s=error_pause_s,
        )
        self.interpreter.on_remote_mailbox = self.connect

    @classmethod
    def from_config(
        cls,
        runtime: RuntimeConfig,
        *,
        channel: Optional[ErrorChannel] = None,
        log_stream: Any = None,
    ) -> "HookService":
        """Build a service from ``runtime`` and replay its rc files.

        Raises:
          CommandError: ``FILE:LINE: message`` for the first failing rc line.
        """

        logger = JsonLogger(component=runtime.logging.component, enabled=runtime.logging.enabled)
        if log_stream is not None:
            logger.stream = log_stream
        service = cls(
            runtime.mail.model_copy(deep=True),
            channel=channel,
            logger=logger,
            error_pause_s=runtime.hooks.error_pause_s,
        )
        for rc_file in runtime.hooks.rc_files:
            service.source(rc_file)
        return service

    # -- configuration -------------------------------------------------------------

    def source(self, path: Union[str, Path]) -> int:
        """Replay an rc file; ``~`` and mailbox shortcuts are expanded first."""

        return self.interpreter.source_file(Path(self.paths.expand(str(path))))

    def configure(self, line: str) -> None:
        """Execute one rc line, raising on failure."""

        self.interpreter.execute(line)

    # -- events --------------------------------------------------------------------

    def open_folder(self, path: str) -> bool:
        """Make ``path`` the current folder and run its folder hooks."""

        self.paths.enter_folder(path)
        return self.engine.folder_hook(path)

    def connect(self, url: str) -> bool:
        """Run the account hooks for a connection to ``url``."""

        return self.engine.account_hook(url)

    def view(self, context: MessageContext) -> bool:
        return self.engine.message_hook(context, HookCategory.MESSAGE)

    def reply(self, context: MessageContext) -> bool:
        return self.engine.message_hook(context, HookCategory.REPLY)

    def compose(self, context: MessageContext) -> bool:
        """Run send hooks, then send2 hooks, as a compose screen does on entry."""

        return self.engine.message_hook(context, HookCategory.SEND) and self.engine.message_hook(
            context, HookCategory.SEND2
        )

    # -- lookups -------------------------------------------------------------------

    def save_destination(self, context: MessageContext) -> str:
        return resolve_save_destination(self.engine, context, self.paths)

    def copy_destination(self, context: MessageContext) -> str:
        return resolve_copy_destination(self.engine, context, self.paths)

    def mbox_destination(self, path: str) -> Optional[str]:
        """Return where read mail from ``path`` is moved, if an mbox hook says so."""

        return self.engine.find_hook(HookCategory.MBOX, path)

    def charset_alias(self, charset: str) -> Optional[str]:
        return self.engine.charset_hook(charset)

    def iconv_name(self, charset: str) -> Optional[str]:
        return self.engine.iconv_hook(charset)

    def crypt_keys(self, recipient: str) -> List[str]:
        return self.engine.crypt_hook(recipient)
