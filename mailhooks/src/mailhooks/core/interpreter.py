"""Line interpreter for rc configuration commands.

What:
  Execute configuration lines such as ``set record=+sent``,
  ``folder-hook =work 'set from=me@work.example'`` or ``unhook send-hook``.
  This is the interpreter hook commands run through, and the one that replays
  rc files at start-up.

Why:
  Hook commands are arbitrary configuration: they change settings, register
  further hooks, or remove hooks. Running them through the same interpreter as
  the rc files keeps one set of rules for quoting, validation and errors.

How:
  - A :class:`~mailhooks.utils.tokens.TokenStream` walks the line; ``;``
    separates commands and ``#`` starts a comment.
  - ``set`` family commands assign through the assignment-validated
    :class:`~mailhooks.config.schema.MailSettings`, so bad values fail with the
    schema's message.
  - Hook commands delegate to :meth:`HookRegistry.register_line`.
  - Setting a mailbox variable to a remote URL calls ``on_remote_mailbox``; the
    hook service wires it to account-connect dispatch.

Interfaces:
  :class:`RcInterpreter`.

Invariants & Safety:
  - Every failure surfaces as a :class:`~mailhooks.core.errors.HookError`
    subclass carrying display text; nothing else escapes :meth:`RcInterpreter.execute`.
  - ``source`` nesting is bounded by :data:`MAX_SOURCE_DEPTH`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as _PydanticValidationError

from ..config.schema import MailSettings
from ..utils.ids import checksum
from ..utils.logging import JsonLogger, get_logger
from ..utils.paths import MailboxPaths, is_remote_url
from ..utils.tokens import TokenStream
from .categories import categories_for_command
from .errors import CommandError, HookError
from .registry import ALL, HookRegistry

MAX_SOURCE_DEPTH = 16

_VARIABLE_ALIASES = {"from": "from_address"}
_MAILBOX_VARIABLES = frozenset({"folder", "spoolfile", "record", "mbox"})


class RcInterpreter:
    """Execute rc command lines against the mail settings and hook registry."""

    def __init__(
        self,
        settings: MailSettings,
        registry: HookRegistry,
        paths: MailboxPaths,
        *,
        logger: Optional[JsonLogger] = None,
        on_remote_mailbox: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.paths = paths
        self.logger = logger or get_logger("mailhooks.interpreter")
        self.on_remote_mailbox = on_remote_mailbox
        self._defaults = settings.model_copy(deep=True)
        self._depth = 0
        self._commands: Dict[str, Callable[[TokenStream], None]] = {
            "set": lambda stream: self._assign(stream, "set"),
            "unset": lambda stream: self._assign(stream, "unset"),
            "toggle": lambda stream: self._assign(stream, "toggle"),
            "reset": lambda stream: self._assign(stream, "reset"),
            "alternates": self._alternates,
            "unalternates": self._unalternates,
            "unhook": self._unhook,
            "source": self._source,
        }

    def execute(self, command: str) -> None:
        """Run every ``;``-separated command of ``command``.

        Raises:
          HookError: The first failure, with display text.
        """

        stream = TokenStream(command)
        while True:
            if stream.more_args():
                name = stream.extract()
                handler = self._commands.get(name)
                if handler is not None:
                    handler(stream)
                else:
                    categories = categories_for_command(name)
                    if categories is None:
                        raise CommandError(f"{name}: unknown command")
                    self.registry.register_line(categories, stream)
                if stream.more_args():
                    raise CommandError(f"{name}: too many arguments")
            if not stream.end_command():
                break

    # -- variables -----------------------------------------------------------------

    def _field(self, name: str) -> str:
        field = _VARIABLE_ALIASES.get(name, name)
        if field not in MailSettings.model_fields:
            raise CommandError(f"{name}: unknown variable")
        return field

    def _is_bool(self, field: str) -> bool:
        return MailSettings.model_fields[field].annotation in (bool, "bool")

    def _write(self, name: str, field: str, value: Any) -> None:
        try:
            setattr(self.settings, field, value)
        except _PydanticValidationError as exc:
            detail = exc.errors()[0].get("msg", str(exc))
            raise CommandError(f"{name}: invalid value {value!r}: {detail}") from exc
        if field in _MAILBOX_VARIABLES and is_remote_url(value) and self.on_remote_mailbox:
            self.on_remote_mailbox(value)

    def _assign(self, stream: TokenStream, mode: str) -> None:
        if not stream.more_args():
            raise CommandError(f"{mode}: too few arguments")
        while stream.more_args():
            name = stream.extract(stop_at_equal=True)
            value: Optional[str] = None
            if stream.peek() == "=":
                if mode != "set":
                    raise CommandError(f"{mode}: {name}: value not allowed")
                stream.advance()
                value = stream.extract()
            self._assign_one(name, value, mode)

    def _assign_one(self, name: str, value: Optional[str], mode: str) -> None:
        if mode == "set" and value is None:
            if name.startswith("no") and name[2:] and self._field_or_none(name[2:]):
                name, mode = name[2:], "unset"
            elif name.startswith("inv") and name[3:] and self._field_or_none(name[3:]):
                name, mode = name[3:], "toggle"
        field = self._field(name)
        is_bool = self._is_bool(field)
        if mode == "reset":
            self._write(name, field, getattr(self._defaults, field))
        elif mode == "toggle":
            if not is_bool:
                raise CommandError(f"toggle: {name} is not a boolean variable")
            self._write(name, field, not getattr(self.settings, field))
        elif mode == "unset":
            if is_bool:
                self._write(name, field, False)
            elif field == "alternates":
                self._write(name, field, [])
            else:
                self._write(name, field, None)
        elif value is None:
            if not is_bool:
                raise CommandError(f"set: {name} needs a value")
            self._write(name, field, True)
        elif field == "alternates":
            self._write(name, field, [value])
        else:
            self._write(name, field, value)

    def _field_or_none(self, name: str) -> Optional[str]:
        field = _VARIABLE_ALIASES.get(name, name)
        return field if field in MailSettings.model_fields else None

    # -- identity ------------------------------------------------------------------

    def _alternates(self, stream: TokenStream) -> None:
        if not stream.more_args():
            raise CommandError("alternates: too few arguments")
        patterns: List[str] = list(self.settings.alternates)
        while stream.more_args():
            pattern = stream.extract()
            if pattern not in patterns:
                patterns.append(pattern)
        self._write("alternates", "alternates", patterns)

    def _unalternates(self, stream: TokenStream) -> None:
        if not stream.more_args():
            raise CommandError("unalternates: too few arguments")
        patterns: List[str] = list(self.settings.alternates)
        while stream.more_args():
            pattern = stream.extract()
            patterns = [] if pattern == ALL else [p for p in patterns if p != pattern]
        self._write("unalternates", "alternates", patterns)

    # -- hooks ---------------------------------------------------------------------

    def _unhook(self, stream: TokenStream) -> None:
        if not stream.more_args():
            raise CommandError("unhook: too few arguments")
        while stream.more_args():
            name = stream.extract()
            if name == ALL:
                self.registry.unregister(ALL)
                continue
            categories = categories_for_command(name)
            if categories is None:
                raise CommandError(f"unhook: unknown hook type: {name}")
            self.registry.unregister(categories)

    # -- files ---------------------------------------------------------------------

    def _source(self, stream: TokenStream) -> None:
        if not stream.more_args():
            raise CommandError("source: too few arguments")
        while stream.more_args():
            self.source_file(Path(self.paths.expand(stream.extract())))

    def source_file(self, path: Path) -> int:
        """Replay ``path`` line by line; return the number of lines executed.

        Lines ending in a backslash continue on the next line. The first failing
        line aborts the replay with ``FILE:LINE: message``.
        """

        if self._depth >= MAX_SOURCE_DEPTH:
            raise CommandError(f"source: recursion limit reached at {path}")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise CommandError(f"source: unable to read {path}: {exc.strerror or exc}") from exc
        self.logger.info("rc_sourced", path=str(path), checksum=checksum(data))
        lines: List[Tuple[int, str]] = []
        pending = ""
        start = 0
        for lineno, raw in enumerate(data.decode("utf-8", errors="replace").splitlines(), start=1):
            if not pending:
                start = lineno
            if raw.endswith("\\") and not raw.endswith("\\\\"):
                pending += raw[:-1]
                continue
            lines.append((start, pending + raw))
            pending = ""
        if pending:
            lines.append((start, pending))

        self._depth += 1
        try:
            for start, line in lines:
                try:
                    self.execute(line)
                except HookError as exc:
                    raise CommandError(f"{path}:{start}: {exc}") from exc
        finally:
            self._depth -= 1
        return len(lines)
