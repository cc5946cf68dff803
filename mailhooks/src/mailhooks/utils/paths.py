"""Mailbox path shortcuts, display prettifying, and address-derived names.

What:
  Expand the mailbox shortcuts users write in hooks (``=work``, ``!``, ``^``),
  turn absolute paths back into their short display form, derive mailbox names
  from addresses, and answer whether a mailbox can be written to.

Why:
  Hook patterns for mailbox categories are regular expressions over expanded
  paths, and save/copy destinations are stored expanded. Keeping every rule for
  the shortcuts in one place means registration, resolvers, and the CLI agree
  on what ``=work`` means.

How:
  :class:`MailboxPaths` reads the live :class:`~mailhooks.config.schema.MailSettings`
  on every call, so a ``set folder=...`` issued by a hook command is honoured
  by the next expansion. It also tracks the current and previous folder, which
  the ``^`` and ``-`` shortcuts refer to.

Interfaces:
  :class:`MailboxPaths`, :func:`concat_path`, :func:`is_remote_url`.

Invariants & Safety:
  - In regex mode only the expanded prefix is escaped; the user-written tail
    keeps its regex meaning.
  - ``@alias`` shortcuts are left untouched because alias lookup is not
    available at this layer.
"""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

from ..config.schema import MailSettings

REMOTE_SCHEMES = ("imap", "imaps", "pop", "pops", "smtp", "smtps")

_URL_RE = re.compile(r"^(?P<scheme>[a-z][a-z0-9+.-]*)://", re.I)
_MAX_EXPANSIONS = 8


def is_remote_url(path: Optional[str]) -> bool:
    """Return ``True`` when ``path`` names a remote mailbox or server."""

    if not path:
        return False
    match = _URL_RE.match(path)
    return bool(match) and match.group("scheme").lower() in REMOTE_SCHEMES


def concat_path(directory: str, name: str) -> str:
    """Join ``directory`` and ``name`` with exactly one separator."""

    if not directory:
        return name
    if directory.endswith("/"):
        return f"{directory}{name}"
    return f"{directory}/{name}"


class MailboxPaths:
    """Shortcut expansion bound to the live mail settings."""

    def __init__(self, settings: MailSettings) -> None:
        self.settings = settings
        self.current_folder: Optional[str] = None
        self.last_folder: Optional[str] = None

    def enter_folder(self, path: str) -> None:
        """Record ``path`` as the current folder, remembering the previous one."""

        self.last_folder = self.current_folder
        self.current_folder = path

    @property
    def home(self) -> str:
        return self.settings.home or str(Path.home())

    def _folder_prefix(self) -> str:
        folder = self.settings.folder
        if not folder:
            return ""
        folder = self._expand_home(folder)
        return folder if folder.endswith("/") else f"{folder}/"

    def _expand_home(self, value: str) -> str:
        if value == "~" or value.startswith("~/"):
            return self.home + value[1:]
        return value

    def expand(self, path: str, *, regex: bool = False) -> str:
        """Expand a leading mailbox shortcut in ``path``.

        Args:
          path: Raw path or pattern text as written by the user.
          regex: Escape the substituted prefix so the result is a regular
            expression matching that literal location.

        Returns:
          The expanded text. A shortcut whose target is unset expands to the
          empty string, which lets callers detect the mistake.
        """

        if not path:
            return path
        return self._expand(path, regex, _MAX_EXPANSIONS)

    def _expand(self, path: str, regex: bool, budget: int) -> str:
        settings = self.settings
        head: Optional[str] = None
        tail = path
        lead = path[0]
        if lead == "~" and (len(path) == 1 or path[1] == "/"):
            head, tail = self.home, path[1:]
        elif lead in "=+":
            head, tail = self._folder_prefix(), path[1:]
        elif lead == "!":
            if path.startswith("!!"):
                head, tail = self.last_folder or "", path[2:]
            else:
                head, tail = settings.spoolfile or "", path[1:]
        elif lead == "-" and (len(path) == 1 or path[1] == "/"):
            head, tail = self.last_folder or "", path[1:]
        elif lead == ">":
            head, tail = settings.mbox or "", path[1:]
        elif lead == "<":
            head, tail = settings.record or "", path[1:]
        elif lead == "^":
            head, tail = self.current_folder or "", path[1:]
        if head is None:
            return path
        if lead in "!><" and head and budget > 0 and not path.startswith("!!"):
            head = self._expand(head, False, budget - 1)
        head = self._expand_home(head)
        if regex:
            head = re.escape(head)
        return f"{head}{tail}"

    def pretty(self, path: str) -> str:
        """Return the short display form of ``path`` (``=`` or ``~`` prefixes)."""

        if not path:
            return path
        prefix = self._folder_prefix()
        if prefix and path.startswith(prefix) and len(path) > len(prefix):
            return "=" + path[len(prefix):]
        home = self.home.rstrip("/")
        if home and path.startswith(home + "/"):
            return "~" + path[len(home):]
        return path

    def safe_path(self, mailbox: str) -> str:
        """Derive a mailbox name from an address mailbox.

        The local part is used unless ``save_address`` is set, the result is
        lower-cased, and separators, whitespace and unprintable characters become
        ``_``.
        """

        name = mailbox
        if not self.settings.save_address:
            name = re.split(r"[%@]", name, maxsplit=1)[0]
        name = name.lower()
        return "".join(
            "_" if ch == "/" or ch.isspace() or not ch.isprintable() else ch for ch in name
        )

    def writable(self, path: str) -> bool:
        """Return ``True`` if ``path`` is an existing, writable mailbox."""

        if is_remote_url(path):
            return True
        candidate = Path(self.expand(path))
        return candidate.exists() and os.access(candidate, os.W_OK)
