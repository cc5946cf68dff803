"""Turn raw hook arguments into the canonical pattern and command to store.

What:
  Split a hook line into ``[!]pattern command``, then apply the category rules:
  mailbox-shortcut expansion for mailbox patterns, command validation for
  archive hooks, ``default_hook`` expansion for simple message patterns, and
  path expansion for destination commands.

Why:
  Deduplication compares the stored pattern text, so two spellings of the same
  rule (``=work`` and ``/home/me/Mail/work``, or ``boss`` and its expanded
  template) must normalise to the same string before the registry sees them.
  Normalisation also catches the common configuration mistakes early, at
  registration time, instead of silently installing a rule that never fires.

How:
  :func:`parse_hook_args` consumes tokens from a
  :class:`~mailhooks.utils.tokens.TokenStream`; :class:`Normalizer` reads the
  live settings and folder state on every call, so ``set default_hook=...``
  affects subsequent registrations only.

Interfaces:
  :func:`parse_hook_args`, :func:`valid_archive_command`, :class:`Normalizer`.

Invariants & Safety:
  - Normalisation never touches the registry; a failure leaves it unchanged.
  - Mailbox patterns are expanded in regex mode, so the substituted folder is
    matched literally.
"""
from __future__ import annotations

from typing import Callable, Iterable, Tuple

from ..config.schema import MailSettings
from ..utils.paths import MailboxPaths
from ..utils.tokens import TokenStream
from .categories import (
    ARCHIVE_COMMAND,
    MAILBOX_PATTERN,
    NO_DEFAULT_TEMPLATE,
    PATH_COMMAND,
    REST_OF_LINE_COMMAND,
    HookCategory,
)
from .errors import HookArgumentError, HookNormalizationError
from .patterns import expand_simple


def parse_hook_args(stream: TokenStream, categories: Iterable[HookCategory]) -> Tuple[str, str, bool]:
    """Read ``[!]pattern command`` from ``stream``.

    Args:
      stream: Tokens following the hook command name.
      categories: Categories being registered; decides whether the command
        keeps unquoted spaces.

    Returns:
      ``(pattern, command, negate)``.

    Raises:
      HookArgumentError: ``too few arguments`` or ``too many arguments``.
    """

    negate = False
    stream.skip_ws()
    if stream.peek() == "!":
        stream.advance()
        stream.skip_ws()
        negate = True
    pattern = stream.extract()
    if not pattern or not stream.more_args():
        raise HookArgumentError("too few arguments")
    keep_spaces = any(category in REST_OF_LINE_COMMAND for category in categories)
    command = stream.extract(keep_spaces=keep_spaces)
    if not command:
        raise HookArgumentError("too few arguments")
    if stream.more_args():
        raise HookArgumentError("too many arguments")
    return pattern, command, negate


def valid_archive_command(command: str) -> bool:
    """Archive commands must name both the source (``%f``) and target (``%t``)."""

    return "%f" in command and "%t" in command


class Normalizer:
    """Category-aware canonicalisation of hook patterns and commands."""

    def __init__(
        self,
        settings: MailSettings,
        paths: MailboxPaths,
        *,
        command_checker: Callable[[str], bool] = valid_archive_command,
    ) -> None:
        self.settings = settings
        self.paths = paths
        self.command_checker = command_checker

    def normalize(self, category: HookCategory, pattern: str, command: str) -> Tuple[str, str]:
        """Return the canonical ``(pattern, command)`` for ``category``.

        Raises:
          HookNormalizationError: When a shortcut is unset, expands to nothing,
            or an archive command is malformed.
        """

        if category in MAILBOX_PATTERN:
            if pattern.startswith("^") and not self.paths.current_folder:
                raise HookNormalizationError("current mailbox shortcut '^' is unset")
            expanded = self.paths.expand(pattern, regex=True)
            if not expanded and pattern:
                raise HookNormalizationError("mailbox shortcut expanded to empty regexp")
            pattern = expanded
        elif category in ARCHIVE_COMMAND:
            if not self.command_checker(command):
                raise HookNormalizationError("badly formatted command string")
        elif self.settings.default_hook and category not in NO_DEFAULT_TEMPLATE:
            pattern = expand_simple(pattern, self.settings.default_hook)

        if category in PATH_COMMAND:
            command = self.paths.expand(command)
        return pattern, command
