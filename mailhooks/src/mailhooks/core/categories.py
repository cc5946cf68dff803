"""Hook categories and the per-category rules that drive registration.

What:
  Define the closed :class:`HookCategory` enumeration, the command names that
  register each category, and the trait sets that decide how a category is
  normalised, compiled, deduplicated and dispatched.

Why:
  An entry belongs to exactly one category, while queries ask about a set of
  categories. Keeping the two apart (an enum member on the entry, a
  ``frozenset`` on the query) avoids bitmask aliasing, and keeping every trait
  in one table makes the per-category behaviour auditable at a glance.

How:
  Traits are module-level ``frozenset`` constants; :func:`categories_for_command`
  maps a command name (including the two-category ``fcc-save-hook``) to the
  categories it registers.

Interfaces:
  :class:`HookCategory`, :data:`CategorySet`, :func:`categories_for_command`,
  and the trait sets.
"""
from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple


class HookCategory(str, Enum):
    """Event kinds a hook can be attached to."""

    FOLDER = "folder-hook"
    MBOX = "mbox-hook"
    MESSAGE = "message-hook"
    REPLY = "reply-hook"
    SEND = "send-hook"
    SEND2 = "send2-hook"
    SAVE = "save-hook"
    FCC = "fcc-hook"
    CRYPT = "crypt-hook"
    CHARSET = "charset-hook"
    ICONV = "iconv-hook"
    ACCOUNT = "account-hook"
    OPEN = "open-hook"
    APPEND = "append-hook"
    CLOSE = "close-hook"

    @property
    def command_name(self) -> str:
        return self.value


CategorySet = FrozenSet[HookCategory]


def category_set(*categories: HookCategory) -> CategorySet:
    """Build the query mask for one or more categories."""

    return frozenset(categories)


MULTI_COMMAND: CategorySet = category_set(
    HookCategory.FOLDER,
    HookCategory.SEND,
    HookCategory.SEND2,
    HookCategory.MESSAGE,
    HookCategory.ACCOUNT,
    HookCategory.REPLY,
    HookCategory.CRYPT,
)
"""Categories where one pattern may carry several distinct commands."""

FULL_PATTERN: CategorySet = category_set(
    HookCategory.SEND,
    HookCategory.SEND2,
    HookCategory.SAVE,
    HookCategory.FCC,
    HookCategory.MESSAGE,
    HookCategory.REPLY,
)
"""Categories matched with the structured message pattern language."""

ENVELOPE_ONLY: CategorySet = category_set(
    HookCategory.SEND,
    HookCategory.SEND2,
    HookCategory.FCC,
)
"""Full-pattern categories evaluated before a message body exists."""

CASE_INSENSITIVE: CategorySet = category_set(
    HookCategory.CRYPT,
    HookCategory.CHARSET,
    HookCategory.ICONV,
)

MAILBOX_PATTERN: CategorySet = category_set(HookCategory.FOLDER, HookCategory.MBOX)
"""Categories whose pattern is a mailbox path with shortcuts."""

ARCHIVE_COMMAND: CategorySet = category_set(
    HookCategory.OPEN,
    HookCategory.APPEND,
    HookCategory.CLOSE,
)

NO_DEFAULT_TEMPLATE: CategorySet = category_set(
    HookCategory.CHARSET,
    HookCategory.ICONV,
    HookCategory.ACCOUNT,
    HookCategory.CRYPT,
)

PATH_COMMAND: CategorySet = category_set(HookCategory.MBOX, HookCategory.SAVE, HookCategory.FCC)
"""Categories whose command is a mailbox destination."""

REST_OF_LINE_COMMAND: CategorySet = category_set(
    HookCategory.FOLDER,
    HookCategory.SEND,
    HookCategory.SEND2,
    HookCategory.ACCOUNT,
    HookCategory.REPLY,
)
"""Categories whose command token keeps unquoted spaces."""

_COMMANDS = {category.value: (category,) for category in HookCategory}
_COMMANDS["fcc-save-hook"] = (HookCategory.FCC, HookCategory.SAVE)


def hook_command_names() -> Iterable[str]:
    """Return every configuration command that registers hooks."""

    return tuple(_COMMANDS)


def categories_for_command(name: str) -> Optional[Tuple[HookCategory, ...]]:
    """Return the categories registered by the configuration command ``name``."""

    return _COMMANDS.get(name)

