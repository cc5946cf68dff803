"""Default save and copy-on-send destinations.

What:
  Answer "where should this message be saved?" and "where should the outgoing
  copy go?" using save/fcc hooks first and address-based fallbacks second.

Why:
  These are the two questions users most often customise with hooks, and both
  need a sensible answer when no rule matches: saving a message from a friend
  should default to a mailbox named after the friend, not to nowhere.

How:
  :func:`resolve_save_destination` prefers the correspondent's address (reply-to,
  then from) unless the message is the user's own, in which case the first
  recipient is used. :func:`resolve_copy_destination` honours ``save_name`` and
  ``force_name`` and falls back to ``record``.

Interfaces:
  :func:`resolve_save_destination`, :func:`resolve_copy_destination`.
"""
from __future__ import annotations

from ..utils.paths import MailboxPaths, concat_path
from .categories import HookCategory
from .engine import HookEngine
from .message import MessageContext, addr_is_user


def resolve_save_destination(engine: HookEngine, context: MessageContext, paths: MailboxPaths) -> str:
    """Return the default save mailbox for ``context``.

    Returns:
      The first matching save hook's command, otherwise ``=name`` derived from
      the chosen address, otherwise an empty string.
    """

    hooked = engine.addr_hook(context, HookCategory.SAVE)
    if hooked is not None:
        return hooked
    envelope = context.envelope
    address = None
    author = envelope.author
    # No author counts as the user, so the recipients decide.
    if author is not None and not addr_is_user(author, paths.settings):
        address = envelope.first_usable("reply_to") or envelope.first_usable("from_")
    if address is None:
        address = envelope.first_usable("to", "cc")
    if address is None:
        return ""
    return "=" + paths.safe_path(address.mailbox)


def resolve_copy_destination(engine: HookEngine, context: MessageContext, paths: MailboxPaths) -> str:
    """Return the display path where the outgoing copy of ``context`` is stored.

    Without a matching fcc hook: with ``save_name`` or ``force_name`` set and at
    least one recipient, a mailbox named after the first recipient under
    ``folder`` is used, falling back to ``record`` when that mailbox is not
    writable (``force_name`` skips the check). Otherwise ``record`` is used.
    """

    settings = paths.settings
    path = engine.addr_hook(context, HookCategory.FCC)
    if path is None:
        envelope = context.envelope
        address = envelope.first_usable("to", "cc", "bcc")
        if (settings.save_name or settings.force_name) and address is not None:
            folder = paths.expand(settings.folder or "")
            path = concat_path(folder, paths.safe_path(address.mailbox))
            if not settings.force_name and not paths.writable(path):
                path = paths.expand(settings.record or "")
        else:
            path = paths.expand(settings.record or "")
    return paths.pretty(path)
