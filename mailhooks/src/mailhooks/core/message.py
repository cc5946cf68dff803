"""Message contexts handed to message-category hooks.

What:
  Model the subset of message metadata that patterns, resolvers and command
  formatting need: parsed address lists, subject, lower-cased headers, the text
  body, and the mailbox the message lives in.

Why:
  Decouples the hook engine from any concrete mail store while documenting the
  attributes an event source must populate. Message hooks fire on view, compose
  and send; the same context shape serves all of them, and envelope-only
  categories simply never look at the body.

How:
  :class:`Address` lists are parsed with :func:`email.utils.getaddresses`.
  :meth:`MessageContext.from_bytes` reuses :func:`mailhooks.utils.mime.parse_message`
  for raw messages, and :meth:`MessageContext.build` assembles contexts from
  plain strings for compose-time events.

Interfaces:
  :class:`Address`, :class:`Envelope`, :class:`MessageContext`,
  :func:`addr_is_user`, :func:`format_command`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from email.utils import getaddresses, parseaddr
from typing import Dict, Iterable, List, Optional, Sequence

from ..config.schema import MailSettings
from ..utils.mime import parse_message


@dataclass(frozen=True)
class Address:
    """One parsed address; ``mailbox`` is the bare ``local@domain`` part."""

    mailbox: str
    personal: str = ""

    @property
    def usable(self) -> bool:
        return bool(self.mailbox)

    def __str__(self) -> str:
        if self.personal:
            return f"{self.personal} <{self.mailbox}>"
        return self.mailbox

    @classmethod
    def parse_list(cls, values: Iterable[str]) -> List["Address"]:
        """Parse header values into addresses, dropping empty entries."""

        result = []
        for personal, mailbox in getaddresses([value for value in values if value]):
            if personal or mailbox:
                result.append(cls(mailbox=mailbox.strip(), personal=personal.strip()))
        return result


def _first_usable(addresses: Sequence[Address]) -> Optional[Address]:
    for address in addresses:
        if address.usable:
            return address
    return None


@dataclass
class Envelope:
    """Address headers and subject of a message."""

    from_: List[Address] = field(default_factory=list)
    sender: List[Address] = field(default_factory=list)
    to: List[Address] = field(default_factory=list)
    cc: List[Address] = field(default_factory=list)
    bcc: List[Address] = field(default_factory=list)
    reply_to: List[Address] = field(default_factory=list)
    subject: str = ""

    @classmethod
    def from_headers(cls, headers: Dict[str, str]) -> "Envelope":
        def parse(name: str) -> List[Address]:
            return Address.parse_list([headers.get(name, "")])

        return cls(
            from_=parse("from"),
            sender=parse("sender"),
            to=parse("to"),
            cc=parse("cc"),
            bcc=parse("bcc"),
            reply_to=parse("reply-to"),
            subject=headers.get("subject", ""),
        )

    @property
    def author(self) -> Optional[Address]:
        return self.from_[0] if self.from_ else None

    def first_usable(self, *fields: str) -> Optional[Address]:
        """Return the first usable address among ``fields`` in order."""

        for name in fields:
            found = _first_usable(getattr(self, name))
            if found is not None:
                return found
        return None

    @property
    def has_recipients(self) -> bool:
        return bool(self.to or self.cc or self.bcc)


@dataclass
class MessageContext:
    """A message plus the mailbox it is being viewed, saved or sent from."""

    envelope: Envelope
    mailbox: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def whole_text(self) -> str:
        header_block = "\n".join(f"{name}: {value}" for name, value in self.headers.items())
        return f"{header_block}\n\n{self.body}"

    @classmethod
    def from_bytes(cls, raw: bytes, *, mailbox: Optional[str] = None) -> "MessageContext":
        """Build a context from an RFC822 payload."""

        _, headers, body = parse_message(raw)
        return cls(envelope=Envelope.from_headers(headers), mailbox=mailbox, headers=headers, body=body)

    @classmethod
    def build(
        cls,
        *,
        from_: str = "",
        to: str = "",
        cc: str = "",
        bcc: str = "",
        reply_to: str = "",
        subject: str = "",
        body: str = "",
        mailbox: Optional[str] = None,
    ) -> "MessageContext":
        """Build a context from header strings, as a compose screen would."""

        headers = {
            name: value
            for name, value in (
                ("from", from_),
                ("to", to),
                ("cc", cc),
                ("bcc", bcc),
                ("reply-to", reply_to),
                ("subject", subject),
            )
            if value
        }
        return cls(envelope=Envelope.from_headers(headers), mailbox=mailbox, headers=headers, body=body)


def addr_is_user(address: Optional[Address], settings: MailSettings) -> bool:
    """Return ``True`` when ``address`` belongs to the current user.

    The configured ``from_address`` is compared case-insensitively first, then
    each ``alternates`` regex is searched case-insensitively.
    """

    if address is None or not address.usable:
        return False
    mailbox = address.mailbox.lower()
    if settings.from_address:
        own = parseaddr(settings.from_address)[1].lower()
        if own and own == mailbox:
            return True
    return any(re.search(pattern, address.mailbox, re.I) for pattern in settings.alternates)


_FORMAT_RE = re.compile(r"%(.)", re.S)


def format_command(template: str, context: Optional[MessageContext]) -> str:
    """Expand ``%a``, ``%n``, ``%s`` and ``%%`` in a resolver result.

    Unknown sequences are kept verbatim so literal ``%`` in folder names
    survive.
    """

    if "%" not in template:
        return template
    author = context.envelope.author if context else None

    def replace(match: re.Match[str]) -> str:
        code = match.group(1)
        if code == "%":
            return "%"
        if code == "a":
            return author.mailbox if author else ""
        if code == "n":
            return (author.personal or author.mailbox) if author else ""
        if code == "s":
            return context.envelope.subject if context else ""
        return match.group(0)

    return _FORMAT_RE.sub(replace, template)
