"""MIME parsing helpers for building hook message contexts.

What:
  Turn raw RFC822 payloads into :class:`email.message.EmailMessage` objects,
  lower-cased header dictionaries, and bounded plain-text bodies.

Why:
  Message hooks with full-message patterns (``~b``, ``~h``, ``~B``) inspect the
  body and raw headers. The CLI reads messages from files whose structure is
  outside our control, so parsing must be defensive and size-bounded.

How:
  Use the ``email`` package's :class:`~email.parser.BytesParser` with the default
  policy, extract a text body by walking MIME parts, and truncate the UTF-8
  content when it exceeds :data:`MAX_BODY_BYTES`.

Interfaces:
  :func:`parse_message`.
"""
from __future__ import annotations

from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from typing import Dict, Tuple


MAX_BODY_BYTES = 1_000_000
"""Upper bound for decoded body size in bytes handed to body patterns."""


def parse_message(raw: bytes) -> Tuple[EmailMessage, Dict[str, str], str]:
    """Parse a raw message into canonical structures.

    Returns:
      Tuple containing the parsed :class:`EmailMessage`, a ``dict`` of header
      values keyed by lowercase names (repeated headers are joined with
      ``", "``), and the truncated UTF-8 text body.
    """

    parser = BytesParser(policy=policy.default)
    message = parser.parsebytes(raw)
    headers: Dict[str, str] = {}
    for name, value in message.items():
        key = name.lower()
        headers[key] = f"{headers[key]}, {value}" if key in headers else str(value)
    body_text = _extract_body_text(message)
    return message, headers, body_text


def _extract_body_text(message: EmailMessage) -> str:
    """Select the first ``text/*`` leaf of a MIME tree as the body."""

    if message.is_multipart():
        for part in message.walk():
            if part.is_multipart():
                continue
            if part.get_content_type().startswith("text/"):
                return _truncate(_decode(part))
        return ""
    return _truncate(_decode(message))


def _decode(part: EmailMessage) -> str:
    try:
        payload = part.get_content()
    except (LookupError, KeyError):
        raw = part.get_payload(decode=True) or b""
        return raw.decode("utf-8", errors="ignore")
    if isinstance(payload, bytes):
        payload = payload.decode(part.get_content_charset("utf-8"), errors="ignore")
    return payload if isinstance(payload, str) else ""


def _truncate(text: str) -> str:
    """Clamp ``text`` to :data:`MAX_BODY_BYTES` when encoded in UTF-8."""

    encoded = text.encode("utf-8")
    if len(encoded) <= MAX_BODY_BYTES:
        return text
    return encoded[:MAX_BODY_BYTES].decode("utf-8", errors="ignore")
