"""Tokenizer for rc command lines.

What:
  Split configuration lines such as ``folder-hook . 'set sort=date'`` into
  tokens the way the interpreter and hook parser expect: whitespace separated,
  with double and single quotes, backslash escapes, ``;`` between commands and
  ``#`` comments.

Why:
  Hook registration needs token-level control that :mod:`shlex` does not give:
  some hook types take the rest of the line as their command (spaces kept), the
  ``set`` command splits on ``=``, and a leading ``!`` on a pattern must be
  inspected before the pattern token is read.

How:
  :class:`TokenStream` keeps an offset into the line. :meth:`TokenStream.extract`
  consumes one token and skips trailing whitespace; :meth:`TokenStream.more_args`
  reports whether the current command has more input.

Interfaces:
  :class:`TokenStream`.
"""
from __future__ import annotations

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "e": "\x1b"}


class TokenStream:
    """Cursor over one rc line."""

    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos

    def __repr__(self) -> str:
        return f"TokenStream({self.text!r}, pos={self.pos})"

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    @property
    def remainder(self) -> str:
        return self.text[self.pos:]

    def peek(self) -> str:
        return "" if self.at_end else self.text[self.pos]

    def advance(self, count: int = 1) -> None:
        self.pos = min(len(self.text), self.pos + count)

    def skip_ws(self) -> None:
        while not self.at_end and self.text[self.pos].isspace():
            self.pos += 1

    def more_args(self) -> bool:
        """Return ``True`` while the current command still has arguments."""

        self.skip_ws()
        return not self.at_end and self.text[self.pos] not in ";#"

    def end_command(self) -> bool:
        """Consume a ``;`` separator; return ``True`` if another command follows."""

        self.skip_ws()
        if self.peek() == ";":
            self.pos += 1
            return True
        return False

    def extract(self, *, keep_spaces: bool = False, stop_at_equal: bool = False) -> str:
        """Consume and return the next token.

        Args:
          keep_spaces: Treat unquoted whitespace as part of the token, so the
            token runs to the next ``;``, ``#`` or the end of the line. Trailing
            unquoted whitespace is dropped.
          stop_at_equal: End the token at an unquoted ``=`` (``set name=value``).

        Returns:
          The unquoted token text; an empty string when nothing was consumed.
        """

        self.skip_ws()
        chars: list[str] = []
        significant = 0
        quote = ""
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if not quote:
                if ch.isspace() and not keep_spaces:
                    break
                if ch in ";#" or (ch == "=" and stop_at_equal):
                    break
            self.pos += 1
            if ch == quote:
                quote = ""
                continue
            if not quote and ch in "\"'":
                quote = ch
                continue
            if ch == "\\" and quote != "'" and self.pos < len(text):
                nxt = text[self.pos]
                self.pos += 1
                chars.append(_ESCAPES.get(nxt, nxt))
                significant = len(chars)
                continue
            chars.append(ch)
            if quote or not ch.isspace():
                significant = len(chars)
        self.skip_ws()
        return "".join(chars[:significant])
