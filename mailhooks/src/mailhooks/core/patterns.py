"""Structured message patterns used by message-category hooks.

What:
  Compile pattern text such as ``~f boss@example.com !~P | ~s urgent`` into a
  predicate tree, evaluate it against a :class:`~mailhooks.core.message.MessageContext`,
  and expand "simple" patterns through the ``default_hook`` template.

Why:
  Send, save, fcc, message and reply hooks select messages by attributes rather
  than by a single string. The engine treats predicates as opaque; this module
  is the default compiler/evaluator pair the hook service plugs in.

How:
  - A recursive-descent parser reads terms (``~X arg`` regex terms, ``=X arg``
    substring terms), ``!`` negation, parentheses, juxtaposition (AND) and ``|``
    (OR).
  - Regex arguments use smart case: case-insensitive unless the argument has an
    upper-case letter.
  - Terms answering "is this the user?" (``~p``, ``~P``) depend on mutable
    settings and are memoised in a :class:`PatternCache` that the engine scopes
    to one dispatch pass and clears after every executed command.

Interfaces:
  :class:`PatternError`, :class:`PatternCache`, :class:`PatternEvaluator`,
  :func:`compile_pattern`, :func:`is_simple`, :func:`expand_simple`.

Invariants & Safety:
  - Full-message terms (``~h``, ``~b``, ``~B``) are rejected at compile time when
    the category is evaluated before a body exists.
  - The cache only ever stores answers that depend on settings, never on the
    message alone; clearing it is always safe.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Tuple, Union

from ..config.schema import MailSettings
from .message import Address, MessageContext, addr_is_user


class PatternError(ValueError):
    """Raised when pattern text cannot be compiled."""


@dataclass(frozen=True)
class _TermKind:
    takes_arg: bool
    full_only: bool = False


_TERMS: Dict[str, _TermKind] = {
    "A": _TermKind(takes_arg=False),
    "f": _TermKind(takes_arg=True),
    "t": _TermKind(takes_arg=True),
    "c": _TermKind(takes_arg=True),
    "C": _TermKind(takes_arg=True),
    "e": _TermKind(takes_arg=True),
    "L": _TermKind(takes_arg=True),
    "r": _TermKind(takes_arg=True),
    "s": _TermKind(takes_arg=True),
    "p": _TermKind(takes_arg=False),
    "P": _TermKind(takes_arg=False),
    "h": _TermKind(takes_arg=True, full_only=True),
    "b": _TermKind(takes_arg=True, full_only=True),
    "B": _TermKind(takes_arg=True, full_only=True),
}

_SIMPLE_SPECIALS = "~=%!|"
_MAX_NESTING = 64


@dataclass(frozen=True)
class Term:
    code: str
    regex: Optional[Pattern[str]] = None
    literal: Optional[str] = None

    def matches(self, value: str) -> bool:
        if self.literal is not None:
            return self.literal in value.lower()
        if self.regex is not None:
            return self.regex.search(value) is not None
        return False


@dataclass(frozen=True)
class Not:
    child: "Predicate"


@dataclass(frozen=True)
class AllOf:
    children: Tuple["Predicate", ...]


@dataclass(frozen=True)
class AnyOf:
    children: Tuple["Predicate", ...]


Predicate = Union[Term, Not, AllOf, AnyOf]


class _Parser:
    def __init__(self, text: str, full_message: bool) -> None:
        self.text = text
        self.pos = 0
        self.full_message = full_message
        self.depth = 0

    def fail(self, message: str) -> PatternError:
        return PatternError(message)

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def parse(self) -> Predicate:
        node = self.parse_or()
        if self.peek():
            raise self.fail(f"error in pattern at: {self.text[self.pos:]}")
        return node

    def parse_or(self) -> Predicate:
        branches = [self.parse_and()]
        while self.peek() == "|":
            self.pos += 1
            branches.append(self.parse_and())
        return branches[0] if len(branches) == 1 else AnyOf(tuple(branches))

    def parse_and(self) -> Predicate:
        parts: List[Predicate] = []
        while self.peek() not in ("", "|", ")"):
            parts.append(self.parse_unary())
        if not parts:
            raise self.fail("empty pattern")
        return parts[0] if len(parts) == 1 else AllOf(tuple(parts))

    def parse_unary(self) -> Predicate:
        ch = self.peek()
        if ch in ("!", "("):
            self.depth += 1
            if self.depth > _MAX_NESTING:
                raise self.fail("pattern too deeply nested")
            try:
                return self.parse_nested(ch)
            finally:
                self.depth -= 1
        if ch in ("~", "="):
            return self.parse_term(ch)
        if ch == "%":
            raise self.fail("%: group patterns are not supported")
        raise self.fail(f"error in pattern at: {self.text[self.pos:]}")

    def parse_nested(self, ch: str) -> Predicate:
        self.pos += 1
        if ch == "!":
            return Not(self.parse_unary())
        node = self.parse_or()
        if self.peek() != ")":
            raise self.fail("mismatched parenthesis in pattern")
        self.pos += 1
        return node

    def parse_term(self, lead: str) -> Term:
        self.pos += 1
        if self.pos >= len(self.text):
            raise self.fail(f"{lead}: missing pattern modifier")
        code = self.text[self.pos]
        self.pos += 1
        kind = _TERMS.get(code)
        if kind is None:
            raise self.fail(f"{lead}{code}: invalid pattern modifier")
        if kind.full_only and not self.full_message:
            raise self.fail(f"{lead}{code}: not supported in this mode")
        if not kind.takes_arg:
            return Term(code=code)
        argument = self.read_argument()
        if not argument:
            raise self.fail(f"{lead}{code}: missing parameter")
        if lead == "=":
            return Term(code=code, literal=argument.lower())
        flags = 0 if any(ch.isupper() for ch in argument) else re.I
        try:
            return Term(code=code, regex=re.compile(argument, flags))
        except re.error as exc:
            raise self.fail(f"{lead}{code} {argument}: {exc}") from exc

    def read_argument(self) -> str:
        self.skip_ws()
        text = self.text
        if self.pos < len(text) and text[self.pos] in "\"'":
            quote = text[self.pos]
            self.pos += 1
            chars: List[str] = []
            while self.pos < len(text) and text[self.pos] != quote:
                ch = text[self.pos]
                if ch == "\\" and quote == '"' and self.pos + 1 < len(text):
                    self.pos += 1
                    ch = text[self.pos]
                chars.append(ch)
                self.pos += 1
            if self.pos >= len(text):
                raise self.fail("unterminated quote in pattern")
            self.pos += 1
            return "".join(chars)
        start = self.pos
        while self.pos < len(text) and not text[self.pos].isspace() and text[self.pos] not in "|)":
            if text[self.pos] == "\\" and self.pos + 1 < len(text):
                self.pos += 1
            self.pos += 1
        return text[start:self.pos]


def compile_pattern(text: str, full_message: bool) -> Predicate:
    """Compile ``text`` into a predicate.

    Args:
      text: Pattern source, after negation stripping and template expansion.
      full_message: Allow terms that need headers or the body.

    Raises:
      PatternError: With a diagnostic suitable for display.
    """

    return _Parser(text, full_message).parse()


@dataclass
class PatternCache:
    """Memo of settings-dependent answers within one dispatch pass."""

    values: Dict[str, bool] = field(default_factory=dict)

    def lookup(self, key: str, compute: Callable[[], bool]) -> bool:
        if key not in self.values:
            self.values[key] = compute()
        return self.values[key]

    def clear(self) -> None:
        self.values.clear()


class PatternEvaluator:
    """Evaluate compiled predicates against message contexts."""

    def __init__(self, settings: MailSettings) -> None:
        self.settings = settings

    def new_cache(self) -> PatternCache:
        return PatternCache()

    def evaluate(
        self,
        predicate: Predicate,
        context: MessageContext,
        cache: Optional[PatternCache] = None,
    ) -> bool:
        if cache is None:
            cache = PatternCache()
        return self._eval(predicate, context, cache)

    def _eval(self, node: Predicate, context: MessageContext, cache: PatternCache) -> bool:
        if isinstance(node, Not):
            return not self._eval(node.child, context, cache)
        if isinstance(node, AllOf):
            return all(self._eval(child, context, cache) for child in node.children)
        if isinstance(node, AnyOf):
            return any(self._eval(child, context, cache) for child in node.children)
        return self._eval_term(node, context, cache)

    def _eval_term(self, term: Term, context: MessageContext, cache: PatternCache) -> bool:
        envelope = context.envelope
        code = term.code
        if code == "A":
            return True
        if code == "p":
            return cache.lookup(
                "personal_recipient",
                lambda: any(addr_is_user(a, self.settings) for a in envelope.to + envelope.cc),
            )
        if code == "P":
            return cache.lookup(
                "personal_from",
                lambda: any(addr_is_user(a, self.settings) for a in envelope.from_),
            )
        if code == "s":
            return term.matches(envelope.subject)
        if code == "h":
            return any(term.matches(f"{name}: {value}") for name, value in context.headers.items())
        if code == "b":
            return term.matches(context.body)
        if code == "B":
            return term.matches(context.whole_text)
        fields = {
            "f": envelope.from_,
            "t": envelope.to,
            "c": envelope.cc,
            "C": envelope.to + envelope.cc,
            "e": envelope.sender,
            "L": envelope.from_ + envelope.to + envelope.cc,
            "r": envelope.reply_to,
        }[code]
        return _match_addresses(term, fields)


def _match_addresses(term: Term, addresses: List[Address]) -> bool:
    for address in addresses:
        if term.matches(address.mailbox) or (address.personal and term.matches(address.personal)):
            return True
    return False


def is_simple(pattern: str) -> bool:
    """Return ``True`` when ``pattern`` has no unescaped pattern operators."""

    index = 0
    while index < len(pattern):
        ch = pattern[index]
        if ch == "\\" and index + 1 < len(pattern):
            index += 2
            continue
        if ch in _SIMPLE_SPECIALS:
            return False
        index += 1
    return True


def _quote_simple(pattern: str) -> str:
    escaped = pattern.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def expand_simple(pattern: str, template: Optional[str]) -> str:
    """Expand a simple pattern through the ``default_hook`` template.

    ``all``, ``^`` and ``.`` become ``~A``; any other simple pattern is quoted
    and substituted for every ``%s`` of ``template``. Structured patterns, and
    everything when no template is configured, are returned unchanged.
    """

    if not template or not is_simple(pattern):
        return pattern
    if pattern.lower() == "all" or pattern in ("^", "."):
        return "~A"
    return template.replace("%s", _quote_simple(pattern))
