"""Expose the public utility surface for mailhooks.

What:
  Re-export logging, identifier, path, and tokenizer helpers that other packages
  import without knowing the underlying module layout.

Interfaces:
  ``get_logger``, ``JsonLogger``, ``new_pass_id``, ``checksum``,
  ``MailboxPaths``, ``concat_path``, ``is_remote_url``, ``TokenStream``.

Invariants & Safety:
  - The module only re-exports side-effect-free callables to keep import order
    predictable.
"""

from .ids import checksum, new_pass_id
from .logging import JsonLogger, get_logger
from .paths import MailboxPaths, concat_path, is_remote_url
from .tokens import TokenStream

__all__ = [
    "get_logger",
    "JsonLogger",
    "new_pass_id",
    "checksum",
    "MailboxPaths",
    "concat_path",
    "is_remote_url",
    "TokenStream",
]
