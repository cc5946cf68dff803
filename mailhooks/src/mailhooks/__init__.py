"""
Module: mailhooks.__init__

What:
  Aggregate package exports for the mailhooks rule registry and expose the
  primary namespace segments (configuration, hook core, and utilities).

Why:
  Centralising the exports keeps the CLI and embedding applications stable
  while the internal layout evolves.

Interfaces:
  - config: Configuration schema loaders and validators.
  - core: Hook registry, dispatch engine, interpreter and resolvers.
  - utils: Shared helpers for logging, paths, tokenizing and MIME parsing.
"""

__all__ = [
    "config",
    "core",
    "utils",
]
