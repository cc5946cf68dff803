"""Aggregated exports for the mailhooks hook core.

What:
  Provide a light-weight package facade exposing the registry, engine,
  interpreter and service while deferring imports until they are needed.

Why:
  The CLI only needs a subset of the core for most commands, and embedding
  applications that plug in their own interpreter or evaluator should not pay
  for importing the defaults.

How:
  Defines ``__all__`` explicitly and implements ``__getattr__`` to import the
  owning submodule on demand.

Invariants & Safety:
  - ``__getattr__`` only exposes names from ``__all__``; unexpected attributes
    raise :class:`AttributeError`.
"""

from __future__ import annotations

from typing import Any

_EXPORTS = {
    "HookCategory": "categories",
    "categories_for_command": "categories",
    "HookError": "errors",
    "CommandError": "errors",
    "HookEngine": "engine",
    "ReentryGuard": "engine",
    "HookEntry": "registry",
    "HookRegistry": "registry",
    "RcInterpreter": "interpreter",
    "MessageContext": "message",
    "HookService": "service",
    "resolve_save_destination": "resolvers",
    "resolve_copy_destination": "resolvers",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Resolve ``name`` from the submodule that owns it."""

    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(name)
    from importlib import import_module

    module = import_module(f"{__name__}.{module_name}")
    return getattr(module, name)
