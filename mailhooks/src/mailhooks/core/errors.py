"""Exception types raised by hook registration, removal and command execution.

Every error carries plain human-readable text meant for the user-facing error
channel; callers display ``str(exc)`` and never parse it.
"""
from __future__ import annotations


class HookError(Exception):
    """Base class for recoverable hook failures."""


class HookArgumentError(HookError):
    """Missing pattern/command or trailing tokens on a hook line."""


class HookNormalizationError(HookError):
    """Pattern or command rejected while being canonicalised."""


class HookCompileError(HookError):
    """The regex or structured pattern compiler rejected the pattern."""


class HookRemovalError(HookError):
    """An ``unhook`` request was refused; the registry is unchanged."""


class CommandError(HookError):
    """A configuration command failed inside the interpreter."""
