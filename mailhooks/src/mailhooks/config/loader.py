"""Strict loaders for the mailhooks runtime configuration.

What:
  Locate, parse, validate, and cache ``config.yaml``, the document that seeds
  the mail variables and lists the rc files replayed at start-up.

Why:
  Configuration lives outside the application bundle and can be malformed.
  Centralising parsing enforces consistent validation so the hook service can
  trust the resulting models, and caching keeps repeated CLI lookups cheap.

How:
  Resolve candidate file locations based on explicit parameters, the
  ``MAILHOOKS_CONFIG_PATH`` environment variable, and defaults. Parse YAML with
  PyYAML's ``safe_load`` and validate with the Pydantic models from
  :mod:`mailhooks.config.schema`.

Interfaces:
  - :func:`load_runtime_config` / :func:`get_runtime_config` /
    :func:`reset_runtime_config`: Manage ``config.yaml`` discovery and caching.
  - :class:`ConfigLoadError` / :class:`RuntimeConfigError`.

Invariants:
  - External payloads pass strict Pydantic validation before they are returned.
  - The runtime configuration cache respects explicit reload requests and the
    precedence order of candidate paths.

Safety/Performance:
  - File operations avoid silent failures by converting OS errors into typed
    exceptions that include path context.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures.

    What:
      Represent fatal issues encountered while reading or validating
      configuration documents.

    Why:
      Grouping failures under a single type allows callers to handle user input
      mistakes separately from hook registration errors, which are reported per
      rc line instead.
    """


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``config.yaml`` cannot be loaded or validated."""


_CONFIG_ENV = "MAILHOOKS_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("/etc/mailhooks/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Path, RuntimeConfig]] = None
_SHORTCUT_LEADS = frozenset("~=+!<>^-")


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield configuration file locations in priority order.

    What:
      Produce the ordered list of paths that should be inspected for
      ``config.yaml``.

    How:
      Accumulate deduplicated :class:`~pathlib.Path` objects by checking the
      explicit argument, the ``MAILHOOKS_CONFIG_PATH`` environment variable, and
      the default locations. Paths are expanded to handle ``~``.

    Args:
      path: Explicit path requested by the caller, or ``None`` to rely on
        environment/defaults.

    Yields:
      Candidate paths ordered from most specific to least specific.
    """

    seen: set[Path] = set()
    if path is not None:
        candidate = path.expanduser()
        seen.add(candidate)
        yield candidate
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    """Parse ``config.yaml`` text into a dictionary payload.

    Raises:
      RuntimeConfigError: If the file cannot be parsed or does not contain a
      mapping.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError(f"{source} must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Load and validate ``config.yaml`` from a specific path.

    What:
      Read the file at ``path`` and convert it into a validated
      :class:`RuntimeConfig` model.

    How:
      Read the file contents, parse them via :func:`_parse_config_payload`, and
      validate using :meth:`RuntimeConfig.model_validate`. Wrap filesystem or
      validation failures in :class:`RuntimeConfigError` with descriptive
      messages.

    Raises:
      RuntimeConfigError: If the file cannot be read or fails validation.
    """

    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        config = RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid {path}: {exc}") from exc
    return _anchor_rc_files(config, path.parent)


def _anchor_rc_files(config: RuntimeConfig, base: Path) -> RuntimeConfig:
    """Resolve plain relative ``hooks.rc_files`` entries against ``base``.

    Entries starting with a mailbox shortcut (``~``, ``=``, ``+`` ...) are kept
    as written; the hook service expands them against the mail settings.
    """

    anchored = [
        entry if entry[:1] in _SHORTCUT_LEADS or Path(entry).is_absolute() else str(base / entry)
        for entry in config.hooks.rc_files
    ]
    hooks = config.hooks.model_copy(update={"rc_files": anchored})
    return config.model_copy(update={"hooks": hooks})


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate ``config.yaml`` using the configured precedence chain, parse it, and
      return a validated :class:`RuntimeConfig` instance.

    Why:
      The CLI and the hook service both need runtime settings; caching avoids
      repeated disk IO while ``reload`` enables deterministic refreshes during
      tests.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If no suitable configuration file can be located or
      validated.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    searched: list[str] = []
    for candidate in _candidate_paths(requested_path):
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    listing = ", ".join(searched) if searched else "<none>"
    raise RuntimeConfigError(f"Unable to locate config.yaml (searched: {listing})")


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
