"""Generate dispatch-pass identifiers and stable checksums for hook artefacts.

What:
  Provide minimal helpers for creating unique pass IDs and SHA-256 checksums
  used by the engine logs and by the configuration replay.

Why:
  A single event can trigger nested dispatch passes (a folder hook that sets a
  remote folder fires account hooks). Tagging each pass keeps the JSON log
  lines of interleaved passes separable, and checksumming sourced files lets
  operators tell which revision of an rc file was replayed.

How:
  Combines ISO8601 timestamps with random suffixes for IDs and wraps
  ``hashlib`` with a consistent ``sha256:`` prefix for checksums.

Interfaces:
  :func:`new_pass_id` and :func:`checksum`.

Invariants & Safety:
  - Pass IDs always include timezone-aware timestamps for traceability.
  - Checksums are namespaced with ``sha256:`` so future algorithms can coexist.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timezone


def new_pass_id() -> str:
    """Return a unique identifier for one dispatch pass.

    What:
      Emits an ISO8601 timestamp suffixed with a six-hex-character random token.

    Why:
      Pass IDs appear in every ``hook_fired``/``hook_failed`` log line; pairing
      time and randomness keeps them sortable while avoiding collisions between
      nested passes started within the same clock tick.

    How:
      Captures ``datetime.now(timezone.utc)`` for explicit timezone context and
      concatenates a ``secrets.token_hex`` suffix.

    Returns:
      Unique identifier string (e.g., ``2024-01-01T00:00:00+00:00#1a2b3c``).
    """

    timestamp = datetime.now(timezone.utc).isoformat()
    suffix = secrets.token_hex(3)
    return f"{timestamp}#{suffix}"


def checksum(data: bytes) -> str:
    """Compute a namespaced SHA-256 digest for ``data``.

    Args:
      data: Bytes to hash.

    Returns:
      Hex-encoded digest string prefixed with ``sha256:``.
    """

    return f"sha256:{hashlib.sha256(data).hexdigest()}"
