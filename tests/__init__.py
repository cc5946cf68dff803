"""Test package marker.

What:
  Marks ``tests`` as a package so the root ``conftest`` is imported as
  ``tests.conftest`` and never collides with ``tests/unit/conftest.py``.

Invariants & Safety:
  - The file must remain side-effect free so that importing ``tests`` never
    mutates environment state or test fixtures.
"""
