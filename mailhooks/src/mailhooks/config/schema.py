"""Pydantic models describing mailhooks configuration documents."""
from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_HOOK_TEMPLATE = "~f %s !~P | (~P ~C %s)"


class ValidationError(ValueError):
    """Raised when configuration data does not satisfy the schema."""


class MailSettings(BaseModel):
    """Mutable mail variables read by the hook engine and changed by ``set``.

    Assignment is validated, so ``set save_name=maybe`` fails the same way a bad
    value in ``config.yaml`` does.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    folder: Optional[str] = None
    spoolfile: Optional[str] = None
    mbox: Optional[str] = None
    record: Optional[str] = None
    home: Optional[str] = None
    from_address: Optional[str] = None
    alternates: List[str] = Field(default_factory=list)
    default_hook: Optional[str] = DEFAULT_HOOK_TEMPLATE
    save_name: bool = False
    force_name: bool = False
    save_address: bool = False

    @field_validator("alternates")
    @classmethod
    def _check_alternates(cls, value: List[str]) -> List[str]:
        for pattern in value:
            try:
                re.compile(pattern, re.I)
            except re.error as exc:
                raise ValidationError(f"invalid alternates regex {pattern!r}: {exc}") from exc
        return value


class HookSettings(BaseModel):
    """Start-up replay and dispatch behaviour."""

    model_config = ConfigDict(extra="forbid")

    rc_files: List[str] = Field(default_factory=list)
    error_pause_s: float = Field(default=1.0, ge=0)


class LoggingSettings(BaseModel):
    """Structured logging options."""

    model_config = ConfigDict(extra="forbid")

    component: str = "mailhooks"
    enabled: bool = True


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    mail: MailSettings = Field(default_factory=MailSettings)
    hooks: HookSettings = Field(default_factory=HookSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def minimal(cls) -> "RuntimeConfig":
        """Return a configuration with every section at its defaults."""

        return cls()
