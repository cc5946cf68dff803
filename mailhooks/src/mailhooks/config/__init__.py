"""mailhooks configuration package.

What:
  Provide a cohesive import surface for configuration loading and the Pydantic
  schema used by the hook service and the CLI.

Why:
  Centralising the exports shields callers from the internal layout and makes
  sure every caller goes through the validated models.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config: Resolve
    ``config.yaml`` and expose a cached runtime configuration object.
  - ConfigLoadError / RuntimeConfigError: Loader failures.
  - RuntimeConfig / MailSettings / HookSettings / ValidationError: Pydantic
    models and the validation error type.
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import (
    DEFAULT_HOOK_TEMPLATE,
    HookSettings,
    MailSettings,
    RuntimeConfig,
    ValidationError,
)

__all__ = [
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
    "ConfigLoadError",
    "RuntimeConfigError",
    "DEFAULT_HOOK_TEMPLATE",
    "HookSettings",
    "MailSettings",
    "RuntimeConfig",
    "ValidationError",
]
