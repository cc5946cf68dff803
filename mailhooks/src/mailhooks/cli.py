"""mailhooks command-line interface.

What:
  Provide a Typer-based entry point for checking rc files, listing the hooks
  they register, and firing triggers or lookups against them from a shell.

Why:
  Hook rules are easy to get subtly wrong (a shortcut that expands to nothing,
  a negation that selects everything). Running the same registry and engine
  the mail client uses, one event at a time, lets users see exactly which
  hooks fire and what they change before relying on them.

How:
  Every command loads the runtime configuration, builds a
  :class:`~mailhooks.core.service.HookService` (replaying ``hooks.rc_files``),
  replays any extra rc files given on the command line, then performs one
  operation and prints its result on ``stdout``. Diagnostics go to ``stderr``.

Interfaces:
  ``app`` (Typer application), ``check``, ``list_hooks``, ``folder``,
  ``account``, ``save_path``, ``fcc_path``, ``charset``, ``iconv``, ``crypt``,
  ``mbox``, ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` configuration
    or hook errors).
  - Configuration loaded from disk is never mutated; the service works on a
    copy of the mail settings.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from .config import ConfigLoadError, load_runtime_config
from .core.errors import HookError
from .core.message import MessageContext
from .core.service import HookService

app = typer.Typer(help="Inspect and exercise mail hook rules")

_RC_OPTION = typer.Option(None, "--rc", help="Extra rc file replayed after the configured ones")


def _fail(message: str) -> typer.Exit:
    typer.secho(message, err=True, fg=typer.colors.RED)
    return typer.Exit(code=1)


@app.callback()
def configure(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml (defaults to MAILHOOKS_CONFIG_PATH, then ./config.yaml)",
    ),
) -> None:
    """Select the runtime configuration used by every command."""

    ctx.obj = {"config": config}


def _service(ctx: typer.Context, rc_files: Optional[List[Path]] = None) -> HookService:
    """Build a service from the configuration and replay ``rc_files``."""

    config_path = (ctx.obj or {}).get("config")
    try:
        runtime = load_runtime_config(config_path)
    except ConfigLoadError as exc:
        raise _fail(str(exc)) from exc
    try:
        service = HookService.from_config(runtime)
        for rc_file in rc_files or []:
            service.source(rc_file)
    except HookError as exc:
        raise _fail(str(exc)) from exc
    return service


def _read_message(path: Path) -> MessageContext:
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise _fail(f"unable to read {path}: {exc.strerror or exc}") from exc
    return MessageContext.from_bytes(raw, mailbox=str(path))


def _print_optional(value: Optional[str]) -> None:
    if value is not None:
        typer.echo(value)


def _print_changes(before: Dict[str, Any], after: Dict[str, Any]) -> None:
    for name, value in after.items():
        if before.get(name) != value:
            typer.echo(f"{name}: {before.get(name)!r} -> {value!r}")


@app.command("check")
def check(
    ctx: typer.Context,
    rc_files: List[Path] = typer.Argument(..., help="rc files to replay"),
) -> None:
    """Replay rc files and report the first error."""

    service = _service(ctx, rc_files)
    typer.echo(f"ok: {len(service.registry)} hooks registered")


@app.command("list")
def list_hooks(
    ctx: typer.Context,
    rc_files: Optional[List[Path]] = typer.Argument(None, help="rc files to replay first"),
) -> None:
    """Print registered hooks in execution order."""

    service = _service(ctx, rc_files)
    for entry in service.registry:
        typer.echo(entry.describe())


@app.command("folder")
def folder(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Mailbox being opened"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Fire folder hooks for ``path`` and print the settings they changed."""

    service = _service(ctx, rc_files)
    before = service.settings.model_dump()
    ok = service.open_folder(service.paths.expand(path))
    _print_changes(before, service.settings.model_dump())
    if not ok:
        raise typer.Exit(code=1)


@app.command("account")
def account(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Remote account URL being connected"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Fire account hooks for ``url`` and print the settings they changed."""

    service = _service(ctx, rc_files)
    before = service.settings.model_dump()
    ok = service.connect(url)
    _print_changes(before, service.settings.model_dump())
    if not ok:
        raise typer.Exit(code=1)


@app.command("save-path")
def save_path(
    ctx: typer.Context,
    message: Path = typer.Argument(..., help="RFC 822 message file"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Print the default save mailbox for a message."""

    service = _service(ctx, rc_files)
    typer.echo(service.save_destination(_read_message(message)))


@app.command("fcc-path")
def fcc_path(
    ctx: typer.Context,
    message: Path = typer.Argument(..., help="RFC 822 message file"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Print where the outgoing copy of a message would be stored."""

    service = _service(ctx, rc_files)
    typer.echo(service.copy_destination(_read_message(message)))


@app.command("charset")
def charset(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Character set name"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Print the alias a charset hook assigns to ``name``."""

    _print_optional(_service(ctx, rc_files).charset_alias(name))


@app.command("iconv")
def iconv(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Character set name"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Print the converter name an iconv hook assigns to ``name``."""

    _print_optional(_service(ctx, rc_files).iconv_name(name))


@app.command("crypt")
def crypt(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Recipient address"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Print every key id crypt hooks assign to ``address``, one per line."""

    for key in _service(ctx, rc_files).crypt_keys(address):
        typer.echo(key)


@app.command("mbox")
def mbox(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Mailbox whose read mail is moved"),
    rc_files: Optional[List[Path]] = _RC_OPTION,
) -> None:
    """Print the destination an mbox hook assigns to ``path``."""

    service = _service(ctx, rc_files)
    _print_optional(service.mbox_destination(service.paths.expand(path)))


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
