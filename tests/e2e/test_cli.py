"""End-to-end tests asserting CLI commands run against real rc files.

What:
  Invoke the ``mailhooks`` Typer application with the repository fixture
  configuration (``tests/data/config.yaml`` and ``tests/data/base.rc``) and
  validate observable output and exit codes for every command.

Why:
  These tests exercise the complete stack (loader, rc replay, registry,
  engine, resolvers) the same way a user checking their configuration would.

How:
  Most tests use :class:`typer.testing.CliRunner`; one spawns
  ``python -m mailhooks.cli`` with ``PYTHONPATH`` pointing at the source tree
  to cover the module entry point.
"""

import os
import pathlib
import subprocess
import sys

from typer.testing import CliRunner

from mailhooks.cli import app

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[2]

runner = CliRunner()


def _message(tmp_path: pathlib.Path, name: str, headers: str) -> pathlib.Path:
    path = tmp_path / name
    path.write_bytes((headers + "\n\nbody\n").encode("utf-8"))
    return path


def test_check_counts_registered_hooks(tmp_path):
    rc = tmp_path / "extra.rc"
    rc.write_text("send-hook . 'set nosave_name'\nsend2-hook ~A 'set save_name'\n")
    result = runner.invoke(app, ["check", str(rc)])
    assert result.exit_code == 0
    assert "ok: 12 hooks registered" in result.output


def test_check_reports_first_error(tmp_path):
    rc = tmp_path / "bad.rc"
    rc.write_text("set save_name\nset nosuch=1\nset alsobad=1\n")
    result = runner.invoke(app, ["check", str(rc)])
    assert result.exit_code == 1
    assert "bad.rc:2: nosuch: unknown variable" in result.output
    assert "alsobad" not in result.output


def test_list_prints_hooks_in_order():
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == 'folder-hook . "set save_name=no"'
    assert "charset-hook ^x-unknown$ iso-8859-1" in lines
    assert 'save-hook "~f boss@example.com" /home/tester/Mail/work/boss' in lines
    assert lines.index("crypt-hook boss@example.com 0xDEADBEEF") < lines.index(
        "crypt-hook boss@example.com 0xCAFEF00D"
    )


def test_folder_prints_setting_changes():
    result = runner.invoke(app, ["folder", "=lists"])
    assert result.exit_code == 0
    assert "save_name: False -> True" in result.output


def test_folder_hook_failure_exits_nonzero(tmp_path):
    rc = tmp_path / "broken.rc"
    rc.write_text("folder-hook . 'set nosuch=1'\n")
    result = runner.invoke(app, ["folder", "=inbox", "--rc", str(rc)])
    assert result.exit_code == 1
    assert "nosuch: unknown variable" in result.output


def test_account_hook_changes_identity():
    result = runner.invoke(app, ["account", "imaps://imap.example.com/INBOX"])
    assert result.exit_code == 0
    assert "from_address: 'Tester <tester@example.com>' -> 'Tester <tester@work.example>'" in result.output


def test_save_path(tmp_path):
    boss = _message(tmp_path, "boss.eml", "From: Boss <boss@example.com>\nTo: tester@example.com")
    friend = _message(tmp_path, "friend.eml", "From: Friend <friend@example.com>\nTo: tester@example.com")
    assert runner.invoke(app, ["save-path", str(boss)]).output.strip() == "/home/tester/Mail/work/boss"
    assert runner.invoke(app, ["save-path", str(friend)]).output.strip() == "=friend"


def test_fcc_path(tmp_path):
    to_list = _message(tmp_path, "list.eml", "From: tester@example.com\nTo: list@lists.example.com")
    to_pal = _message(tmp_path, "pal.eml", "From: tester@example.com\nTo: pal@example.com")
    assert runner.invoke(app, ["fcc-path", str(to_list)]).output.strip() == "=lists/sent"
    assert runner.invoke(app, ["fcc-path", str(to_pal)]).output.strip() == "=sent"


def test_save_path_missing_message(tmp_path):
    result = runner.invoke(app, ["save-path", str(tmp_path / "missing.eml")])
    assert result.exit_code == 1
    assert "unable to read" in result.output


def test_lookups():
    assert runner.invoke(app, ["charset", "X-UNKNOWN"]).output.strip() == "iso-8859-1"
    assert runner.invoke(app, ["charset", "utf-8"]).output.strip() == ""
    assert runner.invoke(app, ["iconv", "ISO-8859-1"]).output.strip() == "latin1"
    assert runner.invoke(app, ["crypt", "boss@example.com"]).output.splitlines() == [
        "0xDEADBEEF",
        "0xCAFEF00D",
    ]
    assert runner.invoke(app, ["mbox", "=inbox"]).output.strip() == "/home/tester/Mail/archive"


def test_invalid_config_exits_nonzero(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("mail: [unclosed\n")
    result = runner.invoke(app, ["--config", str(config), "list"])
    assert result.exit_code == 1
    assert "Invalid YAML" in result.output


def test_module_entry_point():
    env = dict(os.environ)
    env["PYTHONPATH"] = f"{PROJECT_ROOT / 'mailhooks' / 'src'}:{env.get('PYTHONPATH', '')}"
    env["MAILHOOKS_CONFIG_PATH"] = str(PROJECT_ROOT / "tests" / "data" / "config.yaml")
    result = subprocess.run(
        [sys.executable, "-m", "mailhooks.cli", "iconv", "iso-8859-1"],
        text=True,
        capture_output=True,
        cwd=PROJECT_ROOT,
        env=env,
    )
    assert result.returncode == 0
    assert result.stdout.strip() == "latin1"
