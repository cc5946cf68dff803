"""rc interpreter: variables, identity, hook commands, unhook, and source."""

import pytest

from fakes import log_events

from mailhooks.core.categories import HookCategory
from mailhooks.core.errors import (
    CommandError,
    HookArgumentError,
    HookCompileError,
    HookError,
    HookRemovalError,
)
from mailhooks.core.message import MessageContext


def test_set_unset_toggle_reset(service):
    settings = service.settings
    service.configure("set record=+outbox; set save_name")
    assert settings.record == "+outbox"
    assert settings.save_name is True
    service.configure("toggle save_name")
    assert settings.save_name is False
    service.configure("set invsave_name")
    assert settings.save_name is True
    service.configure("set nosave_name")
    assert settings.save_name is False
    service.configure("unset record")
    assert settings.record is None
    service.configure("reset record")
    assert settings.record == "=sent"


def test_set_from_alias_and_quoted_value(service):
    service.configure('set from="Tester <tester@work.example>"')
    assert service.settings.from_address == "Tester <tester@work.example>"


@pytest.mark.parametrize(
    "line, message",
    [
        ("set nosuch=1", "nosuch: unknown variable"),
        ("set save_name=maybe", "save_name: invalid value"),
        ("set folder", "set: folder needs a value"),
        ("toggle folder", "toggle: folder is not a boolean variable"),
        ("frobnicate now", "frobnicate: unknown command"),
        ("set", "set: too few arguments"),
    ],
)
def test_command_errors(service, line, message):
    with pytest.raises(CommandError, match=message):
        service.configure(line)


def test_comments_and_blank_lines_are_ignored(service):
    service.configure("")
    service.configure("   # just a comment")
    service.configure("set save_name # trailing comment")
    assert service.settings.save_name is True


def test_alternates_and_unalternates(service):
    service.configure("alternates '^me@' '^tester@work'")
    assert service.settings.alternates == ["^me@", "^tester@work"]
    service.configure("unalternates '^me@'")
    assert service.settings.alternates == ["^tester@work"]
    service.configure("unalternates *")
    assert service.settings.alternates == []
    with pytest.raises(CommandError, match="alternates"):
        service.configure("alternates '('")


def test_hook_commands_register(service):
    service.configure("folder-hook . set save_name=yes")
    service.configure("charset-hook x-unknown iso-8859-1")
    service.configure("fcc-save-hook '~t friend' =friends")
    categories = [entry.category for entry in service.registry]
    assert categories == [HookCategory.FOLDER, HookCategory.CHARSET, HookCategory.FCC, HookCategory.SAVE]
    assert service.registry.entries[0].command == "set save_name=yes"


def test_hook_argument_errors_propagate(service):
    with pytest.raises(HookArgumentError, match="too few arguments"):
        service.configure("folder-hook .")
    with pytest.raises(HookArgumentError, match="too many arguments"):
        service.configure("charset-hook a b c")


def test_unhook(service):
    service.configure("folder-hook . set save_name; send-hook ~A 'set save_name'")
    service.configure("fcc-save-hook ~A =x; charset-hook a b")
    service.configure("unhook fcc-save-hook folder-hook")
    assert [entry.category for entry in service.registry] == [HookCategory.SEND, HookCategory.CHARSET]
    service.configure("unhook *")
    assert len(service.registry) == 0
    with pytest.raises(CommandError, match="unhook: unknown hook type: bogus-hook"):
        service.configure("unhook bogus-hook")


def test_hook_cannot_unhook_its_own_category(service, channel):
    service.configure("folder-hook . unhook folder-hook")
    assert service.open_folder("/home/tester/Mail/inbox") is False
    assert channel.errors == ["unhook: can't delete a folder-hook from within a folder-hook"]
    assert len(service.registry) == 1


def test_hook_cannot_unhook_everything(service, channel):
    service.configure("folder-hook . 'unhook *'")
    assert service.open_folder("/x") is False
    assert channel.errors == ["unhook: can't do unhook * from within a hook"]


def test_hook_can_unhook_other_categories(service):
    service.configure("send-hook ~A 'set save_name'")
    service.configure("folder-hook . unhook send-hook")
    assert service.open_folder("/x")
    assert [entry.category for entry in service.registry] == [HookCategory.FOLDER]


def test_source_reports_file_and_line(service, tmp_path, log_stream):
    rc = tmp_path / "muttrc"
    rc.write_text(
        "# personal settings\n"
        "set save_name\n"
        "folder-hook . \\\n"
        "  set force_name\n"
        "set nosuch=1\n"
        "set record=never\n"
    )
    with pytest.raises(CommandError) as excinfo:
        service.configure(f"source {rc}")
    assert str(excinfo.value) == f"{rc}:5: nosuch: unknown variable"
    assert service.settings.save_name is True
    assert service.registry.entries[0].command == "set force_name"
    assert service.settings.record == "=sent"
    sourced = [event for event in log_events(log_stream) if event["msg"] == "rc_sourced"]
    assert sourced and sourced[0]["checksum"].startswith("sha256:")


def test_source_missing_file(service, tmp_path):
    with pytest.raises(CommandError, match="source: unable to read"):
        service.configure(f"source {tmp_path / 'missing'}")


def test_source_recursion_is_bounded(service, tmp_path):
    rc = tmp_path / "loop.rc"
    rc.write_text(f"source {rc}\n")
    with pytest.raises(HookError, match="recursion limit"):
        service.source(rc)


def test_remote_folder_triggers_account_hooks(service):
    service.configure("account-hook imaps://imap\\.work\\.example 'set from=tester@work.example'")
    service.configure("set folder=imaps://imap.work.example/")
    assert service.settings.from_address == "tester@work.example"


def test_account_hook_setting_remote_folder_does_not_recurse(service, log_stream):
    service.configure("account-hook imaps:// 'set folder=imaps://imap.example.com/; set save_name'")
    assert service.connect("imaps://imap.example.com/")
    assert service.settings.folder == "imaps://imap.example.com/"
    assert service.registry.active is None
    assert service.settings.save_name is True
    assert "account_hook_reentry_skipped" in [event["msg"] for event in log_events(log_stream)]


def test_folder_hook_changes_settings_for_later_lookups(service):
    service.configure("folder-hook =lists 'set save_name'")
    service.configure("folder-hook . 'set nosave_name'")
    service.open_folder("/home/tester/Mail/lists")
    assert service.settings.save_name is False
    service.configure("unhook folder-hook")
    service.configure("folder-hook . 'set nosave_name'")
    service.configure("folder-hook =lists 'set save_name'")
    service.open_folder("/home/tester/Mail/lists")
    assert service.settings.save_name is True
    assert service.paths.last_folder == "/home/tester/Mail/lists"


def test_send_hook_end_to_end(service):
    service.configure("send-hook . 'set nosave_name'")
    service.configure("send-hook boss 'set save_name'")
    assert service.compose(MessageContext.build(from_="tester@example.com", to="boss@example.com"))
    assert service.settings.save_name is True
    assert service.compose(MessageContext.build(from_="tester@example.com", to="pal@example.com"))
    assert service.settings.save_name is False


def test_removal_error_type(service):
    service.configure("folder-hook . set save_name")
    with service.registry.dispatching(HookCategory.FOLDER):
        with pytest.raises(HookRemovalError):
            service.configure("unhook folder-hook")


def test_deeply_nested_pattern_is_a_compile_error(service, channel):
    nested = "(" * 3000 + "~A" + ")" * 3000
    with pytest.raises(HookCompileError, match="pattern too deeply nested"):
        service.configure(f"send-hook '{nested}' 'set save_name'")
    service.configure(f"folder-hook . \"send-hook '{nested}' 'set save_name'\"")
    assert service.open_folder("/x") is False
    assert channel.errors == ["pattern too deeply nested"]
    assert [entry.category for entry in service.registry] == [HookCategory.FOLDER]


def test_compose_skips_send2_after_send_failure(service, channel):
    service.configure("send-hook ~A 'set nosuch=1'")
    service.configure("send2-hook ~A 'set save_name'")
    assert service.compose(MessageContext.build(to="pal@example.com")) is False
    assert channel.errors == ["nosuch: unknown variable"]
    assert service.settings.save_name is False
    assert service.registry.active is None
