"""Hook argument parsing and per-category normalisation."""

import pytest

from mailhooks.core.categories import HookCategory
from mailhooks.core.errors import HookArgumentError, HookNormalizationError
from mailhooks.core.normalize import Normalizer, parse_hook_args, valid_archive_command
from mailhooks.utils.paths import MailboxPaths
from mailhooks.utils.tokens import TokenStream


@pytest.fixture
def paths(settings) -> MailboxPaths:
    return MailboxPaths(settings)


@pytest.fixture
def normalizer(settings, paths) -> Normalizer:
    return Normalizer(settings, paths)


def test_parse_hook_args_rest_of_line_command():
    stream = TokenStream("!=work set record=+work-sent  ")
    pattern, command, negate = parse_hook_args(stream, [HookCategory.FOLDER])
    assert (pattern, command, negate) == ("=work", "set record=+work-sent", True)


def test_parse_hook_args_single_token_command():
    stream = TokenStream("'~f boss' =work extra")
    with pytest.raises(HookArgumentError, match="too many arguments"):
        parse_hook_args(stream, [HookCategory.SAVE])


@pytest.mark.parametrize("line", ["", "pattern", "!", "pattern ''"])
def test_parse_hook_args_too_few(line):
    with pytest.raises(HookArgumentError, match="too few arguments"):
        parse_hook_args(TokenStream(line), [HookCategory.FOLDER])


def test_mailbox_pattern_is_expanded_as_regex(settings, normalizer):
    settings.folder = "/home/tester/Mail.d"
    pattern, _ = normalizer.normalize(HookCategory.FOLDER, "=work", "cmd")
    assert pattern == r"/home/tester/Mail\.d/work"


def test_current_folder_shortcut_must_be_set(normalizer, paths):
    with pytest.raises(HookNormalizationError, match=r"current mailbox shortcut '\^' is unset"):
        normalizer.normalize(HookCategory.FOLDER, "^", "cmd")
    paths.enter_folder("/home/tester/Mail/inbox")
    pattern, _ = normalizer.normalize(HookCategory.FOLDER, "^", "cmd")
    assert pattern == "/home/tester/Mail/inbox"


def test_empty_expansion_is_rejected(settings, normalizer):
    settings.spoolfile = None
    with pytest.raises(HookNormalizationError, match="expanded to empty regexp"):
        normalizer.normalize(HookCategory.MBOX, "!", "=archive")


def test_archive_commands_need_both_placeholders(normalizer):
    assert valid_archive_command("gzip -cd %f > %t")
    with pytest.raises(HookNormalizationError, match="badly formatted command string"):
        normalizer.normalize(HookCategory.OPEN, r"\.gz$", "gzip -cd %f")
    pattern, command = normalizer.normalize(HookCategory.CLOSE, r"\.gz$", "gzip -c %t > %f")
    assert (pattern, command) == (r"\.gz$", "gzip -c %t > %f")


def test_simple_message_patterns_use_default_hook(settings, normalizer):
    pattern, _ = normalizer.normalize(HookCategory.SEND, "boss", "set signature=x")
    assert pattern == '~f "boss" !~P | (~P ~C "boss")'
    settings.default_hook = None
    pattern, _ = normalizer.normalize(HookCategory.SEND, "boss", "set signature=x")
    assert pattern == "boss"


def test_lookup_categories_skip_default_hook(normalizer):
    pattern, command = normalizer.normalize(HookCategory.CHARSET, "x-unknown", "iso-8859-1")
    assert (pattern, command) == ("x-unknown", "iso-8859-1")


def test_destination_commands_are_path_expanded(normalizer):
    _, command = normalizer.normalize(HookCategory.SAVE, "~f boss", "=work/boss")
    assert command == "/home/tester/Mail/work/boss"
    _, command = normalizer.normalize(HookCategory.MBOX, "=inbox", "~/archive")
    assert command == "/home/tester/archive"
