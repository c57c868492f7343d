from nebula_installer.lib.sanitize import sanitize_log_line


def test_plain_text_is_unchanged():
    assert sanitize_log_line("hello world") == "hello world"


def test_trims_whitespace():
    assert sanitize_log_line("   resolving dependencies...  ") == "resolving dependencies..."


def test_strips_csi_color_codes():
    assert sanitize_log_line("\x1b[1;32m:: Synchronizing\x1b[0m") == ":: Synchronizing"


def test_strips_osc_terminated_by_bel():
    assert sanitize_log_line("\x1b]0;window title\x07done") == "done"


def test_strips_osc_terminated_by_st():
    assert sanitize_log_line("\x1b]2;title\x1b\\ok") == "ok"


def test_strips_two_char_escape():
    assert sanitize_log_line("\x1b7core") == "core"


def test_truncated_csi_is_dropped():
    assert sanitize_log_line("abc\x1b[") == "abc"
    assert sanitize_log_line("abc\x1b[12;3") == "abc"


def test_lone_escape_at_end_is_dropped():
    assert sanitize_log_line("abc\x1b") == "abc"


def test_control_characters_removed():
    assert sanitize_log_line("a\x00b\x7fc\rd\x08") == "abcd"


def test_bytes_input_decoded_with_replacement():
    assert sanitize_log_line(b"caf\xc3\xa9 \xff") == "caf\u00e9 \ufffd"


def test_only_escapes_gives_empty_line():
    assert sanitize_log_line("\x1b[2K\x1b[1G") == ""
