from eve_engine.chat.commands import parse_command


def test_plain_text_is_a_message():
    command = parse_command("  how are you?  ")
    assert command.action == "message"
    assert command.text == "how are you?"


def test_empty_input_is_noop():
    assert parse_command("   ").action == "noop"


def test_tier_command_lowercases_argument():
    command = parse_command("/tier PRO")
    assert command.action == "set_tier"
    assert command.args["tier"] == "pro"


def test_attach_accepts_quoted_paths():
    command = parse_command('/attach "/tmp/my photo.png"')
    assert command.action == "attach"
    assert command.args["path"] == "/tmp/my photo.png"


def test_attach_joins_unquoted_paths_with_spaces():
    command = parse_command("/attach /tmp/my photo.png")
    assert command.args["path"] == "/tmp/my photo.png"


def test_selfie_keeps_scene_text():
    command = parse_command("/selfie on a rooftop at night")
    assert command.action == "selfie"
    assert command.args["scene"] == "on a rooftop at night"


def test_no_arg_commands():
    assert parse_command("/imagine").action == "force_image"
    assert parse_command("/reset").action == "reset"
    assert parse_command("/exit").action == "quit"
    assert parse_command("/help").action == "help"


def test_unknown_command():
    command = parse_command("/dance now")
    assert command.action == "unknown"
    assert command.args == {"command": "dance", "arg": "now"}
