import pytest

from tellocmd.console import run_console, print_help
from tellocmd.interpreter import CommandInterpreter


def scripted(lines):
    """input() replacement that raises EOFError when the script runs out"""
    remaining = list(lines)
    prompts = []

    def fake_input(prompt):
        prompts.append(prompt)
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    fake_input.prompts = prompts
    return fake_input


@pytest.fixture
def interpreter(connected_client):
    del connected_client.channel.sent[:]
    return CommandInterpreter(connected_client, help_printer=print_help)


def test_shortcuts_and_quit(connected_client, interpreter, channel):
    fake_input = scripted(["0", "up 20", "1", "2", "down 20"])
    run_console(connected_client, interpreter, input_fn=fake_input)
    assert channel.messages[:3] == ["takeoff", "up 20", "land"]
    assert "down 20" not in channel.messages
    assert len(fake_input.prompts) == 4


def test_end_quits(connected_client, interpreter, channel):
    run_console(connected_client, interpreter, input_fn=scripted(["end", "up 20"]))
    assert "up 20" not in channel.messages


def test_eof_ends_loop(connected_client, interpreter, channel):
    run_console(connected_client, interpreter, input_fn=scripted(["cw 90"]))
    assert channel.messages[0] == "cw 90"


def test_keyboard_interrupt_ends_loop(connected_client, interpreter):
    def interrupted(prompt):
        raise KeyboardInterrupt

    run_console(connected_client, interpreter, input_fn=interrupted)


def test_help_is_printed(connected_client, interpreter, channel, capsys):
    run_console(connected_client, interpreter, input_fn=scripted(["?", "help"]))
    out = capsys.readouterr().out
    assert out.count("Available commands") == 2
    assert channel.messages == ["battery?"]


def test_failed_command_does_not_stop_loop(connected_client, interpreter, channel):
    channel.reply("flip x", "error")
    run_console(connected_client, interpreter, input_fn=scripted(["flip x", "ccw 30"]))
    assert channel.messages[:2] == ["flip x", "ccw 30"]


def test_battery_reported_on_exit_only_when_connected(client, channel):
    interpreter = CommandInterpreter(client)
    run_console(client, interpreter, input_fn=scripted(["2"]))
    assert channel.sent == []
