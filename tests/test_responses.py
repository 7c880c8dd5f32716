import json
import re

import pytest

from loopback import responses
from loopback.modes import SimulatorMode
from loopback.responses import generate_response


def grbl(cmd):
    return generate_response(SimulatorMode.GRBL, cmd)


def tinyg(cmd):
    return generate_response(SimulatorMode.TINYG, cmd)


@pytest.mark.parametrize("cmd", ["G0 X10 Y20\n", "  spaced  \n", "", "\r\n", "$$"])
def test_echo_returns_input_unchanged(cmd):
    assert generate_response(SimulatorMode.ECHO, cmd) == cmd


def test_grbl_settings_block():
    out = grbl("$$\n")
    lines = out.splitlines()
    assert any(re.match(r"^\$\d+=", line) for line in lines)
    assert lines[-1] == "ok"
    assert out.endswith("\n")


@pytest.mark.parametrize(
    "cmd,first",
    [("$#", "[G54:"), ("$G", "[GC:"), ("$I", "[VER:"), ("$N", "$N0=")],
)
def test_grbl_query_blocks_end_with_ok(cmd, first):
    out = grbl(cmd + "\n")
    assert out.startswith(first)
    assert out.endswith("ok\n")


@pytest.mark.parametrize("cmd", ["$H", "$X", "$HZ", "$J=G91 X1 F100", "$10=2", "G0 X10", "M3 S1000", ""])
def test_grbl_plain_ok(cmd):
    assert grbl(cmd + "\n") == "ok\n"


def test_grbl_status_frame():
    out = grbl("?\n")
    assert re.match(r"^<[^>]+>\n$", out)
    assert "Idle" in out
    assert "MPos:0.000,0.000,0.000" in out


@pytest.mark.parametrize("cmd", ["~", "!", "\x18", "~\n", "!\n", "\x18\n"])
def test_grbl_realtime_commands_are_silent(cmd):
    assert grbl(cmd) == ""


def test_grbl_strips_line_number():
    assert grbl("N10 $$\n") == responses.GRBL_SETTINGS
    assert grbl("N5?\n") == responses.GRBL_STATUS
    assert grbl("N123 G1 X1 F100\n") == "ok\n"


def test_grbl_line_number_requires_uppercase_n():
    # "n10 ?" is not a line number, so this is an ordinary command
    assert grbl("n10 ?\n") == "ok\n"


def test_grbl_rule_order():
    names = [rule[0] for rule in responses.GRBL_RULES]
    assert names.index("settings") < names.index("system")
    assert names.index("home_unlock") < names.index("system")
    assert names[-1] == "gcode"
    assert responses.match_rule(responses.GRBL_RULES, "$$")[0] == "settings"
    assert responses.match_rule(responses.GRBL_RULES, "$X")[0] == "home_unlock"


@pytest.mark.parametrize("cmd", ['{"sr":null}', "G0 X10", "$sys", "", "anything"])
def test_tinyg_ack_is_valid_json(cmd):
    out = tinyg(cmd + "\n")
    assert out.endswith("\n")
    payload = json.loads(out)
    assert payload["r"] == {}
    assert isinstance(payload["f"], list)


def test_tinyg_status_report():
    payload = json.loads(tinyg("?\n"))
    assert "sr" in payload
    assert payload["sr"]["stat"] == 3
    assert {"posx", "posy", "posz"} <= set(payload["sr"])


def test_custom_returns_literal_for_anything():
    for cmd in ["TEST\n", "", "$$", "?"]:
        assert generate_response(SimulatorMode.CUSTOM, cmd, "CUSTOM_OK\n") == "CUSTOM_OK\n"


def test_boot_messages():
    assert responses.boot_messages(SimulatorMode.GRBL) == ["\n", "Grbl 1.1h ['$' for help]\n"]
    tinyg_boot = responses.boot_messages(SimulatorMode.TINYG)
    assert len(tinyg_boot) == 1
    assert "r" in json.loads(tinyg_boot[0])
    assert responses.boot_messages(SimulatorMode.ECHO) == []
    assert responses.boot_messages(SimulatorMode.CUSTOM) == []


def test_boot_messages_returns_copy():
    responses.boot_messages(SimulatorMode.GRBL).append("junk")
    assert len(responses.boot_messages(SimulatorMode.GRBL)) == 2
