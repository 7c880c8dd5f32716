"""Response synthesis for the simulated controllers.

Pure helpers: (mode, command text) -> response text. Each protocol is an
ordered table of (predicate, response) rules evaluated first-match, so the
dispatch order is data that tests can inspect. Adding a controller means
adding a table.

Synthesis never raises for unknown input; it degrades to ``ok`` (GRBL) or a
generic JSON acknowledgement (TinyG).
"""

from __future__ import annotations
import re
from typing import Callable, Dict, List, Tuple

from .constants import LoopbackConstants
from .modes import SimulatorMode

Predicate = Callable[[str], bool]
Rule = Tuple[str, Predicate, str]  # (name, predicate, response)

OK = "ok\n"
SOFT_RESET = "\x18"

# GRBL
GRBL_WELCOME = "Grbl 1.1h ['$' for help]\n"
GRBL_SETTINGS = "$0=10\n$1=25\n$2=0\n$3=0\nok\n"
GRBL_OFFSETS = "[G54:0.000,0.000,0.000]\n[G55:0.000,0.000,0.000]\nok\n"
GRBL_PARSER_STATE = "[GC:G0 G54 G17 G21 G90 G94 M5 M9 T0 F0 S0]\nok\n"
GRBL_BUILD_INFO = "[VER:1.1h.20190825:]\n[OPT:V,15,128]\nok\n"
GRBL_STARTUP_LINES = "$N0=\n$N1=\nok\n"
GRBL_STATUS = "<Idle|MPos:0.000,0.000,0.000|FS:0,0|WCO:0.000,0.000,0.000>\n"

# TinyG (single-line JSON)
TINYG_WELCOME = '{"r":{"fv":0.970,"fb":440.20,"hp":3,"hv":0,"id":"3X3566-YMB"},"f":[1,0,6,6887]}\n'
TINYG_ACK = '{"r":{},"f":[1,0,3,0]}\n'
TINYG_STATUS = (
    '{"sr":{"stat":3,"momo":1,"coor":1,"plan":0,"path":0,"dist":0,"frmo":1,'
    '"posx":0.000,"posy":0.000,"posz":0.000}}\n'
)

_LINE_NUMBER = re.compile(r"^N\d+\s*")


def _equals(text: str) -> Predicate:
    return lambda cmd: cmd == text


def _startswith(*prefixes: str) -> Predicate:
    return lambda cmd: cmd.startswith(prefixes)


def _always(cmd: str) -> bool:
    return True


GRBL_RULES: List[Rule] = [
    ("settings", _equals("$$"), GRBL_SETTINGS),
    ("offsets", _equals("$#"), GRBL_OFFSETS),
    ("parser_state", _equals("$G"), GRBL_PARSER_STATE),
    ("build_info", _equals("$I"), GRBL_BUILD_INFO),
    ("startup_lines", _equals("$N"), GRBL_STARTUP_LINES),
    ("home_unlock", _startswith("$H", "$X"), OK),
    ("system", _startswith("$"), OK),
    ("status", _equals("?"), GRBL_STATUS),
    ("realtime", lambda cmd: cmd.startswith(("~", "!")) or cmd == SOFT_RESET, ""),
    ("empty", _equals(""), OK),
    ("gcode", _always, OK),
]

TINYG_RULES: List[Rule] = [
    ("json", _startswith("{"), TINYG_ACK),
    ("status", _equals("?"), TINYG_STATUS),
    ("settings", _startswith("$"), TINYG_ACK),
    ("gcode", _always, TINYG_ACK),
]

BOOT_MESSAGES: Dict[SimulatorMode, List[str]] = {
    SimulatorMode.GRBL: ["\n", GRBL_WELCOME],
    SimulatorMode.TINYG: [TINYG_WELCOME],
}


def match_rule(rules: List[Rule], command: str) -> Rule:
    """Return the first rule whose predicate accepts ``command``."""
    for rule in rules:
        if rule[1](command):
            return rule
    # Tables end with a catch-all rule
    return ("fallback", _always, OK)


def strip_line_number(command: str) -> str:
    """Drop a leading ``N<digits>`` token (and following whitespace)."""
    return _LINE_NUMBER.sub("", command, count=1).strip()


def grbl_response(command: str) -> str:
    cmd = strip_line_number(command.strip())
    return match_rule(GRBL_RULES, cmd)[2]


def tinyg_response(command: str) -> str:
    return match_rule(TINYG_RULES, command.strip())[2]


def boot_messages(mode: SimulatorMode) -> List[str]:
    """Unsolicited messages a controller sends when the port opens."""
    return list(BOOT_MESSAGES.get(mode, []))


def generate_response(
    mode: SimulatorMode,
    command: str,
    custom_response: str = LoopbackConstants.DEFAULT_CUSTOM_RESPONSE,
) -> str:
    """Synthesize the controller response for one command.

    Args:
        mode: Simulator mode
        command: Command text as sent (may include a trailing newline)
        custom_response: Literal returned in CUSTOM mode

    Returns:
        Response text; an empty string means nothing should be emitted.
    """
    if mode is SimulatorMode.ECHO:
        return command
    if mode is SimulatorMode.GRBL:
        return grbl_response(command)
    if mode is SimulatorMode.TINYG:
        return tinyg_response(command)
    return custom_response
