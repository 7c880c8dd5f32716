#!/usr/bin/env python3
"""Thin CLI around the loopback simulator.

This script is intentionally minimal: it wires library pieces together and
returns meaningful exit codes (0 ok, 1 usage, 2 configuration/port error).
"""

import argparse
import json
import logging
import os
import sys

from .constants import LoopbackConstants
from .devices import list_devices
from .errors import ConfigurationError


def _default_delay() -> int:
    raw = os.getenv(LoopbackConstants.ENV_RESPONSE_DELAY_MS)
    try:
        return max(0, int(raw)) if raw is not None else LoopbackConstants.DEFAULT_RESPONSE_DELAY_MS
    except ValueError:
        return LoopbackConstants.DEFAULT_RESPONSE_DELAY_MS


def cmd_devices(args) -> int:
    devices = list_devices()
    if args.json:
        print(json.dumps([d.to_dict() for d in devices], indent=2))
        return 0
    for d in devices:
        print(f"{d.uri:<20} {d.description} ({d.manufacturer})")
    return 0


def cmd_repl(args, stdin=None, stdout=None) -> int:
    from .byte_logger import ByteDumpLogger
    from .transport import LoopbackTransport

    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    byte_logger = ByteDumpLogger(args.dump) if args.dump else None
    transport = None
    try:
        transport = LoopbackTransport(
            args.uri, response_delay_ms=args.delay, timeout=args.settle, byte_logger=byte_logger
        )
        for line in stdin:
            transport.write(line.encode("utf-8"))
            # Collect everything the simulator answers within the settle window
            while True:
                out = transport.readline()
                if not out:
                    break
                stdout.write(out.decode("utf-8"))
                stdout.flush()
    finally:
        if transport:
            transport.close()
        if byte_logger:
            byte_logger.close()
    return 0


def cmd_bridge(args) -> int:
    from .bridge import SerialBridge
    from .byte_logger import ByteDumpLogger
    from .connection import LoopbackConnection
    from .transport import SerialTransport

    connection = LoopbackConnection(args.uri, args.delay)
    try:
        transport = SerialTransport(port=args.port, baudrate=args.baudrate, timeout=0.1)
    except OSError as e:  # serial.SerialException is an OSError
        print(f"Cannot open {args.port}: {e}", file=sys.stderr)
        return 2

    byte_logger = ByteDumpLogger(args.dump) if args.dump else None
    bridge = SerialBridge(transport, connection, byte_logger=byte_logger)
    print(f"Bridging {args.uri} on {args.port} at {args.baudrate} baud. Press Ctrl+C to exit")
    try:
        bridge.run()
    except KeyboardInterrupt:
        print("\nBridge stopped")
    finally:
        bridge.close()
        if byte_logger:
            byte_logger.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    default_uri = os.getenv(LoopbackConstants.ENV_URI, LoopbackConstants.DEFAULT_CLI_URI)

    parser = argparse.ArgumentParser(prog="loopback-sim", description="Loopback CNC controller simulator")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="cmd")

    p = sub.add_parser("devices", help="list simulated devices")
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("repl", help="type commands, read simulated responses")
    p.add_argument("--uri", default=default_uri)
    p.add_argument("--delay", type=int, default=_default_delay(), help="response delay (ms)")
    p.add_argument("--settle", type=float, default=0.25, help="seconds to wait for more response lines")
    p.add_argument("--dump", help="write traffic to PREFIX.dump and PREFIX.dump.txt")

    p = sub.add_parser("bridge", help="serve a simulator on a serial port")
    p.add_argument("--port", required=True)
    p.add_argument("--baudrate", type=int, default=115200)
    p.add_argument("--uri", default=default_uri)
    p.add_argument("--delay", type=int, default=_default_delay(), help="response delay (ms)")
    p.add_argument("--dump", help="write traffic to PREFIX.dump and PREFIX.dump.txt")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.cmd == "devices":
            return cmd_devices(args)
        if args.cmd == "repl":
            return cmd_repl(args)
        if args.cmd == "bridge":
            return cmd_bridge(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
