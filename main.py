#!/usr/bin/env python3
"""
SerialPort - write standard input to a serial port

Reads lines from stdin and sends them, CR-LF terminated, to a numbered
serial port, optionally reconfiguring the port first.
"""

import argparse
import logging
import re
import sys
from collections import namedtuple
from importlib import metadata
from pathlib import Path

import yaml

from serial_port.config import find_config
from serial_port.dispatcher import Parameters, run
from serial_port.logging_config import setup_logging
from serial_port.naming import MAX_PORT, MIN_PORT

logger = logging.getLogger(__name__)

APPLICATION_NAME = "SerialPort"


def _get_version():
    """Installed package version, or the version in a source checkout's pyproject.toml."""
    try:
        return metadata.version("serial-port")
    except metadata.PackageNotFoundError:
        logger.debug("serial-port is not installed, reading pyproject.toml")
    pyproject = Path(__file__).parent / "pyproject.toml"
    if pyproject.exists():
        match = re.search(r'^version\s*=\s*"([^"]+)"', pyproject.read_text(), re.MULTILINE)
        if match:
            return match.group(1)
    return "unknown"


__version__ = _get_version()


MANUAL = f"""\
{APPLICATION_NAME} writes each line read from standard input to a serial port,
terminating every line with CR-LF.

  --port=N        Serial port number, 1 to {MAX_PORT}.
  --settings=S    Reconfigure the port before writing. S is
                  baud,parity,databits,stopbits, e.g. 9600,N,8,1.
                  Parity is N(one), O(dd), E(ven), M(ark) or S(pace),
                  data bits 5 to 8, stop bits 1, 1.5 or 2.
  --echo          Copy each line to standard output once it has been written.
  --defaults      Show the port's current settings without changing them.
  --test          Check whether the port can be opened.

Test mode convention: if the port CAN be opened the exit code is 1;
if it CANNOT be opened the exit code is 0.

Every other failure (bad settings, device error, partial write) stops the
run with exit code 1. Lines already written are not retracted.
"""

Switch = namedtuple("Switch", ["flags", "options"])

# Recognized switches; handed to build_parser() and never modified.
SWITCHES = (
    Switch(("-?", "-h", "--help"), {"action": "help", "help": "Display the program options syntax"}),
    Switch(("-v", "--version"), {"action": "version", "help": "Display the program version"}),
    Switch(("--manual",), {"action": "store_true", "help": "Display the manual"}),
    Switch(("--port",), {"type": "port", "metavar": "N", "help": f"Serial port number ({MIN_PORT}-{MAX_PORT})"}),
    Switch(("--settings",), {"metavar": "BAUD,PARITY,DATABITS,STOPBITS", "help": "Line settings to apply"}),
    Switch(("--echo",), {"action": "store_true", "help": "Echo written lines to stdout"}),
    Switch(("--test",), {"action": "store_true", "help": "Test whether the port can be opened"}),
    Switch(("--defaults",), {"action": "store_true", "help": "Display the port's current settings"}),
    Switch(("--config",), {"metavar": "PATH", "help": "Path to configuration file"}),
    Switch(("--debug",), {"action": "store_true", "help": "Show log output on stderr"}),
)


def _port_number(value):
    """argparse type for --port."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port number: {value!r}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"port must be in range {MIN_PORT}-{MAX_PORT}: {port}")
    return port


def build_parser(switches=SWITCHES):
    """Build the argument parser from a switch table."""
    parser = argparse.ArgumentParser(
        prog=APPLICATION_NAME,
        description="Write lines from standard input to a serial port",
        add_help=False,
    )
    for switch in switches:
        options = dict(switch.options)
        if options.get("type") == "port":
            options["type"] = _port_number
        if options.get("action") == "version":
            options["version"] = f"{APPLICATION_NAME} v{__version__}"
        parser.add_argument(*switch.flags, **options)
    return parser


def main(argv=None, stdin=None, stdout=None, stderr=None):
    """
    Run the tool and return its exit code.

    Args:
        argv: Command-line arguments (without program name).
        stdin: Line source, defaults to sys.stdin.
        stdout: Echo and listing stream, defaults to sys.stdout.
        stderr: Diagnostic stream, defaults to sys.stderr.
    """
    if stdin is None:
        stdin = sys.stdin
    if stdout is None:
        stdout = sys.stdout
    if stderr is None:
        stderr = sys.stderr

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.manual:
        stderr.write(MANUAL)
        return 0

    if args.port is None:
        parser.error("--port is required")

    try:
        config = find_config(args.config)
    except (FileNotFoundError, yaml.YAMLError) as e:
        stderr.write(f"ERROR: {e}\n")
        return 1

    setup_logging(
        log_file=config.logging.file,
        level="DEBUG" if args.debug else config.logging.level,
        console=args.debug,
    )
    logger.info(f"{APPLICATION_NAME} v{__version__} starting")

    params = Parameters(
        port=args.port,
        settings=args.settings,
        echo=args.echo,
        test=args.test,
        defaults=args.defaults,
    )
    result = run(params, port_config=config.port, line_source=stdin, out=stdout)

    if result.ok:
        if result.message:
            stdout.write(result.message + "\n")
    else:
        stderr.write(f"ERROR: {result.message}\n")
    return result.exit_code


def cli():
    """CLI entry point for the serial-port console script."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
