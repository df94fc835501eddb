"""Mode selection and execution: test, defaults, transfer."""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, TextIO, Tuple

import serial

from .config import PortConfig
from .device import DeviceSession, open_port
from .errors import DeviceError, SerialPortError
from .naming import device_name
from .settings import format_settings, parse_settings
from .transfer import TransferOutcome, transfer

logger = logging.getLogger(__name__)


class Mode(Enum):
    """Run modes, in priority order."""
    TEST = "test"
    DEFAULTS = "defaults"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class Parameters:
    """Validated command-line parameters."""
    port: int
    settings: Optional[str] = None
    echo: bool = False
    test: bool = False
    defaults: bool = False


@dataclass
class RunResult:
    """Outcome of one run; exit_code is what the process should return."""
    mode: Mode
    ok: bool
    message: str = ""
    listing: List[Tuple[str, str]] = field(default_factory=list)
    transfer: Optional[TransferOutcome] = None
    error: Optional[SerialPortError] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def select_mode(params: Parameters) -> Mode:
    """Pick the mode; test wins over defaults, defaults over transfer."""
    if params.test:
        return Mode.TEST
    if params.defaults:
        return Mode.DEFAULTS
    return Mode.TRANSFER


def _run_test(path: str, port_config: PortConfig, opener) -> RunResult:
    # Inverted on purpose: the port being openable is the failure outcome,
    # a port that cannot be opened is the success outcome.
    try:
        with DeviceSession.open(path, write_timeout=port_config.write_timeout, opener=opener):
            pass
    except DeviceError as e:
        logger.info(f"Test mode: {path} could not be opened ({e}), reporting success")
        return RunResult(Mode.TEST, ok=True, message=f"Serial port {path} could not be opened: {e}")
    logger.info(f"Test mode: {path} opened, reporting failure")
    return RunResult(Mode.TEST, ok=False, message=f"Serial port {path} opened successfully")


def _run_defaults(path: str, port_config: PortConfig, opener, out: TextIO) -> RunResult:
    with DeviceSession.open(path, write_timeout=port_config.write_timeout, opener=opener) as session:
        listing = format_settings(session.query_defaults())

    out.write(f"Serial port {path} settings:\n")
    for label, value in listing:
        out.write(f"{label}: {value}\n")
    out.flush()
    return RunResult(Mode.DEFAULTS, ok=True, listing=listing)


def _run_transfer(params: Parameters, path: str, port_config: PortConfig, opener,
                  line_source: Iterable[str], out: TextIO) -> RunResult:
    settings = parse_settings(params.settings) if params.settings else None

    with DeviceSession.open(path, write_timeout=port_config.write_timeout, opener=opener) as session:
        if settings is not None:
            session.apply_settings(settings)
        outcome = transfer(session, line_source, echo=params.echo, out=out,
                           encoding=port_config.encoding)

    if not outcome.ok:
        return RunResult(Mode.TRANSFER, ok=False, message=str(outcome.error),
                         transfer=outcome, error=outcome.error)
    return RunResult(Mode.TRANSFER, ok=True, transfer=outcome)


def run(
    params: Parameters,
    port_config: Optional[PortConfig] = None,
    line_source: Optional[Iterable[str]] = None,
    out: Optional[TextIO] = None,
    opener: Callable[..., serial.Serial] = open_port,
) -> RunResult:
    """
    Execute the mode selected by params.

    Configuration, device and partial-write errors are returned in the
    RunResult rather than raised. The device is always released before
    this returns.

    Args:
        params: Validated parameters.
        port_config: Port configuration, defaults to PortConfig().
        line_source: Transfer input, defaults to sys.stdin.
        out: Output stream for echo and listings, defaults to sys.stdout.
        opener: Factory used to open the serial device.
    """
    if port_config is None:
        port_config = PortConfig()
    if line_source is None:
        line_source = sys.stdin
    if out is None:
        out = sys.stdout

    mode = select_mode(params)
    path = device_name(params.port, template=port_config.device_template)
    logger.info(f"Running {mode.value} mode on port {params.port} ({path})")

    if mode is Mode.TEST:
        return _run_test(path, port_config, opener)

    try:
        if mode is Mode.DEFAULTS:
            return _run_defaults(path, port_config, opener, out)
        return _run_transfer(params, path, port_config, opener, line_source, out)
    except SerialPortError as e:
        logger.error(f"{mode.value} mode failed: {e}")
        return RunResult(mode, ok=False, message=str(e), error=e)
