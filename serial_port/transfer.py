"""Line-by-line transfer of text input to a serial device."""

import logging
import sys
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, TextIO

from .device import DeviceSession
from .errors import DeviceError, PartialWriteError, SerialPortError

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r\n"


@dataclass
class TransferOutcome:
    """Result of a transfer: progress made and the error that stopped it, if any."""
    lines_written: int = 0
    bytes_written: int = 0
    error: Optional[SerialPortError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def read_lines(source: Iterable[str]) -> Iterator[str]:
    """Yield lines from a text stream or iterable with one line terminator removed."""
    for line in source:
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        yield line


def transfer(
    session: DeviceSession,
    line_source: Iterable[str],
    echo: bool = False,
    out: Optional[TextIO] = None,
    encoding: str = "utf-8",
) -> TransferOutcome:
    """
    Write each input line to the device terminated by CR-LF.

    Stops at the first device error or short write; lines already sent
    stay sent.

    Args:
        session: Open device session.
        line_source: Text stream or iterable of lines.
        echo: Copy each line to out once its write is confirmed.
        out: Echo stream, defaults to sys.stdout.
        encoding: Text encoding used on the wire.

    Returns:
        TransferOutcome with counts and the stopping error, if any.
    """
    if out is None:
        out = sys.stdout
    outcome = TransferOutcome()

    for line in read_lines(line_source):
        data = (line + LINE_TERMINATOR).encode(encoding, errors="replace")
        try:
            written = session.write_line(data)
        except DeviceError as e:
            outcome.error = e
            break

        if written != len(data):
            logger.error(f"Partial write to {session.path}: requested {len(data)}, written {written}")
            outcome.error = PartialWriteError(requested=len(data), written=written)
            break

        outcome.lines_written += 1
        outcome.bytes_written += written
        if echo:
            out.write(line + "\n")
            out.flush()

    logger.info(f"Transfer to {session.path} finished: {outcome.lines_written} lines, "
                f"{outcome.bytes_written} bytes")
    return outcome
