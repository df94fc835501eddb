"""Serial device session: open, configure, query, write, close."""

import logging
import os
import sys
from typing import Any, Callable, Dict, Optional

import serial

from .errors import DeviceError
from .settings import LineSettings, from_serial_settings, to_serial_settings

if os.name == "posix":
    import termios

    DEVICE_ERRORS = (OSError, termios.error)
else:
    termios = None
    DEVICE_ERRORS = (OSError,)

logger = logging.getLogger(__name__)

# Mark/space parity flag; pyserial uses the same value where termios lacks it
CMSPAR = getattr(termios, "CMSPAR", 0o10000000000 if sys.platform.startswith("linux") else 0)


def _error_code(error: Exception) -> Optional[int]:
    """errno of an OSError, or the leading code of a termios.error."""
    code = getattr(error, "errno", None)
    if code is None and error.args and isinstance(error.args[0], int):
        code = error.args[0]
    return code


def _decode_line_state(attrs: list) -> Dict[str, Any]:
    """Translate a tcgetattr() list into serial.Serial attribute values."""
    iflag, _, cflag, _, _, ospeed, _ = attrs
    state: Dict[str, Any] = {}

    speeds = {getattr(termios, f"B{rate}"): rate
              for rate in serial.Serial.BAUDRATES if hasattr(termios, f"B{rate}")}
    if ospeed in speeds:
        state["baudrate"] = speeds[ospeed]
    else:
        logger.warning(f"Unrecognized speed code {ospeed}, baud rate not preserved")

    state["bytesize"] = {
        termios.CS5: serial.FIVEBITS,
        termios.CS6: serial.SIXBITS,
        termios.CS7: serial.SEVENBITS,
        termios.CS8: serial.EIGHTBITS,
    }[cflag & termios.CSIZE]

    if not cflag & termios.PARENB:
        state["parity"] = serial.PARITY_NONE
    elif cflag & CMSPAR:
        state["parity"] = serial.PARITY_MARK if cflag & termios.PARODD else serial.PARITY_SPACE
    else:
        state["parity"] = serial.PARITY_ODD if cflag & termios.PARODD else serial.PARITY_EVEN

    state["stopbits"] = serial.STOPBITS_TWO if cflag & termios.CSTOPB else serial.STOPBITS_ONE
    state["xonxoff"] = bool(iflag & termios.IXON)
    state["rtscts"] = bool(cflag & getattr(termios, "CRTSCTS", 0))
    return state


def read_line_state(path: str) -> Dict[str, Any]:
    """
    Read the line settings a POSIX device currently holds.

    Returns an empty dict where termios is unavailable.

    Raises:
        OSError: If the device cannot be opened.
        termios.error: If the device is not a terminal.
    """
    if termios is None:
        return {}
    fd = os.open(path, os.O_RDWR | os.O_NOCTTY | os.O_NONBLOCK)
    try:
        attrs = termios.tcgetattr(fd)
    finally:
        os.close(fd)
    state = _decode_line_state(attrs)
    logger.debug(f"Line state of {path} before open: {state}")
    return state


def open_port(path: str, write_timeout: Optional[float] = None) -> serial.Serial:
    """
    Open path with pyserial without changing its line settings.

    pyserial writes its own attributes to the device when it opens it, so
    the port object is preloaded with the settings the device already has.
    """
    port = serial.Serial()
    port.port = path
    port.write_timeout = write_timeout
    for name, value in read_line_state(path).items():
        setattr(port, name, value)
    port.open()
    return port


class DeviceSession:
    """
    Exclusive owner of one open serial port handle.

    Use DeviceSession.open() to acquire and a ``with`` block to guarantee
    release; close() may be called any number of times.
    """

    def __init__(self, port: serial.Serial, path: str):
        self._port = port
        self.path = path

    @classmethod
    def open(
        cls,
        path: str,
        write_timeout: Optional[float] = None,
        opener: Callable[..., serial.Serial] = open_port,
    ) -> "DeviceSession":
        """
        Open the device at path.

        Args:
            path: Device path, e.g. "/dev/ttyS0" or "COM1".
            write_timeout: Optional bound on blocking writes (seconds).
            opener: Factory returning an open serial.Serial-like object.

        Raises:
            DeviceError: If the device is missing, busy or access is denied.
        """
        logger.info(f"Opening serial port {path}")
        try:
            port = opener(path, write_timeout=write_timeout)
        except DEVICE_ERRORS + (ValueError,) as e:
            logger.error(f"Failed to open {path}: {e}")
            raise DeviceError("open failed", path=path, code=_error_code(e)) from e
        return cls(port, path)

    def _read_state(self) -> dict:
        try:
            return self._port.get_settings()
        except DEVICE_ERRORS as e:
            logger.error(f"Failed to read settings of {self.path}: {e}")
            raise DeviceError("read state failed", path=self.path, code=_error_code(e)) from e

    def apply_settings(self, settings: LineSettings) -> None:
        """Overwrite the four managed fields, leaving flow control and timeouts as reported."""
        state = self._read_state()
        state.update(to_serial_settings(settings))
        logger.info(f"Applying settings to {self.path}: {state}")
        try:
            self._port.apply_settings(state)
        except DEVICE_ERRORS + (ValueError,) as e:
            logger.error(f"Failed to apply settings to {self.path}: {e}")
            raise DeviceError("apply state failed", path=self.path, code=_error_code(e)) from e

    def query_defaults(self) -> LineSettings:
        """Return the current managed fields without modifying the device."""
        settings = from_serial_settings(self._read_state())
        logger.debug(f"Current settings of {self.path}: {settings}")
        return settings

    def write_line(self, data: bytes) -> int:
        """
        Write data in a single blocking call and wait for it to drain.

        Returns:
            Number of bytes the driver accepted.

        Raises:
            DeviceError: If the driver rejects the write, the drain fails
                or the write times out.
        """
        logger.debug(f"Writing to {self.path}: {data!r}")
        try:
            written = self._port.write(data)
            self._port.flush()
        except DEVICE_ERRORS as e:
            logger.error(f"Write to {self.path} failed: {e}")
            raise DeviceError("write failed", path=self.path, code=_error_code(e)) from e
        return written

    def close(self) -> None:
        """Release the handle. Safe to call more than once."""
        if self._port is None:
            return
        port, self._port = self._port, None
        logger.info(f"Closing serial port {self.path}")
        port.close()

    @property
    def is_open(self) -> bool:
        return self._port is not None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
