"""Error types raised by the serial port transfer engine."""

from typing import Optional


class SerialPortError(Exception):
    """Base class for all serial-port failures reported to the user."""


class ConfigError(SerialPortError):
    """Malformed or out-of-range settings token."""


class DeviceError(SerialPortError):
    """Failure reported by the serial device driver."""

    def __init__(self, message: str, path: Optional[str] = None, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.code = code

    def __str__(self) -> str:
        text = self.message
        if self.path:
            text = f"{text}: {self.path}"
        if self.code is not None:
            text = f"{text} (error {self.code})"
        if self.__cause__ is not None:
            text = f"{text}: {self.__cause__}"
        return text


class PartialWriteError(SerialPortError):
    """The device accepted fewer bytes than were submitted."""

    def __init__(self, requested: int, written):
        super().__init__(f"partial write: requested {requested} bytes, device accepted {written}")
        self.requested = requested
        self.written = written
