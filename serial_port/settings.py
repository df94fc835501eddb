"""Line settings parsing and formatting (baud rate, parity, data bits, stop bits)."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

import serial

from .errors import ConfigError

logger = logging.getLogger(__name__)


class Parity(Enum):
    """Parity modes; values are the pyserial parity constants."""
    NONE = serial.PARITY_NONE
    ODD = serial.PARITY_ODD
    EVEN = serial.PARITY_EVEN
    MARK = serial.PARITY_MARK
    SPACE = serial.PARITY_SPACE

    @property
    def label(self) -> str:
        return self.name.capitalize()


# Accepted stop bit tokens
STOP_BITS = {
    "1": serial.STOPBITS_ONE,
    "1.5": serial.STOPBITS_ONE_POINT_FIVE,
    "2": serial.STOPBITS_TWO,
}

MIN_DATA_BITS = serial.FIVEBITS
MAX_DATA_BITS = serial.EIGHTBITS

UNKNOWN_FORMAT = "??? <value={}>"


@dataclass(frozen=True)
class LineSettings:
    """The four line-control fields managed by this tool.

    Settings queried from a device may hold values outside the known sets;
    those are kept as reported so they can still be displayed.
    """
    baud_rate: int
    parity: Union[Parity, Any]
    data_bits: int
    stop_bits: float


def _parse_baud_rate(token: str) -> int:
    try:
        baud_rate = int(token)
    except ValueError:
        raise ConfigError(f"invalid baud rate: {token!r}")
    if baud_rate <= 0:
        raise ConfigError(f"invalid baud rate: {token!r}")
    return baud_rate


def parse_parity(token: str) -> Parity:
    """Parse a parity name or its single-letter code, ignoring case."""
    text = token.strip().upper()
    for parity in Parity:
        if text in (parity.value, parity.name):
            return parity
    raise ConfigError(f"invalid parity: {token!r}")


def _parse_data_bits(token: str) -> int:
    try:
        data_bits = int(token)
    except ValueError:
        raise ConfigError(f"invalid data bits: {token!r}")
    if not MIN_DATA_BITS <= data_bits <= MAX_DATA_BITS:
        raise ConfigError(f"data bits out of range [{MIN_DATA_BITS},{MAX_DATA_BITS}]: {data_bits}")
    return data_bits


def _parse_stop_bits(token: str) -> float:
    if token not in STOP_BITS:
        raise ConfigError(f"invalid stop bits: {token!r}")
    return STOP_BITS[token]


def parse_settings(token: str) -> LineSettings:
    """
    Parse a "baud,parity,databits,stopbits" settings token.

    Args:
        token: Settings token, e.g. "9600,N,8,1".

    Returns:
        LineSettings with all four fields set.

    Raises:
        ConfigError: On a wrong field count or the first invalid field.
    """
    fields = [field.strip() for field in token.split(",")]
    if len(fields) != 4:
        raise ConfigError(f"wrong field count in settings {token!r}: expected 4, got {len(fields)}")

    baud, parity, data_bits, stop_bits = fields
    settings = LineSettings(
        baud_rate=_parse_baud_rate(baud),
        parity=parse_parity(parity),
        data_bits=_parse_data_bits(data_bits),
        stop_bits=_parse_stop_bits(stop_bits),
    )
    logger.debug(f"Parsed settings {token!r}: {settings}")
    return settings


def _format_stop_bits(stop_bits) -> str:
    for text, value in STOP_BITS.items():
        if stop_bits == value:
            return text
    return UNKNOWN_FORMAT.format(stop_bits)


def _format_parity(parity) -> str:
    if isinstance(parity, Parity):
        return parity.label
    return UNKNOWN_FORMAT.format(parity)


def _format_data_bits(data_bits) -> str:
    if isinstance(data_bits, int) and MIN_DATA_BITS <= data_bits <= MAX_DATA_BITS:
        return str(data_bits)
    return UNKNOWN_FORMAT.format(data_bits)


def format_settings(settings: LineSettings) -> List[Tuple[str, str]]:
    """Return (label, value) display pairs; unknown values never fail."""
    return [
        ("Baud Rate", str(settings.baud_rate)),
        ("Parity", _format_parity(settings.parity)),
        ("Data Bits", _format_data_bits(settings.data_bits)),
        ("Stop Bits", _format_stop_bits(settings.stop_bits)),
    ]


def settings_token(settings: LineSettings) -> str:
    """Render settings as a token accepted by parse_settings."""
    return ",".join(value for _, value in format_settings(settings))


def to_serial_settings(settings: LineSettings) -> Dict[str, Any]:
    """Convert to the keys used by serial.Serial.get_settings()/apply_settings()."""
    return {
        "baudrate": settings.baud_rate,
        "parity": settings.parity.value,
        "bytesize": settings.data_bits,
        "stopbits": settings.stop_bits,
    }


def from_serial_settings(data: Dict[str, Any]) -> LineSettings:
    """Build LineSettings from a serial.Serial.get_settings() dictionary."""
    try:
        parity = Parity(data.get("parity"))
    except ValueError:
        parity = data.get("parity")
    return LineSettings(
        baud_rate=data.get("baudrate"),
        parity=parity,
        data_bits=data.get("bytesize"),
        stop_bits=data.get("stopbits"),
    )
