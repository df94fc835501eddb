"""Pytest fixtures for SerialPort tests."""

import os

import pytest
from unittest.mock import MagicMock

import serial


@pytest.fixture
def mock_serial():
    """Mock serial port that accepts every write in full."""
    mock = MagicMock()
    mock.write.side_effect = lambda data: len(data)
    mock.flush.return_value = None
    mock.get_settings.return_value = {
        "baudrate": 9600,
        "bytesize": serial.EIGHTBITS,
        "parity": serial.PARITY_NONE,
        "stopbits": serial.STOPBITS_ONE,
        "xonxoff": False,
        "dsrdtr": False,
        "rtscts": True,
        "timeout": None,
        "write_timeout": None,
        "inter_byte_timeout": None,
    }
    return mock


@pytest.fixture
def opener(mock_serial):
    """Opener returning mock_serial, recording how it was called."""
    return MagicMock(return_value=mock_serial)


@pytest.fixture
def failing_opener():
    """Opener that fails as pyserial does for a missing device."""
    return MagicMock(side_effect=serial.SerialException(2, "could not open port /dev/ttyS0"))


@pytest.fixture
def sample_config_yaml(tmp_path):
    """Create a sample serial_port.yaml file for testing."""
    config_content = """
port:
  device_template: "/dev/ttyUSB{index}"
  encoding: "ascii"
  write_timeout: 5

logging:
  file: "test.log"
  level: "DEBUG"
"""
    config_file = tmp_path / "serial_port.yaml"
    config_file.write_text(config_content)
    return str(config_file)


@pytest.fixture
def pty_device():
    """A pseudo-terminal set to 19200 baud, 7 data bits, even parity; yields (path, fd)."""
    pty = pytest.importorskip("pty")
    termios = pytest.importorskip("termios")
    master, slave = pty.openpty()
    attrs = termios.tcgetattr(slave)
    attrs[2] = (attrs[2] & ~(termios.CSIZE | termios.PARODD | termios.CSTOPB)) | termios.CS7 | termios.PARENB
    attrs[4] = attrs[5] = termios.B19200
    termios.tcsetattr(slave, termios.TCSANOW, attrs)
    yield os.ttyname(slave), slave
    os.close(slave)
    os.close(master)
