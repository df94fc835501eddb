"""Tests for mode dispatcher."""

import io

import pytest
import serial

from serial_port.config import PortConfig
from serial_port.dispatcher import Mode, Parameters, run, select_mode
from serial_port.errors import ConfigError, DeviceError, PartialWriteError

LINUX = PortConfig(device_template="/dev/ttyS{index}")


class TestSelectMode:
    """Tests for select_mode function."""

    def test_default_is_transfer(self):
        assert select_mode(Parameters(port=1)) == Mode.TRANSFER

    def test_defaults_flag(self):
        assert select_mode(Parameters(port=1, defaults=True)) == Mode.DEFAULTS

    def test_test_wins_over_defaults(self):
        """Test the fixed priority when several flags are set."""
        assert select_mode(Parameters(port=1, test=True, defaults=True)) == Mode.TEST


class TestTestMode:
    """Tests for test mode.

    The convention is inverted: an openable port is the failure outcome.
    """

    def test_open_success_is_failure(self, opener, mock_serial):
        """Test an openable port yields exit code 1."""
        result = run(Parameters(port=1, test=True), port_config=LINUX, opener=opener)

        assert result.mode == Mode.TEST
        assert not result.ok
        assert result.exit_code == 1
        assert "/dev/ttyS0" in result.message
        mock_serial.close.assert_called_once()
        mock_serial.write.assert_not_called()

    def test_open_failure_is_success(self, failing_opener):
        """Test a port that cannot be opened yields exit code 0."""
        result = run(Parameters(port=1, test=True), port_config=LINUX, opener=failing_opener)

        assert result.ok
        assert result.exit_code == 0
        assert "could not be opened" in result.message


class TestDefaultsMode:
    """Tests for defaults mode."""

    def test_defaults_listing(self, opener, mock_serial):
        """Test the reported settings are listed and nothing is changed."""
        mock_serial.get_settings.return_value = {
            "baudrate": 4800, "parity": serial.PARITY_SPACE, "bytesize": 6, "stopbits": 1.5,
        }
        out = io.StringIO()

        result = run(Parameters(port=2, defaults=True), port_config=LINUX, out=out, opener=opener)

        assert result.ok
        assert result.listing == [
            ("Baud Rate", "4800"), ("Parity", "Space"), ("Data Bits", "6"), ("Stop Bits", "1.5"),
        ]
        assert "Baud Rate: 4800" in out.getvalue()
        assert "Serial port /dev/ttyS1" in out.getvalue()
        mock_serial.write.assert_not_called()
        mock_serial.apply_settings.assert_not_called()
        mock_serial.close.assert_called_once()

    def test_defaults_ignores_settings(self, opener, mock_serial):
        """Test --settings does not reconfigure in defaults mode."""
        run(Parameters(port=1, defaults=True, settings="300,N,8,1"),
            port_config=LINUX, out=io.StringIO(), opener=opener)

        mock_serial.apply_settings.assert_not_called()

    def test_defaults_unknown_value(self, opener, mock_serial):
        """Test an unexpected driver value is still displayed."""
        mock_serial.get_settings.return_value = {
            "baudrate": 9600, "parity": "Z", "bytesize": 8, "stopbits": 1,
        }

        result = run(Parameters(port=1, defaults=True), port_config=LINUX,
                     out=io.StringIO(), opener=opener)

        assert ("Parity", "??? <value=Z>") in result.listing

    def test_defaults_open_failure(self, failing_opener):
        """Test a device error is reported."""
        result = run(Parameters(port=1, defaults=True), port_config=LINUX,
                     out=io.StringIO(), opener=failing_opener)

        assert not result.ok
        assert isinstance(result.error, DeviceError)


class TestTransferMode:
    """Tests for transfer mode."""

    def test_transfer_with_settings(self, opener, mock_serial):
        """Test settings are applied before any data is written."""
        out = io.StringIO()

        result = run(Parameters(port=1, settings="9600,N,8,1", echo=True), port_config=LINUX,
                     line_source=io.StringIO("hello\nworld\n"), out=out, opener=opener)

        assert result.ok
        assert result.exit_code == 0
        assert result.transfer.lines_written == 2
        assert out.getvalue() == "hello\nworld\n"
        names = [c[0] for c in mock_serial.method_calls]
        assert names.index("apply_settings") < names.index("write")

    def test_transfer_without_settings(self, opener, mock_serial):
        """Test the device configuration is untouched when no settings are given."""
        run(Parameters(port=1), port_config=LINUX, line_source=["x"],
            out=io.StringIO(), opener=opener)

        mock_serial.apply_settings.assert_not_called()

    def test_bad_settings_reported_before_open(self, opener):
        """Test a malformed token fails without opening the device."""
        result = run(Parameters(port=1, settings="9600,N,8"), port_config=LINUX,
                     line_source=["x"], out=io.StringIO(), opener=opener)

        assert not result.ok
        assert isinstance(result.error, ConfigError)
        assert "wrong field count" in result.message
        opener.assert_not_called()

    def test_partial_write(self, opener, mock_serial):
        """Test a short write fails the run and releases the port."""
        mock_serial.write.side_effect = lambda data: len(data) - 1

        result = run(Parameters(port=1), port_config=LINUX, line_source=["a", "b"],
                     out=io.StringIO(), opener=opener)

        assert result.exit_code == 1
        assert isinstance(result.error, PartialWriteError)
        assert "requested 3" in result.message
        assert mock_serial.write.call_count == 1
        mock_serial.close.assert_called_once()

    def test_open_failure(self, failing_opener):
        """Test an unavailable device fails the transfer."""
        result = run(Parameters(port=1), port_config=LINUX, line_source=["a"],
                     out=io.StringIO(), opener=failing_opener)

        assert result.exit_code == 1
        assert "open failed" in result.message

    def test_apply_failure_releases_port(self, opener, mock_serial):
        """Test a rejected configuration closes the device and writes nothing."""
        mock_serial.apply_settings.side_effect = serial.SerialException("rejected")

        result = run(Parameters(port=1, settings="9600,N,8,1"), port_config=LINUX,
                     line_source=["a"], out=io.StringIO(), opener=opener)

        assert "apply state failed" in result.message
        mock_serial.write.assert_not_called()
        mock_serial.close.assert_called_once()

    def test_write_timeout_passed_to_driver(self, opener):
        """Test the configured write timeout reaches the opener."""
        config = PortConfig(device_template="/dev/ttyS{index}", write_timeout=3.0)

        run(Parameters(port=4), port_config=config, line_source=[], out=io.StringIO(), opener=opener)

        opener.assert_called_once_with("/dev/ttyS3", write_timeout=3.0)

    def test_drain_failure_is_reported(self, opener, mock_serial):
        """Test an OSError while draining fails the run instead of escaping."""
        mock_serial.flush.side_effect = OSError(5, "Input/output error")

        result = run(Parameters(port=1), port_config=LINUX, line_source=["a"],
                     out=io.StringIO(), opener=opener)

        assert result.exit_code == 1
        assert "write failed" in result.message


class TestRealDevice:
    """Tests against a pseudo-terminal with non-default line settings."""

    def test_defaults_reports_device_settings(self, pty_device):
        """Test the listing shows what the device holds, not library defaults."""
        path, _ = pty_device

        result = run(Parameters(port=1, defaults=True), port_config=PortConfig(device_template=path),
                     out=io.StringIO())

        assert result.ok
        listing = dict(result.listing)
        assert listing["Baud Rate"] == "19200"
        assert listing["Parity"] == "Even"
        assert listing["Data Bits"] == "7"

    def test_transfer_without_settings_keeps_configuration(self, pty_device):
        """Test a transfer without --settings leaves the device configuration alone."""
        import termios
        path, fd = pty_device

        result = run(Parameters(port=1), port_config=PortConfig(device_template=path),
                     line_source=["x"], out=io.StringIO())

        assert result.ok
        attrs = termios.tcgetattr(fd)
        assert attrs[5] == termios.B19200
        assert attrs[2] & termios.CSIZE == termios.CS7
