"""Mapping of port numbers to platform device paths."""

import sys
from typing import Optional

MIN_PORT = 1
MAX_PORT = 9


def device_name(port: int, platform: Optional[str] = None, template: Optional[str] = None) -> str:
    """
    Return the device path for a 1-based port number.

    Args:
        port: Port number in [1, 9].
        platform: Platform name, defaults to sys.platform.
        template: Optional format string with {port} and {index} fields
            that replaces the platform naming scheme.

    Returns:
        Device path such as "COM1" or "/dev/ttyS0".
    """
    if template:
        return template.format(port=port, index=port - 1)
    if platform is None:
        platform = sys.platform
    if platform.startswith("win"):
        return f"COM{port}"
    return f"/dev/ttyS{port - 1}"
