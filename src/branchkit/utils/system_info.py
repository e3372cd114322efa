"""Local user, machine and OS detection."""

from __future__ import annotations

import os
import platform
import socket
from dataclasses import asdict, dataclass
from typing import Any

UNKNOWN = "unknown"

_OS_NAMES = {
    "Darwin": "macOS",
    "Linux": "Linux",
    "Windows": "Windows",
}


@dataclass(frozen=True)
class SystemInfo:
    """Identity of the local user and machine."""

    username: str
    machine_name: str
    os_type: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def detect_username() -> str:
    for var in ("USER", "USERNAME", "LOGNAME"):
        value = os.environ.get(var)
        if value:
            return value
    return UNKNOWN


def detect_machine_name() -> str:
    try:
        name = socket.gethostname().strip()
    except OSError:
        return UNKNOWN
    return name or UNKNOWN


def detect_os_type() -> str:
    return _OS_NAMES.get(platform.system(), "Unknown")


def detect_system_info() -> SystemInfo:
    """Resolve the local system identity; never raises."""
    return SystemInfo(
        username=detect_username(),
        machine_name=detect_machine_name(),
        os_type=detect_os_type(),
    )
