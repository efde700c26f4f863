"""Facts about the machine a proof is generated on."""
from __future__ import annotations

import os
import platform
import resource
import shutil
import subprocess
import sys

from .types import HardwareAcceleration


def _command_succeeds(cmd: list[str]) -> bool:
    if shutil.which(cmd[0]) is None:
        return False
    try:
        subprocess.check_output(cmd, stderr=subprocess.STDOUT, timeout=5)
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired):  # pragma: no cover - best effort
        return False
    return True


def os_name() -> str:
    return platform.system().lower() or sys.platform


def arch() -> str:
    return platform.machine() or "unknown"


def detect_hardware_acceleration(enabled: bool = True) -> HardwareAcceleration:
    if not enabled:
        return HardwareAcceleration.NONE
    if _command_succeeds(["nvidia-smi", "-L"]):
        return HardwareAcceleration.CUDA
    if sys.platform == "darwin" and arch() in ("arm64", "aarch64"):
        return HardwareAcceleration.METAL
    return HardwareAcceleration.CPU_OPTIMIZED


def peak_memory_bytes() -> int:
    """Peak resident set size of this process."""
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # macOS reports bytes, Linux kilobytes
    if sys.platform == "darwin":
        return int(rss)
    return int(rss) * 1024


def build_id() -> str | None:
    return os.environ.get("ZKIPFS_BUILD_ID") or None


__all__ = [
    "os_name",
    "arch",
    "detect_hardware_acceleration",
    "peak_memory_bytes",
    "build_id",
]
