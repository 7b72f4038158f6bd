# Vault - Machine Fingerprint
#
# Builds the deterministic string the vault key is derived from:
#
#   OS kind | OS release | CPU arch | CPU model | logical CPUs | disk serial
#
# When no storage-device serial can be read the user's home directory
# takes the last slot instead. Which branch was taken is kept on the
# result (FingerprintSource) so callers and tests can tell them apart.
#
# The output must be byte-identical across runs on the same install:
# a changed fingerprint makes every stored secret unreadable.

import logging
import platform
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import psutil

logger = logging.getLogger(__name__)

# Seconds to wait for an OS utility before treating the serial as absent
SERIAL_COMMAND_TIMEOUT = 5

_SEPARATOR = "|"

# Placeholder values some firmware reports instead of a real serial
_BOGUS_SERIALS = {"", "default string", "none", "0", "to be filled by o.e.m."}


class FingerprintSource(str, Enum):
    """Whether the last fingerprint slot holds a disk serial or the home path."""
    COLLECTED = "collected"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class MachineFingerprint:
    """Ordered host attributes used as key-derivation input."""
    attributes: Tuple[str, ...]
    source: FingerprintSource

    def encode(self) -> bytes:
        """Join the attributes into the byte string the key is hashed from."""
        return _SEPARATOR.join(self.attributes).encode("utf-8")

    def __repr__(self) -> str:
        # Attribute values stay out of reprs and tracebacks
        return (
            f"MachineFingerprint(source={self.source.value!r}, "
            f"slots={len(self.attributes)})"
        )


# ---------------------------------------------------------------------------
# Disk serial readers (one per OS)
# ---------------------------------------------------------------------------

def _run(command: List[str]) -> Optional[str]:
    """Run an OS utility and return stdout, or None on any failure."""
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=True,
            timeout=SERIAL_COMMAND_TIMEOUT,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
        # Missing tool, non-zero exit, permission denial: serial is absent
        logger.debug("Serial lookup via %s unavailable: %s", command[0], e)
        return None
    return result.stdout


def _first_real_serial(lines: List[str]) -> Optional[str]:
    for line in lines:
        value = line.strip()
        if value.lower() not in _BOGUS_SERIALS:
            return value
    return None


def _get_windows_disk_serial() -> Optional[str]:
    """First disk serial reported by ``wmic`` (header line skipped)."""
    output = _run(["wmic", "diskdrive", "get", "serialnumber"])
    if output is None:
        return None
    lines = [l.strip() for l in output.splitlines() if l.strip()]
    return _first_real_serial(lines[1:])


def _get_linux_disk_serial() -> Optional[str]:
    """First whole-disk serial reported by ``lsblk``."""
    output = _run(["lsblk", "--nodeps", "-no", "serial"])
    if output is None:
        return None
    return _first_real_serial(output.splitlines())


def _get_macos_disk_serial() -> Optional[str]:
    """Platform serial number from the IO registry."""
    output = _run(["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"])
    if output is None:
        return None
    for line in output.splitlines():
        if "IOPlatformSerialNumber" in line:
            return _first_real_serial([line.split("=")[-1].replace('"', '')])
    return None


_SERIAL_READERS: Dict[str, Callable[[], Optional[str]]] = {
    "Windows": _get_windows_disk_serial,
    "Linux": _get_linux_disk_serial,
    "Darwin": _get_macos_disk_serial,
}


def read_disk_serial() -> Optional[str]:
    """Best-effort storage device serial for the current OS."""
    reader = _SERIAL_READERS.get(platform.system())
    if reader is None:
        return None
    return reader()


# ---------------------------------------------------------------------------
# CPU attributes
# ---------------------------------------------------------------------------

def cpu_model() -> str:
    """Model name of the first CPU, or "" if the platform won't say."""
    if platform.system() == "Linux":
        try:
            with open("/proc/cpuinfo", "r", encoding="utf-8") as f:
                for line in f:
                    if line.lower().startswith("model name"):
                        return line.split(":", 1)[1].strip()
        except OSError:
            pass
    return platform.processor().strip()


def cpu_count() -> str:
    """Logical CPU count as text ("" when unknown)."""
    count = psutil.cpu_count(logical=True)
    return str(count) if count else ""


def home_directory() -> str:
    return str(Path.home())


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------

def collect() -> MachineFingerprint:
    """Collect the machine fingerprint. Never raises.

    Returns:
        MachineFingerprint with ``source`` COLLECTED when a disk serial was
        read, FALLBACK when the home directory was used in its place.
    """
    attributes = [
        platform.system(),
        platform.release(),
        platform.machine(),
        cpu_model(),
        cpu_count(),
    ]

    serial = read_disk_serial()
    if serial:
        attributes.append(serial)
        source = FingerprintSource.COLLECTED
    else:
        attributes.append(home_directory())
        source = FingerprintSource.FALLBACK

    logger.debug("Machine fingerprint collected (source=%s)", source.value)
    return MachineFingerprint(attributes=tuple(attributes), source=source)
