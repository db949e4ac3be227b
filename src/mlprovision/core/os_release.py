"""
Ubuntu release detection.

The release number is reported without dots ("22.04" -> "2204"), which is
the form NVIDIA uses in its repository paths.
"""

from pathlib import Path
from typing import Dict, Optional, Union

from mlprovision.core.exceptions import OSDetectionError
from mlprovision.core.logger import get_logger
from mlprovision.core.runner import CommandRunner

logger = get_logger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")


def parse_os_release(text: str) -> Dict[str, str]:
    """
    Parse the KEY=value lines of an os-release file.

    Args:
        text: Contents of /etc/os-release

    Returns:
        Dictionary of keys to unquoted values
    """
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def normalize_version(version: str) -> str:
    """Strip whitespace and dots from a release string."""
    return version.strip().replace(".", "")


def _version_from_lsb_release(runner: CommandRunner) -> Optional[str]:
    if not runner.which("lsb_release"):
        return None
    result = runner.run(["lsb_release", "-rs"], check=False, capture=True, probe=True)
    if not result.ok:
        logger.debug(f"lsb_release failed: {result.stderr.strip()}")
        return None
    return normalize_version(result.stdout)


def _version_from_os_release(path: Path) -> Optional[str]:
    try:
        text = path.read_text(errors="replace")
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return None
    values = parse_os_release(text)
    return normalize_version(values.get("VERSION_ID", ""))


def detect_os_version(
    runner: CommandRunner,
    os_release_path: Union[str, Path] = OS_RELEASE_PATH,
) -> str:
    """
    Detect the Ubuntu release number.

    Uses ``lsb_release -rs`` when available and falls back to the
    VERSION_ID field of the os-release file.

    Args:
        runner: Command runner used for the lsb_release probe
        os_release_path: Location of the os-release file

    Returns:
        Release number without dots, e.g. "2204"

    Raises:
        OSDetectionError: If no non-empty numeric version was found
    """
    version = _version_from_lsb_release(runner)
    if not version or not version.isdigit():
        version = _version_from_os_release(Path(os_release_path))

    if not version or not version.isdigit():
        raise OSDetectionError("Could not detect Ubuntu version.")

    logger.debug(f"Detected OS version: {version}")
    return version
