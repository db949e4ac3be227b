"""
NVIDIA GPU detection.

A machine counts as having a GPU when the PCI bus listing mentions NVIDIA.
Driver presence is checked separately through nvidia-smi.
"""

import re
from typing import Optional

from mlprovision.core.logger import get_logger
from mlprovision.core.runner import CommandRunner

logger = get_logger(__name__)

NVIDIA_PATTERN = re.compile(r"nvidia", re.IGNORECASE)


def has_nvidia_device(lspci_output: Optional[str]) -> bool:
    """Check whether bus-listing output contains an NVIDIA device string."""
    if not lspci_output:
        return False
    return NVIDIA_PATTERN.search(lspci_output) is not None


def detect_gpu(runner: CommandRunner) -> int:
    """
    Detect an NVIDIA GPU on the PCI bus.

    A missing or failing lspci counts as no GPU.

    Args:
        runner: Command runner used to call lspci

    Returns:
        1 if an NVIDIA device is present, otherwise 0
    """
    result = runner.run(["lspci"], check=False, capture=True, probe=True)
    if not result.ok:
        logger.debug(f"lspci unavailable (exit {result.returncode}), assuming no GPU")
        return 0
    return 1 if has_nvidia_device(result.stdout) else 0


def nvidia_smi_available(runner: CommandRunner) -> bool:
    """Check whether the NVIDIA driver utility is on PATH."""
    return runner.which("nvidia-smi") is not None


def query_nvidia_smi(runner: CommandRunner) -> Optional[str]:
    """
    Run nvidia-smi and return its output.

    Returns:
        The nvidia-smi report, or None if it is missing or fails
    """
    if not nvidia_smi_available(runner):
        return None
    result = runner.run(["nvidia-smi"], check=False, capture=True, probe=True)
    if not result.ok:
        logger.warning(f"nvidia-smi failed: {result.stderr.strip()}")
        return None
    return result.stdout
