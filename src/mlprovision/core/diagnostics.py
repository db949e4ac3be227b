"""
Diagnostic information for a provisioned environment.

Used by ``mlprovision verify`` to confirm that the installed PyTorch build
can see the GPU. PyTorch is queried through the configured interpreter,
which is the one the provisioning steps installed it into.
"""

import importlib.metadata
import json
from typing import Any, Dict

from mlprovision import __version__
from mlprovision.core.logger import get_logger
from mlprovision.core.runner import CommandRunner

logger = get_logger(__name__)

TORCH_INFO_SCRIPT = """\
import json, torch
available = torch.cuda.is_available()
count = torch.cuda.device_count() if available else 0
print(json.dumps({
    "version": torch.__version__,
    "cuda_build": torch.version.cuda,
    "cuda_available": available,
    "device_count": count,
    "devices": [{"index": i, "name": torch.cuda.get_device_name(i)} for i in range(count)],
}))
"""


def get_mlprovision_version() -> str:
    """
    Get the current version of the mlprovision package.

    Falls back to the in-tree version string when the package metadata is
    unavailable (running from a source checkout).
    """
    try:
        return importlib.metadata.version("mlprovision")
    except importlib.metadata.PackageNotFoundError:
        return __version__


def get_torch_info(runner: CommandRunner, python: str = "python3") -> Dict[str, Any]:
    """
    Get information about the installed PyTorch build and CUDA devices.

    Args:
        runner: Command runner used to start the interpreter
        python: Interpreter PyTorch was installed into

    Returns:
        Dict[str, Any]: A dictionary containing:
            - installed (bool): Whether PyTorch can be imported
            - version (Optional[str]): PyTorch version string
            - cuda_build (Optional[str]): CUDA version PyTorch was built with
            - cuda_available (bool): Whether CUDA is usable at runtime
            - device_count (int): Number of visible CUDA devices
            - devices (List[Dict[str, Any]]): index and name per device
    """
    info: Dict[str, Any] = {
        "installed": False,
        "version": None,
        "cuda_build": None,
        "cuda_available": False,
        "device_count": 0,
        "devices": [],
    }

    result = runner.run([python, "-c", TORCH_INFO_SCRIPT], check=False, capture=True, probe=True)
    if not result.ok:
        logger.debug(f"PyTorch import failed in {python}: {result.stderr.strip()}")
        return info

    lines = result.stdout.strip().splitlines()
    try:
        reported = json.loads(lines[-1]) if lines else None
    except json.JSONDecodeError:
        reported = None
    if not isinstance(reported, dict):
        logger.debug(f"Unexpected PyTorch info from {python}: {result.stdout!r}")
        return info

    info.update(reported)
    info["installed"] = True
    return info
