# tests/conftest.py
"""
Global pytest fixtures for mlprovision tests.
"""

import pytest

from mlprovision.core.config import get_default_config, reset_config
from tests.mocks.mock_runner import ALL_TOOLS, CPU_LSPCI, NVIDIA_LSPCI, MockCommandRunner


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Make sure no test leaks a loaded configuration into the next."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def default_config():
    """A fresh copy of the built-in configuration."""
    return get_default_config()


@pytest.fixture
def gpu_runner():
    """Runner for an Ubuntu 22.04 machine with an NVIDIA GPU and no driver."""
    return MockCommandRunner(
        available=ALL_TOOLS,
        outputs={"lsb_release -rs": "22.04\n", "lspci": NVIDIA_LSPCI},
    )


@pytest.fixture
def cpu_runner():
    """Runner for an Ubuntu 22.04 machine without an NVIDIA GPU."""
    return MockCommandRunner(
        available=ALL_TOOLS,
        outputs={"lsb_release -rs": "22.04\n", "lspci": CPU_LSPCI},
    )
