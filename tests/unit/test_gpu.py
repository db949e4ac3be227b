"""
Unit tests for mlprovision.core.gpu module.
"""

import pytest

from mlprovision.core.gpu import (
    detect_gpu,
    has_nvidia_device,
    nvidia_smi_available,
    query_nvidia_smi,
)
from tests.mocks.mock_runner import CPU_LSPCI, NVIDIA_LSPCI, MockCommandRunner


class TestHasNvidiaDevice:
    """Tests for has_nvidia_device function."""

    @pytest.mark.parametrize(
        "output",
        [
            NVIDIA_LSPCI,
            "3D controller: nvidia corporation TU104GL [Tesla T4]",
            "Audio device: NVIDIA Corporation GA102 High Definition Audio",
        ],
    )
    def test_detects_nvidia(self, output):
        assert has_nvidia_device(output) is True

    @pytest.mark.parametrize("output", [CPU_LSPCI, "", None])
    def test_no_nvidia(self, output):
        assert has_nvidia_device(output) is False


class TestDetectGpu:
    """Tests for detect_gpu function."""

    def test_gpu_present(self):
        runner = MockCommandRunner(outputs={"lspci": NVIDIA_LSPCI})
        assert detect_gpu(runner) == 1

    def test_gpu_absent(self):
        runner = MockCommandRunner(outputs={"lspci": CPU_LSPCI})
        assert detect_gpu(runner) == 0

    def test_lspci_failure_means_no_gpu(self):
        runner = MockCommandRunner(outputs={"lspci": NVIDIA_LSPCI}, failing=["lspci"])
        assert detect_gpu(runner) == 0

    def test_flag_is_binary(self):
        for output in (NVIDIA_LSPCI, CPU_LSPCI, ""):
            assert detect_gpu(MockCommandRunner(outputs={"lspci": output})) in (0, 1)


class TestNvidiaSmi:
    """Tests for nvidia-smi helpers."""

    def test_available(self):
        assert nvidia_smi_available(MockCommandRunner(available=["nvidia-smi"])) is True
        assert nvidia_smi_available(MockCommandRunner()) is False

    def test_query_returns_output(self):
        runner = MockCommandRunner(
            available=["nvidia-smi"],
            outputs={"nvidia-smi": "NVIDIA-SMI 550.54.15"},
        )
        assert query_nvidia_smi(runner) == "NVIDIA-SMI 550.54.15"

    def test_query_without_driver(self):
        runner = MockCommandRunner()
        assert query_nvidia_smi(runner) is None
        assert runner.calls == []

    def test_query_failure(self):
        runner = MockCommandRunner(available=["nvidia-smi"], failing=["nvidia-smi"])
        assert query_nvidia_smi(runner) is None
