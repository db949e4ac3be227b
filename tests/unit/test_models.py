"""
Unit tests for provisioning models and ServiceResult.
"""

from mlprovision.models.provision import ProvisionReport, StepResult, StepStatus
from mlprovision.services.base import ServiceResult


def _report(**kwargs):
    defaults = dict(os_version="2204", gpu_flag=0, cuda_version="12-4", pytorch_tag="cu124")
    defaults.update(kwargs)
    return ProvisionReport(**defaults)


class TestProvisionReport:
    """Tests for ProvisionReport."""

    def test_warnings(self):
        report = _report(steps=[
            StepResult("upgrade_pip", "Upgrade pip", StepStatus.WARNING, "Pip upgrade failed."),
            StepResult("install_pytorch", "Install PyTorch"),
        ])

        assert [s.name for s in report.warnings] == ["upgrade_pip"]

    def test_to_dict(self):
        report = _report(steps=[StepResult("detect_gpu", "Detect NVIDIA GPU", StepStatus.SKIPPED)])

        data = report.to_dict()

        assert data["cuda_version"] == "12-4"
        assert data["pytorch_tag"] == "cu124"
        assert data["steps"][0]["status"] == "skipped"
        assert data["warning_count"] == 0


class TestServiceResult:
    """Tests for ServiceResult."""

    def test_ok(self):
        result = ServiceResult.ok(data=_report(), message="Setup complete.", warnings=["w"])

        assert result.success
        assert result.to_dict()["data"]["gpu_flag"] == 0
        assert result.to_dict()["warnings"] == ["w"]

    def test_fail_keeps_partial_data(self):
        result = ServiceResult.fail("boom", data=_report(), failed_step="update_system")

        assert not result.success
        assert result.error == "boom"
        assert result.data.os_version == "2204"
        assert result.to_dict()["metadata"] == {"failed_step": "update_system"}
