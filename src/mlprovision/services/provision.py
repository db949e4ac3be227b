# services/provision.py
"""
Service for provisioning a machine learning development environment.

Steps run strictly in order, each depending only on the system and
environment changes made by the previous ones:

    0. Detect Ubuntu version          (fatal on failure)
    1. Update system                  (apt update / upgrade)
    2. Install basic tools            (install only if missing)
    3. Detect NVIDIA GPU
    4. Install NVIDIA driver & CUDA   (GPU only)
    5. Install cuDNN                  (GPU only, best-effort)
    6. Upgrade pip                    (recoverable)
    7. Install PyTorch                (CUDA wheels or CPU wheels)
    8. Install Python dependencies    (recoverable, only with a requirements file)
    9. Install NLTK resources         (recoverable)

Unguarded commands propagate CommandError and abort the run. Recoverable
steps log a warning and continue. Nothing is retried or rolled back.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from mlprovision.core.config import Config, get_config
from mlprovision.core.diagnostics import get_torch_info
from mlprovision.core.exceptions import CommandError, ProvisionError
from mlprovision.core.gpu import detect_gpu, nvidia_smi_available, query_nvidia_smi
from mlprovision.core.http import download_file
from mlprovision.core.logger import get_logger
from mlprovision.core.os_release import OS_RELEASE_PATH, detect_os_version
from mlprovision.core.runner import CommandRunner
from mlprovision.models.provision import (
    ProvisionContext,
    ProvisionReport,
    StepResult,
    StepStatus,
)

from .base import BaseService, ServiceResult

logger = get_logger(__name__)

StepOutcome = Tuple[StepStatus, str]

# (method name, title) in execution order
STEPS: List[Tuple[str, str]] = [
    ("detect_os_version", "Detect Ubuntu version"),
    ("update_system", "Update system"),
    ("install_base_tools", "Install basic tools"),
    ("detect_gpu", "Detect NVIDIA GPU"),
    ("install_cuda", "Install NVIDIA Driver & CUDA"),
    ("install_cudnn", "Install cuDNN"),
    ("upgrade_pip", "Upgrade pip"),
    ("install_pytorch", "Install PyTorch"),
    ("install_requirements", "Install Python dependencies"),
    ("install_nltk", "NLTK resources"),
]

REBOOT_NOTICE = "IMPORTANT: If you installed drivers, reboot now."
VERIFY_NOTICE = "Run 'nvidia-smi' after reboot to verify installation."


def cuda_profile_script(cuda_home: str) -> str:
    """Return the contents of the login-shell CUDA environment file."""
    return (
        f"export PATH={cuda_home}/bin:$PATH\n"
        f"export LD_LIBRARY_PATH={cuda_home}/lib64:$LD_LIBRARY_PATH\n"
    )


def prepend_env_path(name: str, value: str) -> str:
    """Prepend a directory to a PATH-style variable of this process."""
    existing = os.environ.get(name, "")
    os.environ[name] = f"{value}:{existing}" if existing else value
    return os.environ[name]


class ProvisionService(BaseService):
    """
    Runs the provisioning steps against the local machine.

    Args:
        config: Configuration to use (defaults to the global config)
        runner: Command runner (defaults to one built from the config)
        requirements_file: Overrides [requirements].file
        force_cpu: Skip GPU detection and take the CPU path
        upgrade: Overrides [system].upgrade when not None
        os_release_path: Location of the os-release file
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        runner: Optional[CommandRunner] = None,
        requirements_file: Optional[Union[str, Path]] = None,
        force_cpu: bool = False,
        upgrade: Optional[bool] = None,
        os_release_path: Union[str, Path] = OS_RELEASE_PATH,
    ) -> None:
        super().__init__()
        self.config = config or get_config()
        self.runner = runner or CommandRunner(
            use_sudo=self.config.get("system", "use_sudo", True),
        )
        self.requirements_file = Path(
            requirements_file or self.config.get("requirements", "file", "requirements.txt")
        )
        self.force_cpu = force_cpu
        self.upgrade = self.config.get("system", "upgrade", True) if upgrade is None else upgrade
        self.os_release_path = os_release_path
        self.context = ProvisionContext(
            cuda_version=str(self.config.get("cuda", "version")),
            pytorch_tag=str(self.config.get("pytorch", "cuda_tag")),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def python(self) -> str:
        return self.config.get("python", "executable", "python3")

    def _pip(self, *args: str) -> List[str]:
        return [self.python, "-m", "pip", "install", *args]

    def _apt_install(self, packages: Sequence[str]) -> None:
        logger.info(f"Installing {' '.join(packages)}...")
        self.runner.run(["apt", "install", "-y", *packages], sudo=True)

    def _try(self, args: Sequence[str], warning: str) -> Optional[str]:
        """Run a recoverable command; return the warning text on failure."""
        try:
            self.runner.run(args)
        except CommandError as e:
            logger.warning(f"{warning} ({e})")
            return warning
        return None

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def detect_os_version(self) -> StepOutcome:
        """Detect the Ubuntu release. Raises OSDetectionError on failure."""
        version = detect_os_version(self.runner, self.os_release_path)
        self.context.os_version = version
        return StepStatus.OK, f"Detected OS Version: Ubuntu {version}"

    def update_system(self) -> StepOutcome:
        """Refresh package lists and optionally upgrade installed packages."""
        self.runner.run(["apt", "update"], sudo=True)
        if not self.upgrade:
            return StepStatus.OK, "Package lists updated (upgrade disabled)"
        self.runner.run(["apt", "upgrade", "-y"], sudo=True)
        return StepStatus.OK, "System updated"

    def install_base_tools(self) -> StepOutcome:
        """Install each required tool only if it is absent."""
        installed = []

        for command, package in self.config.get("system", "tools", {}).items():
            if self.runner.which(command):
                logger.debug(f"{command} already installed")
                continue
            self._apt_install([package])
            installed.append(package)

        for package in self.config.get("system", "packages", []):
            if self.runner.succeeds(["dpkg", "-s", package]):
                logger.debug(f"{package} already installed")
                continue
            self._apt_install([package])
            installed.append(package)

        if installed:
            return StepStatus.OK, f"Installed {', '.join(installed)}"
        return StepStatus.OK, "All basic tools already installed"

    def detect_gpu(self) -> StepOutcome:
        """Set the GPU flag from the PCI bus listing."""
        if self.force_cpu:
            self.context.gpu_flag = 0
            return StepStatus.SKIPPED, "CPU mode requested. Using CPU."

        self.context.gpu_flag = detect_gpu(self.runner)
        if self.context.gpu_flag:
            return StepStatus.OK, "NVIDIA GPU detected."
        return StepStatus.OK, "No NVIDIA GPU detected. Using CPU."

    def install_cuda(self) -> StepOutcome:
        """
        Install the NVIDIA repository keyring, CUDA toolkit and drivers.

        Skipped without a GPU, and when nvidia-smi shows a driver is already
        present. A keyring download failure is fatal.
        """
        if not self.context.gpu_flag:
            return StepStatus.SKIPPED, "No NVIDIA GPU"

        if nvidia_smi_available(self.runner):
            return StepStatus.OK, "NVIDIA driver/CUDA already installed."

        url = self.config.get("cuda", "keyring_url").format(os_version=self.context.os_version)
        timeout = self.config.get("network", "timeout", 60)

        with tempfile.TemporaryDirectory(prefix="mlprovision-") as tmp:
            keyring = Path(tmp) / "cuda-keyring.deb"
            if self.runner.dry_run:
                logger.info(f"[dry-run] download {url}")
            else:
                download_file(url, keyring, timeout=timeout)
            self.runner.run(["dpkg", "-i", str(keyring)], sudo=True)

        self.runner.run(["apt", "update"], sudo=True)
        self._apt_install([f"cuda-toolkit-{self.context.cuda_version}", "cuda-drivers"])

        cuda_home = self.config.get("cuda", "home", "/usr/local/cuda")
        self.runner.run(
            ["tee", self.config.get("cuda", "profile_path")],
            sudo=True,
            capture=True,
            input=cuda_profile_script(cuda_home),
        )
        if self.runner.dry_run:
            return (
                StepStatus.OK,
                f"Would install CUDA Toolkit {self.context.cuda_version} and drivers.",
            )

        prepend_env_path("PATH", f"{cuda_home}/bin")
        prepend_env_path("LD_LIBRARY_PATH", f"{cuda_home}/lib64")
        self.context.drivers_installed = True
        return (
            StepStatus.OK,
            f"Installed CUDA Toolkit {self.context.cuda_version} and drivers. "
            "You must reboot after setup finishes to load drivers.",
        )

    def install_cudnn(self) -> StepOutcome:
        """Install the first cuDNN package group apt knows about."""
        if not self.context.gpu_flag:
            return StepStatus.SKIPPED, "No NVIDIA GPU"

        for group in self.config.get("cudnn", "candidates", []):
            if not group or not self.runner.succeeds(["apt", "show", group[0]]):
                continue
            result = self.runner.run(["apt", "install", "-y", *group], sudo=True, check=False)
            if result.ok:
                return StepStatus.OK, f"Installed {' '.join(group)}"
            warning = f"cuDNN install failed for {' '.join(group)}"
            logger.warning(warning)
            return StepStatus.WARNING, warning

        warning = "Could not find cuDNN package. Manual installation may be required."
        logger.warning(warning)
        return StepStatus.WARNING, warning

    def upgrade_pip(self) -> StepOutcome:
        warning = self._try(
            self._pip("--upgrade", "pip"),
            "Pip upgrade failed. Ignore if using Ubuntu 24.04+.",
        )
        if warning:
            return StepStatus.WARNING, warning
        return StepStatus.OK, "pip upgraded"

    def install_pytorch(self) -> StepOutcome:
        """Install PyTorch wheels matching the CUDA target, or CPU wheels."""
        packages = self.config.get("pytorch", "packages", ["torch", "torchvision", "torchaudio"])
        index_base = self.config.get("pytorch", "index_base").rstrip("/")

        if self.context.gpu_flag:
            args = self._pip(
                "--no-cache-dir",
                *packages,
                "--extra-index-url",
                f"{index_base}/{self.context.pytorch_tag}",
            )
            message = f"Installed PyTorch (matching CUDA {self.context.cuda_version})"
        else:
            args = self._pip(*packages, "--extra-index-url", f"{index_base}/cpu")
            message = "Installed CPU version of PyTorch"

        self.runner.run(args)
        return StepStatus.OK, message

    def install_requirements(self) -> StepOutcome:
        """Install the project's requirements file if it exists."""
        if not self.requirements_file.is_file():
            return StepStatus.SKIPPED, f"{self.requirements_file} not found"

        args = self._pip("-r", str(self.requirements_file))
        index_url = self.config.get("requirements", "index_url")
        if index_url:
            args += ["-i", index_url]

        warning = self._try(args, f"{self.requirements_file} install failed")
        if warning:
            return StepStatus.WARNING, warning
        return StepStatus.OK, f"Installed {self.requirements_file}"

    def install_nltk(self) -> StepOutcome:
        """Install NLTK and download its corpora, both best-effort."""
        warnings = []

        warning = self._try(self._pip("nltk"), "nltk install failed")
        if warning:
            warnings.append(warning)

        corpora = self.config.get("nltk", "corpora", [])
        if corpora:
            warning = self._try(
                [self.python, "-m", "nltk.downloader", *corpora],
                "nltk downloader failed",
            )
            if warning:
                warnings.append(warning)

        if warnings:
            return StepStatus.WARNING, "; ".join(warnings)
        return StepStatus.OK, f"Downloaded NLTK corpora: {', '.join(corpora) or 'none'}"

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    def build_report(self, steps: List[StepResult]) -> ProvisionReport:
        """Build the final report. CUDA target and PyTorch tag are always included."""
        notes = []
        if self.context.gpu_flag:
            notes = [REBOOT_NOTICE, VERIFY_NOTICE]

        return ProvisionReport(
            os_version=self.context.os_version,
            gpu_flag=self.context.gpu_flag,
            cuda_version=self.context.cuda_version,
            pytorch_tag=self.context.pytorch_tag,
            drivers_installed=self.context.drivers_installed,
            steps=list(steps),
            notes=notes,
        )

    def run(self) -> ServiceResult[ProvisionReport]:
        """
        Run every provisioning step in order.

        Returns:
            ServiceResult containing the ProvisionReport. On a fatal error the
            result is failed and its data holds the steps completed so far.
        """
        steps: List[StepResult] = []

        for index, (name, title) in enumerate(STEPS):
            self._report_progress(index, title)
            try:
                status, message = getattr(self, name)()
            except ProvisionError as e:
                logger.error(f"{title} failed: {e}")
                return ServiceResult.fail(
                    str(e),
                    data=self.build_report(steps),
                    failed_step=name,
                )
            logger.info(f"{title}: {message}")
            steps.append(StepResult(name=name, title=title, status=status, message=message))

        report = self.build_report(steps)
        return ServiceResult.ok(
            data=report,
            message="Setup complete.",
            warnings=[s.message for s in report.warnings],
        )

    # -------------------------------------------------------------------------
    # Read-only checks
    # -------------------------------------------------------------------------

    def detect(self) -> ServiceResult[Dict[str, Any]]:
        """
        Detect OS version and GPU without changing the system.

        Returns:
            ServiceResult containing os_version, gpu_flag and nvidia_smi
        """
        try:
            os_version = detect_os_version(self.runner, self.os_release_path)
        except ProvisionError as e:
            return ServiceResult.fail(str(e))

        data = {
            "os_version": os_version,
            "gpu_flag": 0 if self.force_cpu else detect_gpu(self.runner),
            "nvidia_smi": nvidia_smi_available(self.runner),
        }
        return ServiceResult.ok(data=data, message=f"Detected OS Version: Ubuntu {os_version}")

    def verify(self) -> ServiceResult[Dict[str, Any]]:
        """
        Check the driver and the installed PyTorch build.

        Returns:
            ServiceResult containing nvidia_smi output (or None) and torch info
        """
        data = {
            "nvidia_smi": query_nvidia_smi(self.runner),
            "torch": get_torch_info(self.runner, self.python),
        }

        warnings = []
        if not data["torch"]["installed"]:
            warnings.append("PyTorch is not installed")
        elif self.context.pytorch_tag != "cpu" and data["nvidia_smi"] and not data["torch"]["cuda_available"]:
            warnings.append("NVIDIA driver is present but PyTorch cannot use CUDA")

        return ServiceResult.ok(data=data, warnings=warnings)
