"""
Exceptions raised by the provisioning steps.

Fatal errors derive from ProvisionError. Recoverable steps catch them and
record a warning instead of propagating.
"""

from typing import List, Optional, Sequence


class ProvisionError(Exception):
    """Base class for errors that abort a provisioning run."""


class OSDetectionError(ProvisionError):
    """
    Raised when the Ubuntu release version cannot be determined.

    Example:
        >>> raise OSDetectionError("Could not detect Ubuntu version.")
    """


class CommandError(ProvisionError):
    """
    Raised when an external command fails or cannot be started.

    Attributes:
        command: The command line that was executed
        returncode: Exit status, or None if the executable was not found
        stderr: Captured standard error, if any
    """

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        self.command: List[str] = list(command)
        self.returncode = returncode
        self.stderr = stderr

        if returncode is None:
            message = f"Command not found: {self.command[0]}"
        else:
            message = f"Command failed with exit code {returncode}: {' '.join(self.command)}"
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)


class DownloadError(ProvisionError):
    """Raised when a file cannot be downloaded."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"Failed to download {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
