"""
HTTP downloads.
"""

from pathlib import Path
from typing import Union

import requests

from mlprovision.core.exceptions import DownloadError
from mlprovision.core.logger import get_logger

logger = get_logger(__name__)


def download_file(
    url: str,
    filepath: Union[str, Path],
    timeout: float = 60,
    chunk_size: int = 8192,
) -> Path:
    """
    Download a file from URL.

    Args:
        url: URL to download from.
        filepath: Local path to save file.
        timeout: Request timeout in seconds.
        chunk_size: Download chunk size in bytes.

    Returns:
        Path to downloaded file.

    Raises:
        DownloadError: On any network or HTTP error.
    """
    filepath = Path(filepath)
    logger.debug(f"Downloading {url} to {filepath}")

    try:
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()

        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "wb") as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                f.write(chunk)
    except requests.RequestException as e:
        raise DownloadError(url, str(e)) from e

    return filepath
