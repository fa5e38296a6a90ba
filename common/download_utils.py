# common/download_utils.py
# -*- coding: utf-8 -*-
"""
Downloading and unpacking of source archives.

Errors are logged here and re-raised so the calling step can report the
phase that failed.
"""

import logging
import tarfile
from pathlib import Path
from typing import Optional

import requests

module_logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def download_file(
    url: str,
    download_to_path: Path,
    timeout: int = 300,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Download a URL to a local file.

    Args:
        url: The URL to fetch.
        download_to_path: Destination file. Parent directories are created.
        timeout: Connect/read timeout in seconds.
        current_logger: Optional logger instance.

    Returns:
        The path of the downloaded file.

    Raises:
        requests.exceptions.RequestException: On HTTP, connection or timeout
            errors.
        OSError: If the file cannot be written.
    """
    logger_to_use = current_logger if current_logger else module_logger
    logger_to_use.info(f"Downloading {url}")

    try:
        download_to_path.parent.mkdir(parents=True, exist_ok=True)
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(download_to_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except requests.exceptions.HTTPError as http_err:
        logger_to_use.error(f"HTTP error occurred while downloading {url}: {http_err}")
        raise
    except requests.exceptions.ConnectionError as conn_err:
        logger_to_use.error(f"Connection error occurred while downloading {url}: {conn_err}")
        raise
    except requests.exceptions.Timeout as timeout_err:
        logger_to_use.error(f"Timeout while downloading {url}: {timeout_err}")
        raise
    except OSError as io_err:
        logger_to_use.error(f"File I/O error when saving {download_to_path}: {io_err}")
        raise

    logger_to_use.info(f"Downloaded {url} to {download_to_path}")
    return download_to_path


def extract_tarball(
    archive_path: Path,
    extract_to_dir: Path,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Extract a gzip'ed tarball and return its single top-level directory.

    GitHub source archives unpack into one ``<repo>-<ref>`` directory; that
    directory is what the build runs in.

    Raises:
        tarfile.TarError: If the archive is corrupt or does not contain
            exactly one top-level directory.
    """
    logger_to_use = current_logger if current_logger else module_logger
    logger_to_use.info(f"Extracting {archive_path} to {extract_to_dir}")

    extract_to_dir.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive_path, "r:gz") as archive:
        top_level = {
            Path(member.name).parts[0]
            for member in archive.getmembers()
            if member.name and Path(member.name).parts
        }
        if len(top_level) != 1:
            raise tarfile.TarError(
                f"Expected one top-level directory in {archive_path}, found {len(top_level)}"
            )
        archive.extractall(extract_to_dir, filter="data")

    source_dir = extract_to_dir / top_level.pop()
    if not source_dir.is_dir():
        raise tarfile.TarError(f"{source_dir} is not a directory")
    return source_dir
