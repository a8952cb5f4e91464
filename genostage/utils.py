# File: genostage/utils.py
# Location: genostage/genostage/utils.py

"""
Utility functions module.

Provides helper functions for running external commands, checking tool
availability, and normalising file locations handed over by callers.
"""

import logging
import os
import shutil
import subprocess
from typing import List, Union
from urllib.parse import unquote, urlparse

from .constants import FILE_URL_PREFIX

logger = logging.getLogger("genostage")


def check_external_tools(tools: List[str]) -> bool:
    """
    Check if external tools are available in PATH.

    Parameters
    ----------
    tools : List[str]
        List of tool names to check for availability

    Returns
    -------
    bool
        True if all tools are available, False otherwise
    """
    for tool in tools:
        if not shutil.which(tool):
            logger.error(f"Required tool not found in PATH: {tool}")
            return False
        logger.debug(f"Found tool in PATH: {tool}")
    return True


def run_command(cmd: list) -> str:
    """
    Run a command and return its stdout.

    The annotation tools write their results to the output path named in
    their arguments, so stdout is only kept for logging.

    Parameters
    ----------
    cmd : list of str
        Command and its arguments.

    Returns
    -------
    str
        The command stdout.

    Raises
    ------
    subprocess.CalledProcessError
        If the command returns a non-zero exit code.
    FileNotFoundError
        If the executable does not exist.
    """
    logger.debug("Running command: %s", " ".join(cmd))
    result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)

    if result.returncode != 0:
        logger.error("Command failed: %s\nError: %s", " ".join(cmd), result.stderr)
        raise subprocess.CalledProcessError(result.returncode, cmd, stderr=result.stderr)
    logger.debug("Command completed successfully.")
    return result.stdout


def to_local_path(location: Union[str, os.PathLike]) -> str:
    """
    Convert a plain path or a ``file://`` URL into an absolute local path.

    Parameters
    ----------
    location : str or PathLike
        Canonical path or file-scheme URL.

    Returns
    -------
    str
        Absolute filesystem path.

    Raises
    ------
    ValueError
        If the location is empty or uses a scheme other than ``file``.
    """
    location = os.fspath(location)
    if not location:
        raise ValueError("Empty file location")
    if location.startswith(FILE_URL_PREFIX):
        return os.path.abspath(unquote(urlparse(location).path))
    if "://" in location:
        raise ValueError(f"Unsupported URL scheme in location: {location}")
    return os.path.abspath(location)


def to_file_url(path: Union[str, os.PathLike]) -> str:
    """Return the ``file://`` URL for a local path."""
    return FILE_URL_PREFIX + os.path.abspath(os.fspath(path))


def sanitize_metadata_field(value: str) -> str:
    """
    Sanitize a metadata field by removing tabs and newlines, replacing with spaces.

    Parameters
    ----------
    value : str
        The value to sanitize.

    Returns
    -------
    str
        Sanitized string value with no tabs or newlines.
    """
    if not isinstance(value, str):
        value = str(value)
    return value.replace("\t", " ").replace("\n", " ").strip()


def remove_gzip_extension(filename: str) -> str:
    """
    Remove a trailing .gz extension (any case) from a filename.

    ``study.tar.gz`` becomes ``study.tar``; names without the suffix are
    returned unchanged.
    """
    if filename.lower().endswith(".gz"):
        return filename[:-3]
    return filename
