# File: genostage/validators.py
# Location: genostage/genostage/validators.py

"""
Validation module for genostage.

This module provides exit-on-failure checks for command-line inputs that
must hold before a run starts:
- Directories to scan (existence)
- Tool configuration (liftover binary and chain file locations)
"""

import logging
import os
import sys
from typing import Optional

from .tools import ToolSettings

logger = logging.getLogger("genostage")


def validate_directory(path: Optional[str], logger: logging.Logger) -> None:
    """
    Validate that a directory exists.

    Raises
    ------
    SystemExit
        If the path is missing or not a directory.
    """
    if not path or not os.path.isdir(path):
        logger.error("Directory not found: %s", path)
        sys.exit(1)


def validate_tool_settings(settings: ToolSettings, logger: logging.Logger) -> None:
    """
    Validate the liftover locations of a tool configuration.

    The liftover binary may be a bare program name resolved through PATH;
    a chain file given as a path must exist.

    Raises
    ------
    SystemExit
        If the chain file is configured but missing.
    """
    chain = settings.liftover_chain
    if os.sep in chain and not os.path.exists(chain):
        logger.error("Liftover chain file not found: %s", chain)
        sys.exit(1)
    logger.debug("Liftover binary: %s, chain: %s", settings.liftover_binary, chain)
