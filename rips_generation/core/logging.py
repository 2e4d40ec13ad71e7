"""
Logging Setup

Installs loguru sinks for CLI and service use. Library modules only call
`from loguru import logger`; sinks are configured once by the entry point.

Author: Shubham Singh
Date: December 2025
"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def configure_logging(
    level: str = "INFO", log_file: Optional[Union[str, Path]] = None
) -> None:
    """
    Replace default sinks with a stderr sink and an optional file sink.

    Args:
        level: Minimum level for both sinks
        log_file: Path of a rotating log file (10 MB, 5 kept)
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), level=level, rotation="10 MB", retention=5)
