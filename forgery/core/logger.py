"""Run logging: one log file per invocation plus console output."""

import os
import sys
import logging
from datetime import datetime
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Third-party loggers that flood debug output with one line per request
NOISY_LOGGERS = ('urllib3', 'requests')


def log_file_path(operation: str, log_dir: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Path of the log file for one run: <log_dir>/forgery_<operation>_<timestamp>.log"""
    log_dir = log_dir or os.path.join(os.getcwd(), 'logs')
    timestamp = (now or datetime.now()).strftime('%Y%m%d_%H%M%S')
    return os.path.join(log_dir, f'forgery_{operation}_{timestamp}.log')


def setup_logging(operation: str = "sync", verbose: bool = False,
                  log_dir: Optional[str] = None) -> logging.Logger:
    """Configure the root logger for a forgery run.

    Args:
        operation: Subcommand name, used in the log filename
        verbose: Log debug messages, including every git command
        log_dir: Directory for the log file (default: ./logs)

    Returns:
        The 'forgery' logger
    """
    log_file = log_file_path(operation, log_dir)
    os.makedirs(os.path.dirname(log_file), exist_ok=True)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger('forgery')
    logger.info(f"Starting forgery {operation}")
    logger.info(f"Log file: {log_file}")
    return logger
