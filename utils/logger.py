"""Logging setup for the operator."""

import logging
import sys

# Libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "hpack")


def setup_logger(log_level: str = "INFO", name: str = "github_issue_operator") -> logging.Logger:
    """
    Configure process-wide logging and return the named logger.
    
    Worker threads reconcile records concurrently, so the thread name is part
    of every line.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        name: Logger name (default: github_issue_operator)
        
    Returns:
        logging.Logger: Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stdout,
        force=True,  # Override any existing configuration
    )
    
    # Keep HTTP client chatter out of INFO output unless debugging
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(
            numeric_level if numeric_level <= logging.DEBUG else logging.WARNING
        )
    
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)
    
    return logger
