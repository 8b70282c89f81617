"""Tests for logger setup."""

import logging
from utils.logger import setup_logger


def test_setup_logger_default():
    """Test logger setup with default settings."""
    logger = setup_logger()
    assert logger.name == "github_issue_operator"
    assert logger.level == logging.INFO


def test_setup_logger_custom_level():
    """Test logger setup with custom log level."""
    logger = setup_logger(log_level="DEBUG")
    assert logger.level == logging.DEBUG


def test_logger_level_case_insensitive():
    """Test that log level string is case insensitive."""
    logger = setup_logger(log_level="debug")
    assert logger.level == logging.DEBUG


def test_http_client_loggers_quieted_outside_debug():
    """httpx/urllib3 request logs only show up when debugging."""
    setup_logger(log_level="INFO")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("urllib3").level == logging.WARNING
    
    setup_logger(log_level="DEBUG")
    assert logging.getLogger("httpx").level == logging.DEBUG
