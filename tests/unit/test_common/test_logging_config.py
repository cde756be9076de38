"""
Logging Configuration Unit Tests
"""

import logging

from coze2openai.logging_config import setup_logging


def test_debug_level_follows_flag():
    setup_logging(debug=True)
    assert logging.getLogger("coze2openai").level == logging.DEBUG

    setup_logging(debug=False)
    assert logging.getLogger("coze2openai").level == logging.INFO


def test_httpx_request_lines_are_quiet():
    setup_logging(debug=True)

    assert logging.getLogger("httpx").level == logging.WARNING
