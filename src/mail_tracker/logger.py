# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the mail tracker.

This module provides a centralized logging helper. The actual logging setup
(level, handlers, format) is configured via ``logging.basicConfig()`` in the
entry point to avoid duplicate handlers.

Example:
    Typical usage in a module::

        from mail_tracker.logger import get_logger

        logger = get_logger("Feedback")
        logger.info("Bounce recorded")
"""

import logging


def get_logger(name: str = "MailTracker") -> logging.Logger:
    """Retrieve a logger instance.

    Handlers and formatters are not configured here; that responsibility
    lies with the application entry point.

    Args:
        name: The logger name. Defaults to "MailTracker".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)
