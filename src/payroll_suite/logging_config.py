"""Logging setup for the payroll suite."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the package logger once; repeated calls only adjust the level."""
    package_logger = logging.getLogger("payroll_suite")
    package_logger.setLevel(level)

    if not any(getattr(h, "_payroll_suite", False) for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._payroll_suite = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)
