"""Shared utilities."""

from travelrecap.utils.logging import LogContext, configure_logging, setup_logging

__all__ = ["LogContext", "configure_logging", "setup_logging"]
