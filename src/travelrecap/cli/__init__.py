"""Command line interface."""

from travelrecap.cli.main import main, travelrecap

__all__ = ["main", "travelrecap"]
