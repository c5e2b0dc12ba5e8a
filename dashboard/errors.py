"""
Error taxonomy for the dashboard feeds.

Every upstream client raises a DashboardError subclass. The session catches
them per feed and stores the message; nothing here is fatal to the process.
"""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for feed failures shown on a dashboard panel."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FetchError(DashboardError):
    """Raised when an upstream request fails or returns a non-success status."""


class ResolutionError(DashboardError):
    """Raised when the configured station name maps to no transit site."""


class ParseError(DashboardError):
    """Raised when a calendar document cannot be recognized."""
