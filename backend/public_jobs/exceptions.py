"""Exception hierarchy for the public jobs service."""

from typing import Optional


class PublicJobsError(Exception):
    """Base exception for all service errors."""


class ConfigurationError(PublicJobsError):
    """Raised when a required setting (e.g. the service key) is missing."""


class UpstreamError(PublicJobsError):
    """Raised when the recruitment API cannot be reached or answers badly."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
