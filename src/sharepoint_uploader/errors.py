# -*- coding: utf-8 -*-
"""
Exception hierarchy for SharePoint uploads through Microsoft Graph.
"""


class GraphServiceError(Exception):
    """Base exception for every failure raised by the Graph service."""


class ConfigurationError(GraphServiceError):
    """Raised when a required setting (client id, client secret, ...) is missing."""


class AuthorizationError(GraphServiceError):
    """Raised when a token exchange or refresh fails, or a request stays unauthorized."""


class TransientRequestError(GraphServiceError):
    """
    Raised for a failed attempt inside the retry loop.

    Never leaves GraphService.request; the loop absorbs it and tries again.
    """

    def __init__(self, message, error=None):
        super().__init__(message)
        self.error = error


class MaxRetriesExceededError(GraphServiceError):
    """Raised when every attempt of a request has failed."""

    def __init__(self, method, path):
        super().__init__(f"Max retries error in request [{method}]: {path}")
        self.method = method
        self.path = path


class UploadError(GraphServiceError):
    """Raised when uploading a file fails, carrying the remote path that was attempted."""

    def __init__(self, remote_path, cause=None):
        super().__init__(f"Cannot upload a new file in {remote_path}")
        self.remote_path = remote_path
        self.cause = cause


__all__ = [
    "GraphServiceError",
    "ConfigurationError",
    "AuthorizationError",
    "TransientRequestError",
    "MaxRetriesExceededError",
    "UploadError",
]
