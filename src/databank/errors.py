"""
Error taxonomy for the question-answering service.

Hard failures (quota, validation, configuration, backend) propagate to the
caller and map to distinct HTTP statuses in ``api_server``. ``CorpusReadError``
is raised and absorbed inside the corpus catalog.
"""
from __future__ import annotations


class DatabankError(Exception):
    """Base class for all service errors."""


class QuotaExceededError(DatabankError):
    """Raised when the daily invocation quota is exhausted."""

    def __init__(self, limit: int, remaining: int = 0):
        super().__init__(f"daily quota of {limit} requests exhausted")
        self.limit = int(limit)
        self.remaining = int(remaining)


class ValidationError(DatabankError):
    """Raised for malformed requests."""


class ConfigurationError(DatabankError):
    """Raised when a required backend setting (e.g. an API key) is missing."""


class CorpusReadError(DatabankError):
    """Raised when a corpus directory or document cannot be read."""


class BackendError(DatabankError):
    """Raised when a generative backend call fails or times out."""


class ClassificationError(BackendError):
    """Backend failure while choosing topics for a query."""


class GenerationError(BackendError):
    """Backend failure while synthesizing the answer."""
