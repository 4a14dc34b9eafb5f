"""
Exception hierarchy for the device catalog pipeline.

Every counted failure carries the ErrorCategory the error monitor
increments for it. Exceptions with ``category = None`` are part of
normal control flow and never count towards a ceiling.
"""

from typing import Optional

from catalog.constants import ErrorCategory


class CatalogError(Exception):
    """Base class for all catalog pipeline errors."""

    category: Optional[str] = None

    def __init__(self, message: str = "", *, device_name: str = "", url: str = ""):
        super().__init__(message)
        self.message = message
        self.device_name = device_name
        self.url = url

    @property
    def counted(self) -> bool:
        return self.category is not None


class PipelineCancelled(CatalogError):
    """Raised when an operation is invoked on a cancelled pipeline context."""


class GettingURLError(CatalogError):
    category = ErrorCategory.GETTING_URL


class GettingDocumentError(CatalogError):
    category = ErrorCategory.GETTING_DOCUMENT


class ParsingError(CatalogError):
    """An external payload could not be interpreted."""

    category = ErrorCategory.PARSING


class MissingDocumentError(CatalogError):
    """An expected record was not found."""

    category = ErrorCategory.MISSING_DOCUMENT


class EmptyQueueError(MissingDocumentError):
    """Dequeue found no entries. Benign, so it is never counted."""

    category = None


class DatabaseNetworkError(CatalogError):
    category = ErrorCategory.DATABASE_NETWORK


class GeneralDatabaseError(CatalogError):
    category = ErrorCategory.GENERAL_DATABASE


class CreatingAIClientError(CatalogError):
    category = ErrorCategory.CREATING_NEW_AI_CLIENT


class AINetworkError(CatalogError):
    category = ErrorCategory.AI_NETWORK


class FailedAIInstructionError(CatalogError):
    """The model answered with something outside the requested format."""

    category = ErrorCategory.FAILED_AI_INSTRUCTION


class SentimentAnalysisError(CatalogError):
    category = ErrorCategory.SENTIMENT_ANALYSIS


class CleanUpError(CatalogError):
    category = ErrorCategory.CLEAN_UP


class InvalidIdentifierError(CatalogError):
    category = ErrorCategory.INVALID_CONST_ID_STRING


class NoSuchBenchmarkError(CatalogError):
    """The benchmark source has no entry for the device."""


class InvalidDeviceError(CatalogError):
    """The device is permanently rejected (cancelled, too old, not a phone)."""


class NoLastYearEquivalentError(CatalogError):
    """No predecessor device was found to estimate a benchmark from."""
