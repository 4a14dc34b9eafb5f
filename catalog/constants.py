"""
Shared choice enums for the device catalog.

Kept out of models.py so the exception hierarchy and the scoring helpers
can use them without touching the app registry.
"""

from django.db import models


class ErrorCategory(models.TextChoices):
    """Failure categories tracked by the error monitor."""

    CLEAN_UP = "clean_up", "Clean Up"
    SENTIMENT_ANALYSIS = "sentiment_analysis", "Sentiment Analysis"
    CREATING_NEW_AI_CLIENT = "creating_new_ai_client", "Creating New AI Client"
    AI_NETWORK = "ai_network", "AI Network"
    FAILED_AI_INSTRUCTION = "failed_ai_instruction", "Failed AI Instruction"
    GETTING_URL = "getting_url", "Getting URL"
    GETTING_DOCUMENT = "getting_document", "Getting Document"
    PARSING = "parsing", "Parsing"
    MISSING_DOCUMENT = "missing_document", "Missing Document"
    DATABASE_NETWORK = "database_network", "Database Network"
    GENERAL_DATABASE = "general_database", "General Database"
    INVALID_CONST_ID_STRING = "invalid_const_id_string", "Invalid Identifier"


# Ceiling per category; a category trips the breaker when its count exceeds it.
DEFAULT_ERROR_CEILINGS = {
    ErrorCategory.CLEAN_UP: 10,
    ErrorCategory.SENTIMENT_ANALYSIS: 3,
    ErrorCategory.CREATING_NEW_AI_CLIENT: 3,
    ErrorCategory.AI_NETWORK: 3,
    ErrorCategory.FAILED_AI_INSTRUCTION: 1,
    ErrorCategory.GETTING_URL: 5,
    ErrorCategory.GETTING_DOCUMENT: 5,
    ErrorCategory.PARSING: 5,
    ErrorCategory.MISSING_DOCUMENT: 1,
    ErrorCategory.DATABASE_NETWORK: 3,
    ErrorCategory.GENERAL_DATABASE: 1,
    ErrorCategory.INVALID_CONST_ID_STRING: 1,
}


class PriceCategory(models.IntegerChoices):
    """Launch price bracket of a device."""

    LOW_END = 0, "Low End"
    LOW_MID_RANGE = 1, "Low Mid Range"
    HIGH_MID_RANGE = 2, "High Mid Range"
    HIGH_END = 3, "High End"


class ValidationStatus(models.TextChoices):
    """State of the score promotion state machine."""

    IDLE = "idle", "Idle"
    PROMOTING = "promoting", "Promoting"


class PipelineRunStatus(models.TextChoices):
    """Lifecycle of a pipeline run."""

    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    FINISHED = "finished", "Finished"


class PipelineOutcome(models.TextChoices):
    """How a pipeline run ended."""

    COMPLETED = "completed", "Completed"
    TOO_MANY_ERRORS = "too_many_errors", "Stopped Due To Too Many Errors"
    STOPPED_BY_REQUEST = "stopped_by_request", "Stopped By External Request"
    FAILED = "failed", "Failed To Start"


APPLE_BRAND = "Apple"
