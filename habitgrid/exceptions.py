"""Custom exceptions for habitgrid.

Provides domain-specific error types for each pipeline stage so failures can be
reported with a meaningful tag at the request boundary.
"""


class HabitGridError(Exception):
    """Base exception for all habitgrid errors."""

    pass


class ConfigurationError(HabitGridError):
    """Raised when process configuration is invalid or missing."""

    pass


class ConfigurationMissingError(HabitGridError):
    """Raised when a required sheet does not exist in the workbook."""

    def __init__(self, message: str, sheet: str | None = None):
        super().__init__(message)
        self.sheet = sheet


class ConfigurationEmptyError(HabitGridError):
    """Raised when the habit configuration sheet has no usable data rows."""

    def __init__(self, message: str, sheet: str | None = None):
        super().__init__(message)
        self.sheet = sheet


class InvalidPayloadError(HabitGridError):
    """Raised when the request body does not carry a usable image string."""

    def __init__(self, message: str, value_type: str | None = None, dump: str | None = None):
        super().__init__(message)
        self.value_type = value_type
        self.dump = dump


class ExtractionServiceError(HabitGridError):
    """Raised when the model provider reports an error or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ExtractionServiceMalformedError(HabitGridError):
    """Raised when the model response lacks the candidate text path."""

    def __init__(self, message: str, body: str | None = None):
        super().__init__(message)
        self.body = body


class ExtractionResponseUnparseableError(HabitGridError):
    """Raised when the model text is not valid JSON after sanitization."""

    def __init__(self, message: str, text: str | None = None):
        super().__init__(message)
        self.text = text


class ReconciliationError(HabitGridError):
    """Base class for failures while merging results into the weekly sheet."""

    pass


class ReconciliationFieldMissingError(ReconciliationError):
    """Raised when an extraction result lacks a mandatory field."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidWeekDateError(ReconciliationError):
    """Raised when week_start_date is not a valid MM/DD/YYYY date."""

    def __init__(self, message: str, value: str | None = None):
        super().__init__(message)
        self.value = value
