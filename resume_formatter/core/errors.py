from __future__ import annotations


class FormatterError(RuntimeError):
    """Base class for failures surfaced to the caller of a pipeline stage."""

    code = "formatter_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code


class ConfigurationError(FormatterError):
    code = "config_missing"


class UnsupportedInputError(FormatterError):
    code = "unsupported_input"


class ExtractionError(FormatterError):
    code = "extraction_failed"


class RotationExhaustedError(FormatterError):
    code = "rate_limited"

    def __init__(self, message: str, *, attempts: int, errors: list[str] | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.errors = list(errors or [])


class ExportError(FormatterError):
    code = "export_failed"


class ProviderError(FormatterError):
    """The model provider failed for a reason other than rate limiting."""

    code = "llm_failed"
