"""
Exception types raised by the Quire compilation pipeline.

Every malformed-input path in the pipeline raises one of these instead of
terminating the process, so a caller can decide how to report a failed run.
"""


class QuireError(Exception):
    """Base class for all Quire errors."""


class ValidationError(QuireError):
    """Unsafe path, symlink, oversized file, or malformed URL/language code."""


class ExtractionError(QuireError):
    """No recognizable metadata block at the start of a document."""


class ParseError(QuireError):
    """A metadata block was found but its body could not be parsed."""

    def __init__(self, dialect, message):
        self.dialect = dialect
        super().__init__(f"{dialect} parse error: {message}")


class SerializeError(QuireError):
    """A structured value cannot be written in the requested dialect."""


class ConversionError(QuireError):
    """A dialect was requested that Quire does not support."""

    def __init__(self, dialect):
        self.dialect = dialect
        super().__init__(f"Unsupported dialect: {dialect!r}")


class NormalizationError(QuireError):
    """Document metadata could not be normalized."""


class DateParseError(NormalizationError):
    def __init__(self, value, reason="unrecognized date format"):
        self.value = value
        super().__init__(f"Invalid date {value!r}: {reason}")


class MissingFieldError(NormalizationError):
    def __init__(self, field):
        self.field = field
        super().__init__(f"Missing required field: {field}")


class RenderError(QuireError):
    """Missing template, missing context key, or empty template."""


class AggregatorStateError(QuireError):
    """The tag index was used after it had been finalized."""


class CompilationError(QuireError):
    """A document failed to compile and the run was aborted."""

    def __init__(self, document, cause):
        self.document = document
        self.cause = cause
        super().__init__(f"Failed to compile {document}: {cause}")
