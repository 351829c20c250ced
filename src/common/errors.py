# ABOUTME: Declares the error taxonomy raised at the analytics engine boundary.
# ABOUTME: All errors subclass ValueError so callers can treat them as bad input.


class AnalyticsError(ValueError):
    """Base class for caller contract violations detected by the engine."""


class InvalidRangeError(AnalyticsError):
    """Raised for inverted date ranges and unsupported categories or bin widths."""


class DerivedFieldError(AnalyticsError):
    """Raised when a payload tries to set a field that is computed from other inputs."""

    def __init__(self, record_type: str, fields):
        self.record_type = record_type
        self.fields = sorted(fields)
        super().__init__(
            f"{record_type} fields {', '.join(self.fields)} are derived and cannot be supplied."
        )
