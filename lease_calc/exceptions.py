"""Exception hierarchy for the lease calculator."""


class LeaseCalcError(Exception):
    """Base exception for all lease calculator errors."""


class FormatError(LeaseCalcError, ValueError):
    """Raised when a tenure (or other human-entered) string cannot be parsed."""


class InvalidTermsError(LeaseCalcError, ValueError):
    """Raised when loan terms cannot produce a schedule."""


class InvalidInstallmentStateError(LeaseCalcError):
    """Raised when an installment is in an invalid state for the operation."""


class PolicyResolutionError(LeaseCalcError):
    """Raised when a settlement policy yields no applicable discount."""


class ApplicationNotFoundError(LeaseCalcError):
    """Raised when a referenced application does not exist in the store."""


class ScheduleConflictError(LeaseCalcError):
    """Raised when a schedule write is based on a stale version."""


class ConfigurationError(LeaseCalcError):
    """Raised when configuration is invalid or missing."""
