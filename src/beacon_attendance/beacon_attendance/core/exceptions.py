class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidScheduleError(ValidationError):
    """Raised when a schedule entry carries malformed configuration data."""


class NotInSessionError(DomainError):
    """Raised when attendance is requested outside the class time window."""


class PermissionDenied(DomainError):
    """Raised when the radio permissions were not granted; the scan never starts."""


class ProximityError(DomainError):
    """Base exception for beacon proximity failures."""


class ConnectionFailure(ProximityError):
    """Raised by a radio when a beacon connect attempt fails."""


class DiscoveryTimeout(ProximityError):
    """Raised when the overall discovery window elapsed without a connection."""


class OutOfRange(ProximityError):
    """Raised when the beacon is not (or no longer) within the allowed range."""


class StoreUnavailableError(DomainError):
    """Raised when the durable attendance store cannot be read or written."""
