"""Custom exceptions for the Cabrillo checker."""


class CabrilloCheckerError(Exception):
    """Base exception for the Cabrillo checker."""

    pass


class ValidationError(CabrilloCheckerError):
    """Raised when a value falls outside its allowed vocabulary."""

    pass


class FileProcessingError(CabrilloCheckerError):
    """Raised when an input document is rejected before parsing."""

    pass


class DataParsingError(CabrilloCheckerError):
    """Raised when a single log record cannot be interpreted."""

    pass


class ConfigurationError(CabrilloCheckerError):
    """Raised when configuration or reference data is invalid."""

    pass
