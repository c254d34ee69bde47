"""Exception taxonomy for the Khata computation core."""

from typing import Any


class KhataError(Exception):
    """Base exception for Khata errors."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class ValidationError(KhataError):
    """Input rejected by a calculator; the caller should let the user correct it."""

    pass


class InvalidInputError(ValidationError):
    """Negative or non-numeric amount, rate or count."""

    pass


class MissingInputError(ValidationError):
    """Required field absent."""

    pass


class FormatError(ValidationError):
    """Registration ID does not match the GSTIN grammar."""

    pass


class JurisdictionError(ValidationError):
    """Registration ID has a valid grammar but an unknown jurisdiction code."""

    pass


class StoreError(KhataError):
    """Document store request failed."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message, details=details)
        self.status_code = status_code


class StoreUnavailableError(StoreError):
    """Document store could not be reached."""

    pass


class DuplicateDocumentError(StoreError):
    """A document with the same number already exists."""

    pass


class NumberingError(KhataError):
    """A unique document number could not be minted."""

    pass
