"""Exception hierarchy for the loan backend."""


class LoanAppError(Exception):
    """Base exception for all loan backend errors."""

    status_code = 500


class EntityNotFoundError(LoanAppError):
    """Raised when a loan, EMI or expense does not exist."""

    status_code = 404


class DuplicateLoanNumberError(LoanAppError):
    """Raised when a loan number is already taken."""

    status_code = 409


class ValidationError(LoanAppError):
    """Raised when input passes schema checks but breaks a business rule."""

    status_code = 400


class ScheduleReconciliationError(LoanAppError):
    """Raised when an EMI schedule could not be fully written.

    The session is rolled back, but callers should re-fetch the loan and its
    EMIs before retrying.
    """

    status_code = 500
