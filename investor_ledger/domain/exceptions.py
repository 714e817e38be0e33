"""Domain-specific exceptions"""


class LedgerError(Exception):
    """Base exception for domain layer"""

    code = "LedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmountError(LedgerError):
    """Amount is non-numeric, not positive where required, or exceeds the available balance"""

    code = "InvalidAmount"


class InvalidDateError(LedgerError):
    """Date cannot be parsed or lies outside the supported calendar range"""

    code = "InvalidDate"


class InvariantViolationError(LedgerError):
    """Operation would break a ledger invariant (e.g. remove the sole Initial entry)"""

    code = "InvariantViolation"


class NotFoundError(LedgerError):
    """Referenced company, account or transaction index does not exist"""

    code = "NotFound"


class PersistenceFailureError(LedgerError):
    """Storage layer failed; caller decides whether to retry"""

    code = "PersistenceFailure"
