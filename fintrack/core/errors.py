class LedgerError(Exception):
    """Base class for ledger failures surfaced to callers."""

    code = "ledger_error"

    def __init__(self, code: str | None = None, message: str | None = None):
        if code is not None:
            self.code = code
        self.message = message or self.code
        super().__init__(self.message)


class ValidationError(LedgerError):
    code = "validation_error"


class NotFoundError(LedgerError):
    code = "not_found"


class AccountNotFound(NotFoundError):
    code = "account_not_found"


class EntryNotFound(NotFoundError):
    code = "entry_not_found"


class ObligationNotFound(NotFoundError):
    code = "obligation_not_found"


class PlanNotFound(NotFoundError):
    code = "plan_not_found"


class ConsistencyWarning(UserWarning):
    """An entry points at an account that no longer exists. Logged, never raised."""
