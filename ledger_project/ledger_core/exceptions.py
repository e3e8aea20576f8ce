class LedgerError(Exception):
    """Base class for ledger service failures."""
    pass


class NotFoundError(LedgerError):
    """Raised when an account, entry or period does not exist (or is inactive)."""
    pass


class UnbalancedJournalError(LedgerError):
    """Raised when a JournalEntry fails double-entry balance check."""
    pass


class ForbiddenOperation(LedgerError):
    """Raised on system-account mutation, posted-entry mutation or auto-entry deletion."""
    pass


class AlreadyPostedError(ForbiddenOperation):
    """Raised when editing a JournalEntry that is already posted."""
    pass


class ConflictError(LedgerError):
    """Raised when state forbids the operation (account has lines, double post)."""
    pass


class PeriodClosedError(LedgerError):
    """Raised when unposting an entry dated inside a closed period."""
    pass


class EntryValidationFailed(LedgerError):
    """Raised when an automatic entry cannot be built from its source transaction.

    Not fatal for batch regeneration: the transaction is skipped.
    """
    pass


class MissingAccountError(EntryValidationFailed):
    """Raised when a mapped ledger account is absent from the chart."""

    def __init__(self, code):
        self.code = code
        super().__init__(f"Ledger account {code} is not configured for this quarry")
