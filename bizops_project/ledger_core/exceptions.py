class LedgerError(Exception):
    """Base class for every failure raised by the ledger engine."""
    pass


# ---------- Validation errors (rejected before any write) ----------
class InvalidAmount(LedgerError):
    """Amount is not positive, badly formed or exceeds the balance."""
    pass


class InvalidTaxId(LedgerError):
    """Tax identifier (SIREN) is not exactly 9 digits."""
    pass


class InvalidDateRange(LedgerError):
    """Export range starts after it ends."""
    pass


class InvalidPaymentMethod(LedgerError):
    pass


# ---------- Conflict errors (caller may retry the whole call) ----------
class NumberingConflict(LedgerError):
    """The document sequence changed under us while issuing a number."""
    pass


# ---------- State errors ----------
class QuoteNotFound(LedgerError):
    pass


class InvalidQuoteStatus(LedgerError):
    pass


class InvoiceNotFound(LedgerError):
    pass


class InvalidInvoiceStatus(LedgerError):
    pass


class PaymentNotFound(LedgerError):
    pass


# ---------- Persistence errors ----------
class PersistenceFailure(LedgerError):
    """A multi-record write did not persist completely and was rolled back."""
    pass
