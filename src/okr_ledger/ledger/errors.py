"""Error taxonomy for ledger operations. Every error leaves state unchanged."""


class LedgerError(RuntimeError):
    """Base class for ledger failures."""


class NotFoundError(LedgerError):
    """Unknown record id, team aggregate, or request."""


class UnauthorizedError(LedgerError):
    """The injected access policy denied the caller."""


class EmptyAggregateError(LedgerError):
    """Decryption was requested before any recompute for the team."""


class InvalidProofError(LedgerError):
    """Oracle proof failed verification; the request stays pending."""


class UnknownRequestError(LedgerError):
    """Callback referenced a request id the client never issued."""
