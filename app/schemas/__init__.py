"""Public schema exports."""

from .auth import SubmitPayload, TokenExchangeResult
from .contact import Contact, ContactProperties
from .jobs import BackfillJobStatus, BackfillSummary

__all__ = [
    "BackfillJobStatus",
    "BackfillSummary",
    "Contact",
    "ContactProperties",
    "SubmitPayload",
    "TokenExchangeResult",
]
