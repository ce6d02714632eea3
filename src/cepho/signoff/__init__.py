"""CEPHO Sign-off Tracker

Sign-off blocks, the forward-only status lifecycle and the append-only
sign-off ledger.
"""

from cepho.signoff.ledger import SignOffLedger
from cepho.signoff.tracker import (
    DocumentFinalizedError,
    InvalidStatusTransitionError,
    SignOffError,
    advance_status,
    can_transition,
    sign_off,
)

__all__ = [
    "DocumentFinalizedError",
    "InvalidStatusTransitionError",
    "SignOffError",
    "SignOffLedger",
    "advance_status",
    "can_transition",
    "sign_off",
]
