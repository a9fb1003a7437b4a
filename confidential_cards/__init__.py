"""Client protocol for confidential-ownership collectible cards."""

from confidential_cards.config import LocalLedgerConfig, ProtocolConfig
from confidential_cards.errors import (
    ConfirmationTimedOut,
    EncodingFailed,
    ExecutionReverted,
    ProtocolError,
    SubmissionRejected,
    SubmissionTimedOut,
    ValidationFailed,
)
from confidential_cards.orchestrator import CONFIDENTIAL_OWNER, CardView, Session, mint, transfer, view
from confidential_cards.results import Failure, Outcome, Success

__version__ = "0.1.0"

__all__ = [
    "CONFIDENTIAL_OWNER",
    "CardView",
    "ConfirmationTimedOut",
    "EncodingFailed",
    "ExecutionReverted",
    "Failure",
    "LocalLedgerConfig",
    "Outcome",
    "ProtocolConfig",
    "ProtocolError",
    "Session",
    "SubmissionRejected",
    "SubmissionTimedOut",
    "Success",
    "ValidationFailed",
    "mint",
    "transfer",
    "view",
]
