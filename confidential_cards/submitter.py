import asyncio
from typing import Union

import structlog

from confidential_cards.addresses import normalize_address
from confidential_cards.claims import MintRequest, PendingTransaction, TransferRequest
from confidential_cards.errors import (
    ExecutionReverted,
    SubmissionRejected,
    SubmissionTimedOut,
    ValidationFailed,
)
from confidential_cards.ledger import Ledger, LedgerError, LedgerRejected, LedgerReverted

log = structlog.get_logger(__name__)

StateChangingRequest = Union[MintRequest, TransferRequest]


class ClaimSubmitter:
    """
    Delivers one state-changing request to the ledger as a single call.

    A submission is attempted exactly once. Rejections, reverts and timeouts
    are raised to the caller, since resubmitting could execute twice.
    """

    def __init__(self, ledger: Ledger, submission_timeout: float = 30.0):
        self.ledger = ledger
        self.submission_timeout = submission_timeout

    async def submit(self, request: StateChangingRequest, submitter: str) -> PendingTransaction:
        operation = request.operation_kind.value
        submitter = normalize_address(submitter, field="submitter", operation=operation)
        if request.encrypted_input.submitter != submitter:
            raise ValidationFailed("Encrypted input is bound to a different submitter",
                                   operation=operation)

        try:
            reference = await asyncio.wait_for(
                self.ledger.execute_state_change(
                    request.operation_kind,
                    request.public_args(),
                    request.handles,
                    request.proof,
                    submitter,
                ),
                timeout=self.submission_timeout,
            )
        except asyncio.TimeoutError:
            log.warning("submission_timed_out", operation=operation, timeout=self.submission_timeout)
            raise SubmissionTimedOut(
                f"No response from the ledger within {self.submission_timeout:g}s",
                operation=operation,
            ) from None
        except LedgerRejected as e:
            log.warning("submission_rejected", operation=operation, reason=str(e))
            raise SubmissionRejected(str(e), operation=operation) from e
        except LedgerReverted as e:
            log.warning("submission_reverted", operation=operation, reason=str(e))
            raise ExecutionReverted(str(e), operation=operation) from e
        except LedgerError as e:
            # No answer we can trust: the request may or may not have been accepted
            log.warning("submission_outcome_unknown", operation=operation, reason=str(e))
            raise SubmissionTimedOut(f"Outcome unknown: {e}", operation=operation) from e

        log.info("request_submitted", operation=operation, reference=reference,
                 handles=len(request.handles))
        return PendingTransaction(reference=reference, operation=request.operation_kind,
                                  submitter=submitter)
