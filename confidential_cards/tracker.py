"""
Confirmation tracking for submitted requests.

    PENDING --> INCLUDED --> FINALIZED
        \           \
         +-----------+--> FAILED

The tracker only polls. Each poll is a read of the transaction's status and
never changes ledger state, so a poll can be repeated freely. Cancelling
``wait`` stops the local wait only; the submitted transaction may still be
executed by the ledger.
"""

import asyncio
import time
from typing import Callable, Optional

import structlog

from confidential_cards.claims import PendingTransaction, TransactionState
from confidential_cards.errors import ConfirmationTimedOut, ExecutionReverted
from confidential_cards.ledger import Ledger, LedgerError, ReceiptStatus, TransactionReport
from confidential_cards.results import Failure, Outcome, Success

log = structlog.get_logger(__name__)


class ConfirmationTracker:
    def __init__(self,
                 ledger: Ledger,
                 poll_interval: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.ledger = ledger
        self.poll_interval = poll_interval
        self._clock = clock

    async def wait(self, pending: PendingTransaction, timeout: float) -> Outcome:
        """Poll until ``pending`` is finalized or failed, or ``timeout`` seconds pass."""
        operation = pending.operation.value
        deadline = self._clock() + timeout
        last_error: Optional[str] = None

        try:
            while True:
                try:
                    report = await self.ledger.get_transaction(pending.reference)
                except LedgerError as e:
                    last_error = str(e)
                    log.warning("confirmation_poll_failed", reference=pending.reference, error=last_error)
                else:
                    outcome = self._observe(pending, report)
                    if outcome is not None:
                        return outcome

                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                await asyncio.sleep(min(self.poll_interval, remaining))
        except asyncio.CancelledError:
            log.warning("confirmation_wait_cancelled", reference=pending.reference,
                        status=pending.status.value)
            raise

        reason = f"Not finalized within {timeout:g}s (last status: {pending.status.value})"
        if last_error:
            reason = f"{reason}; last poll error: {last_error}"
        self._transition(pending, TransactionState.FAILED)
        return Failure(ConfirmationTimedOut(reason, operation=operation))

    def _observe(self, pending: PendingTransaction, report: TransactionReport) -> Optional[Outcome]:
        if report.status is ReceiptStatus.PENDING:
            return None

        if report.status is ReceiptStatus.INCLUDED:
            self._transition(pending, TransactionState.INCLUDED, height=report.block_height)
            return None

        if report.status is ReceiptStatus.FINALIZED:
            self._transition(pending, TransactionState.FINALIZED, height=report.block_height)
            return Success(reference=report.reference, block_height=report.block_height,
                           value=report.result)

        self._transition(pending, TransactionState.FAILED, height=report.block_height)
        return Failure(ExecutionReverted(report.revert_reason or "Execution reverted",
                                         operation=pending.operation.value))

    def _transition(self, pending: PendingTransaction, state: TransactionState, **context) -> None:
        if pending.status is state:
            return
        log.info("transaction_state_changed", reference=pending.reference,
                 previous=pending.status.value, status=state.value, **context)
        pending.status = state
