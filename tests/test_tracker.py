import asyncio
from unittest.mock import AsyncMock

import pytest

from confidential_cards.claims import OperationKind, PendingTransaction, TransactionState
from confidential_cards.errors import ConfirmationTimedOut, ExecutionReverted
from confidential_cards.ledger import LedgerError, ReceiptStatus, TransactionReport
from confidential_cards.results import Failure, Success
from confidential_cards.tracker import ConfirmationTracker

ALICE = "0x" + "a" * 39 + "1"


def pending(operation=OperationKind.MINT):
    return PendingTransaction(reference="0xref", operation=operation, submitter=ALICE)


def report(status, **kwargs):
    return TransactionReport(reference="0xref", status=status, **kwargs)


def ledger_reporting(*reports):
    ledger = AsyncMock()
    ledger.get_transaction.side_effect = list(reports)
    return ledger


async def test_walks_to_finalized():
    ledger = ledger_reporting(
        report(ReceiptStatus.PENDING),
        report(ReceiptStatus.INCLUDED, block_height=4),
        report(ReceiptStatus.FINALIZED, block_height=4, confirmations=2, result=1),
    )
    tx = pending()

    outcome = await ConfirmationTracker(ledger, poll_interval=0.001).wait(tx, timeout=1.0)

    assert outcome == Success(reference="0xref", block_height=4, value=1)
    assert outcome.ok
    assert tx.status is TransactionState.FINALIZED
    assert ledger.get_transaction.await_count == 3
    ledger.execute_state_change.assert_not_called()


async def test_revert_is_terminal_failure():
    ledger = ledger_reporting(
        report(ReceiptStatus.REVERTED, block_height=2, revert_reason="Caller is not the token owner"),
    )
    tx = pending(OperationKind.TRANSFER)

    outcome = await ConfirmationTracker(ledger, poll_interval=0.001).wait(tx, timeout=1.0)

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, ExecutionReverted)
    assert outcome.reason == "transfer failed: Caller is not the token owner"
    assert tx.status is TransactionState.FAILED


async def test_times_out_when_never_final():
    ledger = AsyncMock()
    ledger.get_transaction.return_value = report(ReceiptStatus.INCLUDED, block_height=1)
    tx = pending()

    outcome = await ConfirmationTracker(ledger, poll_interval=0.01).wait(tx, timeout=0.05)

    assert not outcome.ok
    assert isinstance(outcome.error, ConfirmationTimedOut)
    assert "last status: included" in outcome.error.reason
    assert tx.status is TransactionState.FAILED
    assert ledger.get_transaction.await_count >= 2


async def test_poll_errors_do_not_end_the_wait():
    ledger = ledger_reporting(
        LedgerError("node unavailable"),
        report(ReceiptStatus.FINALIZED, block_height=9),
    )

    outcome = await ConfirmationTracker(ledger, poll_interval=0.001).wait(pending(), timeout=1.0)

    assert outcome.ok
    assert outcome.block_height == 9


async def test_poll_errors_until_deadline_are_reported():
    ledger = AsyncMock()
    ledger.get_transaction.side_effect = LedgerError("node unavailable")

    outcome = await ConfirmationTracker(ledger, poll_interval=0.01).wait(pending(), timeout=0.03)

    assert isinstance(outcome.error, ConfirmationTimedOut)
    assert "node unavailable" in outcome.error.reason


async def test_cancel_detaches_waiter_only():
    ledger = AsyncMock()
    ledger.get_transaction.return_value = report(ReceiptStatus.PENDING)
    tx = pending()

    task = asyncio.create_task(ConfirmationTracker(ledger, poll_interval=0.01).wait(tx, timeout=10))
    await asyncio.sleep(0.03)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert tx.status is TransactionState.PENDING
    ledger.execute_state_change.assert_not_called()
