import asyncio
from unittest.mock import AsyncMock

import pytest

from confidential_cards.claims import MintRequest, OperationKind, TransactionState, TransferRequest
from confidential_cards.encoder import IdentityEncoder
from confidential_cards.errors import (
    ExecutionReverted,
    SubmissionRejected,
    SubmissionTimedOut,
    ValidationFailed,
)
from confidential_cards.ledger import LedgerError, LedgerRejected, LedgerReverted
from confidential_cards.submitter import ClaimSubmitter

ALICE = "0x" + "a" * 39 + "1"
BOB = "0x" + "b" * 39 + "2"
CONTRACT = "con_confidential_cards"


@pytest.fixture
def mint_request(fhe):
    encrypted = IdentityEncoder(fhe).encode([ALICE], CONTRACT, ALICE)
    return MintRequest(metadata_reference="ipfs://abc", encrypted_input=encrypted)


async def test_submit_delivers_one_atomic_call(mint_request):
    ledger = AsyncMock()
    ledger.execute_state_change.return_value = "0xref"

    pending = await ClaimSubmitter(ledger).submit(mint_request, ALICE)

    assert pending.reference == "0xref"
    assert pending.operation is OperationKind.MINT
    assert pending.status is TransactionState.PENDING
    ledger.execute_state_change.assert_awaited_once_with(
        OperationKind.MINT,
        {"metadata_reference": "ipfs://abc"},
        mint_request.handles,
        mint_request.proof,
        ALICE,
    )


async def test_transfer_handles_keep_batch_order(fhe):
    encrypted = IdentityEncoder(fhe).encode([ALICE, BOB], CONTRACT, ALICE)
    request = TransferRequest(token_id=1, public_recipient=BOB, encrypted_input=encrypted)
    ledger = AsyncMock()
    ledger.execute_state_change.return_value = "0xref"

    await ClaimSubmitter(ledger).submit(request, ALICE)

    _, public_args, handles, proof, _ = ledger.execute_state_change.await_args.args
    assert public_args == {"token_id": 1, "public_recipient": BOB}
    assert handles == encrypted.handles
    assert proof == encrypted.proof


@pytest.mark.parametrize(
    "ledger_error, expected",
    [
        (LedgerRejected("Invalid input proof"), SubmissionRejected),
        (LedgerReverted("Caller is not the token owner"), ExecutionReverted),
    ],
)
async def test_ledger_failures_are_classified(mint_request, ledger_error, expected):
    ledger = AsyncMock()
    ledger.execute_state_change.side_effect = ledger_error

    with pytest.raises(expected) as exc:
        await ClaimSubmitter(ledger).submit(mint_request, ALICE)

    assert exc.value.operation == "mint"
    assert exc.value.reason == str(ledger_error)
    assert exc.value.__cause__ is ledger_error
    assert ledger.execute_state_change.await_count == 1


async def test_transport_failure_is_outcome_unknown(mint_request):
    ledger = AsyncMock()
    ledger.execute_state_change.side_effect = LedgerError("connection reset")

    with pytest.raises(SubmissionTimedOut) as exc:
        await ClaimSubmitter(ledger).submit(mint_request, ALICE)

    assert str(exc.value) == "mint failed: Outcome unknown: connection reset"
    assert not isinstance(exc.value, SubmissionRejected)
    assert ledger.execute_state_change.await_count == 1


async def test_slow_ledger_times_out(mint_request):
    async def never_answers(*args):
        await asyncio.sleep(10)

    ledger = AsyncMock()
    ledger.execute_state_change.side_effect = never_answers

    with pytest.raises(SubmissionTimedOut) as exc:
        await ClaimSubmitter(ledger, submission_timeout=0.05).submit(mint_request, ALICE)

    assert exc.value.classification == "SubmissionTimedOut"
    assert ledger.execute_state_change.await_count == 1


async def test_input_bound_to_other_submitter_is_not_sent(mint_request):
    ledger = AsyncMock()

    with pytest.raises(ValidationFailed):
        await ClaimSubmitter(ledger).submit(mint_request, BOB)

    ledger.execute_state_change.assert_not_called()


async def test_resubmitting_same_batch_is_rejected(ledger, fhe):
    encrypted = IdentityEncoder(fhe).encode([ALICE], ledger.address, ALICE)
    request = MintRequest(metadata_reference="ipfs://abc", encrypted_input=encrypted)
    submitter = ClaimSubmitter(ledger)

    await submitter.submit(request, ALICE)
    with pytest.raises(SubmissionRejected, match="already used"):
        await submitter.submit(request, ALICE)
