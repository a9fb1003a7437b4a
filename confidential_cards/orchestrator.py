"""
User-facing card operations.

    outcome = await mint(session, "ipfs://...", recipient)
    outcome = await transfer(session, token_id, current_owner, new_owner, public_recipient)
    card = await view(session, token_id)

mint and transfer run encode -> submit -> confirm strictly in that order, each
with a freshly encoded batch so no handle is ever submitted twice. Malformed
arguments raise ValidationFailed before any collaborator is called. Any later
failure aborts the operation and comes back as a Failure outcome.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

import structlog
from structlog.contextvars import bound_contextvars

from confidential_cards.addresses import normalize_address, normalize_contract, normalize_identity
from confidential_cards.claims import MintRequest, TransferRequest
from confidential_cards.config import ProtocolConfig
from confidential_cards.encoder import IdentityEncoder
from confidential_cards.errors import EncodingFailed, ProtocolError, ValidationFailed
from confidential_cards.fhe import FheInstance
from confidential_cards.ledger import Ledger
from confidential_cards.reader import PublicStateReader
from confidential_cards.results import Failure, Outcome
from confidential_cards.submitter import ClaimSubmitter
from confidential_cards.tracker import ConfirmationTracker

log = structlog.get_logger(__name__)

CONFIDENTIAL_OWNER = "present, confidential"


@dataclass(frozen=True)
class Session:
    """Everything an operation needs, passed in explicitly at call time."""

    ledger: Ledger
    fhe: FheInstance
    contract: str
    submitter: str
    config: ProtocolConfig = field(default_factory=ProtocolConfig.from_env)


@dataclass(frozen=True)
class CardView:
    token_id: int
    total_supply: int
    metadata_reference: Optional[str]
    public_owner: Optional[str]
    encrypted_owner: Optional[str]

    @property
    def exists(self) -> bool:
        return self.public_owner is not None


async def mint(session: Session, metadata_reference: str, recipient: str) -> Outcome:
    operation = "mint"
    if not isinstance(metadata_reference, str) or not metadata_reference.strip():
        raise ValidationFailed("Metadata reference is required", operation=operation)
    recipient = normalize_identity(recipient, field="recipient", operation=operation)
    contract, submitter = _binding(session, operation)

    with bound_contextvars(operation=operation, submitter=submitter):
        try:
            encrypted = IdentityEncoder(session.fhe).encode([recipient], contract, submitter)
        except EncodingFailed as e:
            return Failure(e.for_operation(operation))

        request = MintRequest(metadata_reference=metadata_reference, encrypted_input=encrypted)
        outcome = await _submit_and_confirm(session, request)
        _log_outcome(outcome)
        return outcome


async def transfer(session: Session,
                   token_id: int,
                   current_owner: str,
                   new_owner: str,
                   public_recipient: str) -> Outcome:
    operation = "transfer"
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 1:
        raise ValidationFailed(f"Invalid token id: {token_id!r}", operation=operation)
    current_owner = normalize_identity(current_owner, field="current owner", operation=operation)
    new_owner = normalize_identity(new_owner, field="new owner", operation=operation)
    public_recipient = normalize_identity(public_recipient, field="public recipient",
                                          operation=operation)
    contract, submitter = _binding(session, operation)

    with bound_contextvars(operation=operation, submitter=submitter, token_id=token_id):
        try:
            # One batch, fixed order: the proof covers both handles
            encrypted = IdentityEncoder(session.fhe).encode(
                [current_owner, new_owner], contract, submitter
            )
        except EncodingFailed as e:
            return Failure(e.for_operation(operation))

        request = TransferRequest(token_id=token_id, public_recipient=public_recipient,
                                  encrypted_input=encrypted)
        outcome = await _submit_and_confirm(session, request)
        _log_outcome(outcome)
        return outcome


async def view(session: Session, token_id: int) -> CardView:
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 1:
        raise ValidationFailed(f"Invalid token id: {token_id!r}", operation="view")

    reader = PublicStateReader(session.ledger)
    total, metadata_reference, public_owner, encrypted = await asyncio.gather(
        reader.total_supply(),
        reader.metadata_of(token_id),
        reader.public_owner_of(token_id),
        reader.has_encrypted_owner(token_id),
    )
    return CardView(
        token_id=token_id,
        total_supply=total,
        metadata_reference=metadata_reference,
        public_owner=public_owner,
        encrypted_owner=CONFIDENTIAL_OWNER if encrypted else None,
    )


def _binding(session: Session, operation: str):
    contract = normalize_contract(session.contract, operation=operation)
    submitter = normalize_address(session.submitter, field="submitter", operation=operation)
    return contract, submitter


async def _submit_and_confirm(session: Session, request) -> Outcome:
    config = session.config
    try:
        pending = await ClaimSubmitter(session.ledger, config.submission_timeout).submit(
            request, session.submitter
        )
    except ProtocolError as e:
        return Failure(e)

    tracker = ConfirmationTracker(session.ledger, poll_interval=config.poll_interval)
    return await tracker.wait(pending, config.confirmation_timeout)


def _log_outcome(outcome: Outcome) -> None:
    if outcome.ok:
        log.info("operation_succeeded", reference=outcome.reference, value=outcome.value)
    else:
        log.warning("operation_failed", classification=outcome.classification,
                    reason=outcome.reason)
