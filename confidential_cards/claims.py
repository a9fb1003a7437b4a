"""
Request types for state-changing card operations.

An EncryptedInput is the output of one encoding batch: its handles (in the
order the values were added) and the single proof that covers them. Requests
take a whole EncryptedInput rather than loose handles so handles from
different batches can never be mixed into one submission.

MintRequest and TransferRequest are the closed set of state-changing
requests. Each checks its required public arguments and handle count when
constructed and is immutable afterwards.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Tuple

from confidential_cards.addresses import normalize_address, normalize_identity
from confidential_cards.errors import ValidationFailed


class OperationKind(str, enum.Enum):
    MINT = "mint"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class EncryptedInput:
    handles: Tuple[str, ...]
    proof: str
    contract: str
    submitter: str

    def __post_init__(self):
        if not self.handles:
            raise ValidationFailed("Encrypted input has no handles")
        if not self.proof:
            raise ValidationFailed("Encrypted input has no proof")


@dataclass(frozen=True)
class MintRequest:
    metadata_reference: str
    encrypted_input: EncryptedInput

    operation_kind: ClassVar[OperationKind] = OperationKind.MINT
    handle_count: ClassVar[int] = 1

    def __post_init__(self):
        if not isinstance(self.metadata_reference, str) or not self.metadata_reference.strip():
            raise ValidationFailed("Metadata reference is required", operation="mint")
        _check_handle_count(self)

    @property
    def handles(self) -> Tuple[str, ...]:
        return self.encrypted_input.handles

    @property
    def proof(self) -> str:
        return self.encrypted_input.proof

    def public_args(self) -> Dict[str, Any]:
        return {"metadata_reference": self.metadata_reference}


@dataclass(frozen=True)
class TransferRequest:
    """
    handles are {current owner, new owner}, in that order, from one batch.
    """

    token_id: int
    public_recipient: str
    encrypted_input: EncryptedInput

    operation_kind: ClassVar[OperationKind] = OperationKind.TRANSFER
    handle_count: ClassVar[int] = 2

    def __post_init__(self):
        if isinstance(self.token_id, bool) or not isinstance(self.token_id, int) or self.token_id < 1:
            raise ValidationFailed(f"Invalid token id: {self.token_id!r}", operation="transfer")
        recipient = normalize_identity(
            self.public_recipient, field="public recipient", operation="transfer"
        )
        object.__setattr__(self, "public_recipient", recipient)
        _check_handle_count(self)

    @property
    def handles(self) -> Tuple[str, ...]:
        return self.encrypted_input.handles

    @property
    def proof(self) -> str:
        return self.encrypted_input.proof

    def public_args(self) -> Dict[str, Any]:
        return {"token_id": self.token_id, "public_recipient": self.public_recipient}


def _check_handle_count(request) -> None:
    count = len(request.encrypted_input.handles)
    if count != request.handle_count:
        raise ValidationFailed(
            f"{request.operation_kind.value} takes {request.handle_count} handle(s), got {count}",
            operation=request.operation_kind.value,
        )


class TransactionState(str, enum.Enum):
    PENDING = "pending"
    INCLUDED = "included"
    FINALIZED = "finalized"
    FAILED = "failed"


@dataclass
class PendingTransaction:
    reference: str
    operation: OperationKind
    submitter: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: TransactionState = TransactionState.PENDING

    def __post_init__(self):
        self.submitter = normalize_address(self.submitter, field="submitter")

    @property
    def terminal(self) -> bool:
        return self.status in (TransactionState.FINALIZED, TransactionState.FAILED)
