"""
Ledger collaborator.

The protocol core talks to the ledger through the Ledger protocol only:

    reference = await ledger.execute_state_change(kind, public_args, handles, proof, submitter)
    report = await ledger.get_transaction(reference)
    value = await ledger.query("owner_of", {"token_id": 1})

ContractingLedger is a local chain built on a contracting ContractingClient
running con_confidential_cards.py. It admits requests the way a node's
pre-execution checks would (input proof, replayed handles, unknown token),
keeps them in a mempool, includes them in blocks produced from a monotonic
clock, and reports finality once enough blocks are stacked on top.
"""

import enum
import time
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import contracting
import structlog
from contracting.client import ContractingClient

from confidential_cards.claims import OperationKind
from confidential_cards.config import LocalLedgerConfig
from confidential_cards.fhe import domain_hash, verify_input_proof

log = structlog.get_logger(__name__)

CONTRACT_NAME = "con_confidential_cards"
CONTRACT_PATH = Path(__file__).resolve().parent / "con_confidential_cards.py"
SUBMISSION_PATH = (
    Path(contracting.__file__).resolve().parent / "contracts" / "submission.s.py"
)

READ_METHODS = frozenset({
    "get_metadata",
    "total_supply",
    "token_uri",
    "owner_of",
    "has_encrypted_owner",
    "is_input_consumed",
})


class LedgerError(Exception):
    pass


class LedgerRejected(LedgerError):
    """Refused before execution."""


class LedgerReverted(LedgerError):
    """Executed synchronously and reverted."""


class ReceiptStatus(str, enum.Enum):
    PENDING = "pending"
    INCLUDED = "included"
    FINALIZED = "finalized"
    REVERTED = "reverted"


@dataclass(frozen=True)
class TransactionReport:
    reference: str
    status: ReceiptStatus
    block_height: Optional[int] = None
    confirmations: int = 0
    result: Any = None
    revert_reason: Optional[str] = None


class Ledger(Protocol):
    async def execute_state_change(self,
                                   kind: OperationKind,
                                   public_args: Mapping[str, Any],
                                   handles: Sequence[str],
                                   proof: str,
                                   submitter: str) -> str: ...

    async def get_transaction(self, reference: str) -> TransactionReport: ...

    async def query(self, method: str, args: Optional[Mapping[str, Any]] = None) -> Any: ...


# ---- Local contracting chain --------------------------------------------------

@dataclass
class _Transaction:
    reference: str
    kind: OperationKind
    public_args: Dict[str, Any]
    handles: Tuple[str, ...]
    submitter: str
    submitted_at: float
    status: ReceiptStatus = ReceiptStatus.PENDING
    block_height: Optional[int] = None
    result: Any = None
    revert_reason: Optional[str] = None


class ContractingLedger:
    def __init__(self,
                 client: ContractingClient,
                 contract_name: str = CONTRACT_NAME,
                 config: Optional[LocalLedgerConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.contract_name = contract_name
        self.contract = client.get_contract(contract_name)
        self.config = config or LocalLedgerConfig()
        self.height = 0
        self._clock = clock
        self._genesis = clock()
        self._mempool: List[_Transaction] = []
        self._transactions: Dict[str, _Transaction] = {}
        self._nonces: Dict[str, int] = defaultdict(int)

    @property
    def address(self) -> str:
        return self.contract_name

    # ---- Ledger protocol ----

    async def execute_state_change(self, kind, public_args, handles, proof, submitter) -> str:
        self.advance()
        try:
            kind = OperationKind(kind)
        except ValueError:
            raise LedgerRejected(f"Unknown operation: {kind!r}") from None
        handles = tuple(handles)
        public_args = dict(public_args)

        self._admit(kind, public_args, handles, proof, submitter)

        self._nonces[submitter] += 1
        reference = "0x" + domain_hash("XCARD:tx", submitter, self._nonces[submitter], kind.value, proof)
        tx = _Transaction(
            reference=reference,
            kind=kind,
            public_args=public_args,
            handles=handles,
            submitter=submitter,
            submitted_at=self._clock(),
        )
        self._mempool.append(tx)
        self._transactions[reference] = tx
        log.info("transaction_accepted", reference=reference, operation=kind.value, height=self.height)
        return reference

    async def get_transaction(self, reference: str) -> TransactionReport:
        self.advance()
        tx = self._transactions.get(reference)
        if tx is None:
            raise LedgerError(f"Unknown transaction: {reference}")
        return self._report(tx)

    async def query(self, method: str, args=None) -> Any:
        if method not in READ_METHODS:
            raise LedgerError(f"Not a read method: {method}")
        self.advance()
        return getattr(self.contract, method)(**dict(args or {}))

    # ---- Admission ----

    def _admit(self, kind, public_args, handles, proof, submitter) -> None:
        expected = 1 if kind is OperationKind.MINT else 2
        if len(handles) != expected:
            raise LedgerRejected(f"{kind.value} takes {expected} input handle(s)")

        if not verify_input_proof(handles, proof, self.contract_name, submitter):
            raise LedgerRejected("Invalid input proof")

        in_flight = {h for tx in self._mempool for h in tx.handles}
        for handle in handles:
            if handle in in_flight or self.contract.is_input_consumed(handle=handle):
                raise LedgerRejected("Input handle already used")

        if kind is OperationKind.TRANSFER:
            if self.contract.owner_of(token_id=public_args.get("token_id")) is None:
                raise LedgerRejected("Token does not exist")

    # ---- Block production ----

    def advance(self) -> int:
        """Produce every block due by the clock. Returns the new height."""
        target = int((self._clock() - self._genesis) / self.config.block_time)
        if target <= self.height:
            return self.height

        if not self._mempool:
            self.height = target
        else:
            while self.height < target:
                self.height += 1
                self._produce_block(self._genesis + self.height * self.config.block_time)
        self._prune_receipts()
        return self.height

    def _prune_receipts(self) -> None:
        # Receipts older than the retention window are forgotten, as on a pruned node
        horizon = self.height - self.config.receipt_retention
        expired = [
            reference for reference, tx in self._transactions.items()
            if tx.block_height is not None and tx.block_height < horizon
        ]
        for reference in expired:
            del self._transactions[reference]
        if expired:
            log.debug("receipts_pruned", count=len(expired), height=self.height)

    def _produce_block(self, timestamp: float) -> None:
        ready = [
            tx for tx in self._mempool
            if tx.submitted_at + self.config.inclusion_delay <= timestamp
        ]
        for tx in ready:
            self._mempool.remove(tx)
            self._execute(tx)

    def _execute(self, tx: _Transaction) -> None:
        environment = {"block_num": self.height}
        try:
            if tx.kind is OperationKind.MINT:
                tx.result = self.contract.mint_card(
                    uri=tx.public_args["metadata_reference"],
                    encrypted_owner=tx.handles[0],
                    signer=tx.submitter,
                    environment=environment,
                )
            else:
                tx.result = self.contract.transfer_card(
                    token_id=tx.public_args["token_id"],
                    to=tx.public_args["public_recipient"],
                    encrypted_current_owner=tx.handles[0],
                    encrypted_new_owner=tx.handles[1],
                    signer=tx.submitter,
                    environment=environment,
                )
            tx.status = ReceiptStatus.INCLUDED
        except AssertionError as e:
            # A failed contract assertion still lands in the block, as a revert
            tx.status = ReceiptStatus.REVERTED
            tx.revert_reason = str(e) or type(e).__name__
            log.info("transaction_reverted", reference=tx.reference, height=self.height,
                     reason=tx.revert_reason)
        tx.block_height = self.height

    def _report(self, tx: _Transaction) -> TransactionReport:
        confirmations = 0
        if tx.block_height is not None:
            confirmations = self.height - tx.block_height
            if tx.status is ReceiptStatus.INCLUDED and confirmations >= self.config.finality_depth:
                tx.status = ReceiptStatus.FINALIZED
        return TransactionReport(
            reference=tx.reference,
            status=tx.status,
            block_height=tx.block_height,
            confirmations=confirmations,
            result=tx.result,
            revert_reason=tx.revert_reason,
        )


def deploy_local_ledger(config: Optional[LocalLedgerConfig] = None,
                        contract_name: str = CONTRACT_NAME,
                        client: Optional[ContractingClient] = None,
                        clock: Callable[[], float] = time.monotonic) -> ContractingLedger:
    """
    Start from a clean contracting state and submit the card contract.
    Any state already held by the client's driver is flushed.
    """
    if client is None:
        client = ContractingClient(signer="sys", metering=False)
    client.flush()
    client.set_submission_contract(str(SUBMISSION_PATH))
    client.submit(CONTRACT_PATH.read_text(), name=contract_name, owner=None)
    log.info("local_ledger_deployed", contract=contract_name)
    return ContractingLedger(client, contract_name, config=config, clock=clock)
