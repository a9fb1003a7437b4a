"""Runtime configuration for the card protocol.

Values come from the environment so deployments can tune timeouts without
code changes. Invalid values fall back to the defaults; out-of-range values
are rejected when the config object is built.

Environment Variables (protocol):
- CARDS_SUBMISSION_TIMEOUT: Seconds to wait for the ledger to accept a request (default: 30)
- CARDS_CONFIRMATION_TIMEOUT: Seconds to wait for finality (default: 120)
- CARDS_POLL_INTERVAL: Seconds between confirmation polls (default: 1)

Environment Variables (local ledger):
- CARDS_BLOCK_TIME: Seconds per block (default: 1)
- CARDS_INCLUSION_DELAY: Minimum seconds between submission and inclusion (default: 0)
- CARDS_FINALITY_DEPTH: Blocks on top of inclusion before finality (default: 2)
- CARDS_RECEIPT_RETENTION: Blocks a receipt stays queryable after inclusion (default: 1000)
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int_env(key: str, default: int) -> int:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ProtocolConfig:
    """Timeouts and polling cadence for orchestrated operations.

    Attributes:
        submission_timeout: Bounded wait for the ledger to accept a request.
        confirmation_timeout: Bounded wait for a request to reach finality.
        poll_interval: Delay between confirmation polls.
    """

    submission_timeout: float = 30.0
    confirmation_timeout: float = 120.0
    poll_interval: float = 1.0

    def __post_init__(self) -> None:
        if self.submission_timeout <= 0:
            raise ValueError("submission_timeout must be positive")
        if self.confirmation_timeout <= 0:
            raise ValueError("confirmation_timeout must be positive")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

    @classmethod
    def from_env(cls) -> ProtocolConfig:
        return cls(
            submission_timeout=_get_float_env("CARDS_SUBMISSION_TIMEOUT", 30.0),
            confirmation_timeout=_get_float_env("CARDS_CONFIRMATION_TIMEOUT", 120.0),
            poll_interval=_get_float_env("CARDS_POLL_INTERVAL", 1.0),
        )


@dataclass(frozen=True)
class LocalLedgerConfig:
    """Block production parameters for the local contracting ledger.

    Attributes:
        block_time: Seconds between blocks.
        inclusion_delay: Minimum age of a transaction before it can be included.
        finality_depth: Blocks that must sit on top of the inclusion block.
        receipt_retention: Blocks after inclusion before a receipt is forgotten.
    """

    block_time: float = 1.0
    inclusion_delay: float = 0.0
    finality_depth: int = 2
    receipt_retention: int = 1000

    def __post_init__(self) -> None:
        if self.block_time <= 0:
            raise ValueError("block_time must be positive")
        if self.inclusion_delay < 0:
            raise ValueError("inclusion_delay must not be negative")
        if self.finality_depth < 0:
            raise ValueError("finality_depth must not be negative")
        if self.receipt_retention < self.finality_depth:
            raise ValueError("receipt_retention must cover finality_depth")

    @classmethod
    def from_env(cls) -> LocalLedgerConfig:
        return cls(
            block_time=_get_float_env("CARDS_BLOCK_TIME", 1.0),
            inclusion_delay=_get_float_env("CARDS_INCLUSION_DELAY", 0.0),
            finality_depth=_get_int_env("CARDS_FINALITY_DEPTH", 2),
            receipt_retention=_get_int_env("CARDS_RECEIPT_RETENTION", 1000),
        )
