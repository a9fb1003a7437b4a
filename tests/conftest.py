import pytest

from confidential_cards.config import LocalLedgerConfig, ProtocolConfig
from confidential_cards.fhe import LocalFheInstance
from confidential_cards.ledger import deploy_local_ledger
from confidential_cards.orchestrator import Session


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def tick(self, seconds):
        self.now += seconds


@pytest.fixture
def ledger_config():
    return LocalLedgerConfig(block_time=0.01, inclusion_delay=0.0, finality_depth=1)


@pytest.fixture
def ledger(ledger_config):
    return deploy_local_ledger(config=ledger_config)


@pytest.fixture
def contract(ledger):
    return ledger.contract


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manual_ledger(clock):
    # Blocks only move when the test ticks the clock
    return deploy_local_ledger(
        config=LocalLedgerConfig(block_time=1.0, inclusion_delay=0.0, finality_depth=2),
        clock=clock,
    )


@pytest.fixture
def fhe():
    return LocalFheInstance()


@pytest.fixture
def protocol_config():
    return ProtocolConfig(submission_timeout=5.0, confirmation_timeout=5.0, poll_interval=0.01)


@pytest.fixture
def session_for(ledger, fhe, protocol_config):
    def build(submitter, **overrides):
        params = dict(
            ledger=ledger,
            fhe=fhe,
            contract=ledger.address,
            submitter=submitter,
            config=protocol_config,
        )
        params.update(overrides)
        return Session(**params)

    return build
