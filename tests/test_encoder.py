from unittest.mock import Mock

import pytest

from confidential_cards.encoder import IdentityEncoder
from confidential_cards.errors import EncodingFailed, ValidationFailed
from confidential_cards.fhe import FheInputError, LocalFheInstance, verify_input_proof

CONTRACT = "con_confidential_cards"
ALICE = "0x" + "a" * 39 + "1"
BOB = "0x" + "b" * 39 + "2"


def test_encode_preserves_length_order_and_binding():
    encoder = IdentityEncoder(LocalFheInstance())
    encrypted = encoder.encode([ALICE, BOB], CONTRACT, ALICE)

    assert len(encrypted.handles) == 2
    assert encrypted.contract == CONTRACT
    assert encrypted.submitter == ALICE
    assert verify_input_proof(encrypted.handles, encrypted.proof, CONTRACT, ALICE)


def test_encode_normalizes_submitter():
    encrypted = IdentityEncoder(LocalFheInstance()).encode(
        [BOB], CONTRACT, ALICE.upper().replace("0X", "0x")
    )
    assert encrypted.submitter == ALICE


@pytest.mark.parametrize(
    "values, contract, submitter",
    [
        ([], CONTRACT, ALICE),
        (ALICE, CONTRACT, ALICE),
        ([ALICE, "0xdeadbeef"], CONTRACT, ALICE),
        (["0x" + "0" * 40], CONTRACT, ALICE),
        ([ALICE], "", ALICE),
        ([ALICE], CONTRACT, ""),
    ],
)
def test_malformed_input_never_reaches_collaborator(values, contract, submitter):
    instance = Mock()
    with pytest.raises(ValidationFailed):
        IdentityEncoder(instance).encode(values, contract, submitter)

    instance.create_encrypted_input.assert_not_called()


def test_closed_session_is_encoding_failure():
    instance = LocalFheInstance()
    instance.close()

    with pytest.raises(EncodingFailed) as exc:
        IdentityEncoder(instance).encode([ALICE], CONTRACT, ALICE)
    assert "session" in exc.value.reason


def test_collaborator_rejection_is_encoding_failure():
    builder = Mock()
    builder.add_address.side_effect = FheInputError("value out of range")
    instance = Mock()
    instance.create_encrypted_input.return_value = builder

    with pytest.raises(EncodingFailed) as exc:
        IdentityEncoder(instance).encode([ALICE], CONTRACT, ALICE)

    assert exc.value.reason == "value out of range"
    builder.encrypt.assert_not_called()


def test_short_handle_list_is_encoding_failure():
    builder = Mock()
    builder.encrypt.return_value = (["0x01"], "0xproof")
    instance = Mock()
    instance.create_encrypted_input.return_value = builder

    with pytest.raises(EncodingFailed):
        IdentityEncoder(instance).encode([ALICE, BOB], CONTRACT, ALICE)

    assert instance.create_encrypted_input.call_count == 1
