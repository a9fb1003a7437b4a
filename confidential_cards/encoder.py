from typing import Sequence

import structlog

from confidential_cards.addresses import normalize_address, normalize_contract, normalize_identity
from confidential_cards.claims import EncryptedInput
from confidential_cards.errors import EncodingFailed, ValidationFailed
from confidential_cards.fhe import FheError, FheInstance

log = structlog.get_logger(__name__)


class IdentityEncoder:
    """
    Turns an ordered batch of identity values into ciphertext handles plus one
    input proof, bound to a (contract, submitter) pair.

    All values are checked before the encryption collaborator is touched.
    Collaborator failures surface as EncodingFailed and are never retried here;
    the caller re-establishes the encryption session and encodes a fresh batch.
    """

    def __init__(self, fhe: FheInstance):
        self.fhe = fhe

    def encode(self, values: Sequence[str], contract: str, submitter: str) -> EncryptedInput:
        if isinstance(values, str) or not values:
            raise ValidationFailed("At least one identity value is required")
        identities = [normalize_identity(v) for v in values]
        contract = normalize_contract(contract)
        submitter = normalize_address(submitter, field="submitter")

        try:
            builder = self.fhe.create_encrypted_input(contract, submitter)
            for identity in identities:
                builder.add_address(identity)
            handles, proof = builder.encrypt()
        except FheError as e:
            log.warning("encoding_failed", contract=contract, submitter=submitter, error=str(e))
            raise EncodingFailed(str(e) or "Encryption collaborator failed") from e

        if len(handles) != len(identities):
            raise EncodingFailed(
                f"Expected {len(identities)} handle(s), collaborator returned {len(handles)}"
            )

        log.debug("identities_encoded", contract=contract, submitter=submitter, handles=len(handles))
        return EncryptedInput(
            handles=tuple(handles),
            proof=proof,
            contract=contract,
            submitter=submitter,
        )
