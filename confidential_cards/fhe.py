"""
Encryption collaborator.

The protocol core only depends on the FheInstance / InputBuilder protocol:

    builder = instance.create_encrypted_input(contract, submitter)
    builder.add_address(value)
    handles, proof = builder.encrypt()

LocalFheInstance is a development stand-in for a threshold FHE SDK. It hides
each address in a blinded commitment (g^H(addr) * h^r mod p), derives a
32-byte handle from that commitment and the (contract, submitter) binding,
and produces one proof digest over the ordered handles. verify_input_proof
is what an input verifier on the ledger side runs against that digest.
"""

import hashlib
import secrets
from typing import List, Optional, Protocol, Sequence, Tuple

from confidential_cards.addresses import is_address

# ---- Chain-constant parameters & helpers -------------------------------------

p = 2**255 - 19

HANDLE_DOMAIN = "XCARD:handle"
PROOF_DOMAIN = "XCARD:proof"


def sha3_hex(s: str) -> str:
    # Same semantics as the contracting hashlib bridge: hex input is hashed as bytes
    try:
        data = bytes.fromhex(s)
    except ValueError:
        data = s.encode("utf-8")
    return hashlib.sha3_256(data).hexdigest()


def domain_hash(*parts) -> str:
    return sha3_hex("|".join(str(x) for x in parts))


def map_to_base(tag: str) -> int:
    return int(sha3_hex("XCARD:gen:" + tag)[:32], 16) % (p - 3) + 2


g = map_to_base("g")
h = map_to_base("h")


def address_to_exponent(address: str) -> int:
    return int(sha3_hex("ADDR|" + address.lower())[:32], 16) % (p - 1)


def create_commitment(address: str, blinding: int) -> int:
    return (pow(g, address_to_exponent(address), p) * pow(h, blinding % (p - 1), p)) % p


def random_blinding() -> int:
    return secrets.randbelow(p - 1)


def derive_handle(contract: str, submitter: str, index: int, commitment: int) -> str:
    return "0x" + domain_hash(HANDLE_DOMAIN, contract, submitter.lower(), index, hex(commitment))


def input_proof_digest(handles: Sequence[str], contract: str, submitter: str) -> str:
    return "0x" + domain_hash(PROOF_DOMAIN, contract, submitter.lower(), len(handles), *handles)


def verify_input_proof(handles: Sequence[str], proof: str, contract: str, submitter: str) -> bool:
    if not handles or not isinstance(proof, str):
        return False
    return secrets.compare_digest(proof, input_proof_digest(handles, contract, submitter))


# ---- Collaborator interface ---------------------------------------------------

class FheError(Exception):
    pass


class FheSessionError(FheError):
    pass


class FheInputError(FheError):
    pass


class InputBuilder(Protocol):
    def add_address(self, value: str) -> None: ...

    def encrypt(self) -> Tuple[List[str], str]: ...


class FheInstance(Protocol):
    def create_encrypted_input(self, contract: str, submitter: str) -> InputBuilder: ...


# ---- Local implementation -----------------------------------------------------

class LocalInputBuilder:
    def __init__(self, contract: str, submitter: str):
        self.contract = contract
        self.submitter = submitter
        self._values: List[str] = []
        self._sealed = False

    def add_address(self, value: str) -> None:
        if self._sealed:
            raise FheInputError("Input already encrypted")
        if not is_address(value):
            raise FheInputError(f"Not an address: {value!r}")
        self._values.append(value.lower())

    def encrypt(self) -> Tuple[List[str], str]:
        if self._sealed:
            raise FheInputError("Input already encrypted")
        if not self._values:
            raise FheInputError("No values to encrypt")
        self._sealed = True

        handles = []
        for index, value in enumerate(self._values):
            commitment = create_commitment(value, random_blinding())
            handles.append(derive_handle(self.contract, self.submitter, index, commitment))
        return handles, input_proof_digest(handles, self.contract, self.submitter)


class LocalFheInstance:
    """
    Keeps a session key while connected. Without one, no input can be bound to
    a (contract, submitter) pair and create_encrypted_input raises FheSessionError.
    """

    def __init__(self, session_key: Optional[str] = None):
        self.session_key = session_key or secrets.token_hex(32)

    @property
    def connected(self) -> bool:
        return self.session_key is not None

    def close(self) -> None:
        self.session_key = None

    def create_encrypted_input(self, contract: str, submitter: str) -> LocalInputBuilder:
        if not self.connected:
            raise FheSessionError("No active session key")
        if not contract or not submitter:
            raise FheSessionError("Contract and submitter are required")
        return LocalInputBuilder(contract, submitter)
