import re

from eth_utils import is_checksum_address

from confidential_cards.errors import ValidationFailed

# ---- Address shapes ----------------------------------------------------------

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
CONTRACT_NAME_RE = re.compile(r"^con_[a-z][a-z0-9_]*$")

ZERO_ADDRESS = "0x" + "0" * 40


def is_address(value) -> bool:
    """
    0x + 40 hex digits. All-lower and all-upper digits are accepted as-is;
    mixed case must carry a valid EIP-55 checksum.
    """
    if not isinstance(value, str) or ADDRESS_RE.match(value) is None:
        return False
    digits = value[2:]
    if digits == digits.lower() or digits == digits.upper():
        return True
    return is_checksum_address(value)


def is_contract_address(value) -> bool:
    # Contracts are addressed by name on the local ledger, by hex address elsewhere
    return is_address(value) or (
        isinstance(value, str) and CONTRACT_NAME_RE.match(value) is not None
    )


def normalize_address(value, field: str = "address", operation: str = None) -> str:
    """
    Validate an address-shaped value and return its canonical (lower case) form.
    Raises ValidationFailed for anything else.
    """
    if not is_address(value):
        raise ValidationFailed(f"Invalid {field}: {value!r}", operation=operation)
    return value.lower()


def normalize_identity(value, field: str = "identity", operation: str = None) -> str:
    """
    Same as normalize_address, and additionally rejects the zero address,
    which can never own a card.
    """
    address = normalize_address(value, field=field, operation=operation)
    if address == ZERO_ADDRESS:
        raise ValidationFailed(f"Invalid {field}: zero address", operation=operation)
    return address


def normalize_contract(value, operation: str = None) -> str:
    if not is_contract_address(value):
        raise ValidationFailed(f"Invalid contract address: {value!r}", operation=operation)
    return value.lower() if is_address(value) else value
