"""
CONFIDENTIAL COLLECTIBLE CARDS

Each card has a public token URI and a public owner-of-record.
The owner identity is also held as an encrypted input handle which the
contract never inspects; it only enforces:
  - a handle is consumed exactly once
  - only the public owner may transfer
  - public owner and encrypted owner change together

Public total_supply is maintained.
"""

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# token_id -> token uri
cards = Hash()

# token_id -> public owner address
owners = Hash()

# token_id -> encrypted owner handle
encrypted_owners = Hash()

# handle -> bool
consumed_inputs = Hash(default_value=False)

# contract metadata / config
metadata = Hash()

# Events
CardMintedEvent = LogEvent('CardMinted', {
    'owner': {'type': str, 'idx': True},
    'token_id': {'type': int, 'idx': True},
    'uri': {'type': str}
})

CardTransferredEvent = LogEvent('CardTransferred', {
    'from': {'type': str, 'idx': True},
    'to': {'type': str, 'idx': True},
    'token_id': {'type': int, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed():
    metadata['name'] = "Confidential Collectible Cards"
    metadata['symbol'] = "CCARD"
    metadata['operator'] = ctx.caller

    metadata['total_supply'] = 0

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'name': metadata['name'],
        'symbol': metadata['symbol'],
        'operator': metadata['operator'],
        'total_supply': metadata['total_supply']
    }

@export
def total_supply():
    return metadata['total_supply']

@export
def token_uri(token_id: int):
    return cards[token_id]

@export
def owner_of(token_id: int):
    return owners[token_id]

@export
def has_encrypted_owner(token_id: int):
    return encrypted_owners[token_id] is not None

@export
def is_input_consumed(handle: str):
    return consumed_inputs[handle]

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def is_address(value: str):
    return isinstance(value, str) and value.startswith('0x') and len(value) == 42

def check_input(handle: str):
    assert isinstance(handle, str) and len(handle) > 0, 'Invalid input handle'
    assert not consumed_inputs[handle], 'Input handle already used'

# -----------------------------------------------------------------------------
# Core
# -----------------------------------------------------------------------------

@export
def mint_card(uri: str, encrypted_owner: str):
    assert len(uri) > 0, 'Token URI required'
    check_input(encrypted_owner)

    token_id = (metadata['total_supply'] or 0) + 1

    cards[token_id] = uri
    owners[token_id] = ctx.caller
    encrypted_owners[token_id] = encrypted_owner
    consumed_inputs[encrypted_owner] = True

    metadata['total_supply'] = token_id

    CardMintedEvent({
        'owner': ctx.caller,
        'token_id': token_id,
        'uri': uri
    })

    return token_id

@export
def transfer_card(token_id: int,
                  to: str,
                  encrypted_current_owner: str,
                  encrypted_new_owner: str):
    owner = owners[token_id]
    assert owner is not None, 'Token does not exist'
    assert ctx.caller == owner, 'Caller is not the token owner'
    assert is_address(to), 'Invalid recipient'
    assert encrypted_current_owner != encrypted_new_owner, 'Duplicate input handle'
    check_input(encrypted_current_owner)
    check_input(encrypted_new_owner)

    # Public and encrypted owner move together
    owners[token_id] = to
    encrypted_owners[token_id] = encrypted_new_owner
    consumed_inputs[encrypted_current_owner] = True
    consumed_inputs[encrypted_new_owner] = True

    CardTransferredEvent({
        'from': owner,
        'to': to,
        'token_id': token_id
    })
