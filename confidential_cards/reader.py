from typing import Optional

from confidential_cards.ledger import Ledger


class PublicStateReader:
    """
    Plaintext reads against the card contract. Nothing here decrypts, and
    results are snapshots that may trail a request that is not yet final.
    None means the token does not exist.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    async def total_supply(self) -> int:
        return int(await self.ledger.query("total_supply") or 0)

    async def metadata_of(self, token_id: int) -> Optional[str]:
        return await self.ledger.query("token_uri", {"token_id": token_id})

    async def public_owner_of(self, token_id: int) -> Optional[str]:
        return await self.ledger.query("owner_of", {"token_id": token_id})

    async def has_encrypted_owner(self, token_id: int) -> bool:
        return bool(await self.ledger.query("has_encrypted_owner", {"token_id": token_id}))
