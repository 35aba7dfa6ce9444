"""
Read-only ledger queries used for invariant checks and recovery decisions.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from core.client import SolanaClient
from core.pubkeys import TOKEN_2022_PROGRAM
from interfaces.core import AddressProvider

# Token account layout: mint (32 bytes), owner (32 bytes), amount (u64), ...
TOKEN_ACCOUNT_MINT_END = 32
TOKEN_ACCOUNT_OWNER_END = 64


@dataclass
class TokenSnapshot:
    """Supply and holder balances of one mint, read at the client's commitment."""
    mint: Pubkey
    supply: int
    balances: dict[Pubkey, int] = field(default_factory=dict)

    @property
    def total_balance(self) -> int:
        return sum(self.balances.values())


class TokenStateReader:
    """Reads mint and holder account state from the ledger."""

    def __init__(self, client: SolanaClient, address_provider: AddressProvider):
        self.client = client
        self.address_provider = address_provider

    async def is_holder_account(self, address: Pubkey, owner: Pubkey, mint: Pubkey) -> bool:
        """Check that `address` holds an initialized Token-2022 account of `owner` for `mint`.

        Args:
            address: Account to read
            owner: Expected token account owner
            mint: Expected mint

        Returns:
            True if the account exists with that owner and mint
        """
        account = await self.client.get_account_info(address)
        if account is None or account.owner != TOKEN_2022_PROGRAM:
            return False
        data = bytes(account.data)
        if len(data) < TOKEN_ACCOUNT_OWNER_END:
            return False
        return (
            data[:TOKEN_ACCOUNT_MINT_END] == bytes(mint)
            and data[TOKEN_ACCOUNT_MINT_END:TOKEN_ACCOUNT_OWNER_END] == bytes(owner)
        )

    async def holder_balance(self, owner: Pubkey, mint: Pubkey) -> int:
        """Balance of `owner`'s holder account, 0 if it was never created."""
        holder_account = self.address_provider.derive_holder_account(owner, mint)
        return await self.client.get_token_account_balance(holder_account)

    async def total_supply(self, mint: Pubkey) -> int:
        return await self.client.get_token_supply(mint)

    async def snapshot(self, mint: Pubkey, owners: Iterable[Pubkey]) -> TokenSnapshot:
        """Read the supply and the balance of every listed owner.

        Args:
            mint: Token mint address
            owners: Holder account owners to include

        Returns:
            TokenSnapshot keyed by owner
        """
        snapshot = TokenSnapshot(mint=mint, supply=await self.total_supply(mint))
        for owner in owners:
            snapshot.balances[owner] = await self.holder_balance(owner, mint)
        return snapshot
