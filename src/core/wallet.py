"""
Wallet management for Solana transactions.
"""

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from platforms.token_basics.address_provider import derive_holder_account


class Wallet:
    """Manages the Solana wallet that pays for and authorizes lifecycle operations."""

    def __init__(self, private_key: str):
        """Initialize wallet from private key.

        Args:
            private_key: Base58 encoded private key
        """
        self._private_key = private_key
        self._keypair = self._load_keypair(private_key)

    @classmethod
    def from_keypair(cls, keypair: Keypair) -> "Wallet":
        """Wrap an existing keypair.

        Args:
            keypair: Keypair to wrap

        Returns:
            Wallet instance
        """
        return cls(base58.b58encode(bytes(keypair)).decode("utf-8"))

    @property
    def pubkey(self) -> Pubkey:
        """Get the public key of the wallet."""
        return self._keypair.pubkey()

    @property
    def keypair(self) -> Keypair:
        """Get the keypair for signing transactions."""
        return self._keypair

    def get_holder_account(self, mint: Pubkey) -> Pubkey:
        """Get the holder (associated token) account address for a mint.

        Args:
            mint: Token mint address

        Returns:
            Holder account address
        """
        return derive_holder_account(self.pubkey, mint)

    @staticmethod
    def _load_keypair(private_key: str) -> Keypair:
        """Load keypair from private key.

        Args:
            private_key: Base58 encoded private key

        Returns:
            Solana keypair
        """
        private_key_bytes = base58.b58decode(private_key)
        return Keypair.from_bytes(private_key_bytes)
