"""
Core interfaces for the token lifecycle client.

This module defines the abstract base classes a token program integration
must implement so the lifecycle layer can derive addresses and build
instructions without knowing the program's account layouts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from core.pubkeys import TOKEN_DECIMALS


@dataclass
class TokenInfo:
    """Token metadata and identity as recorded at creation time."""
    name: str
    symbol: str
    uri: str
    mint: Pubkey
    authority: Pubkey
    decimals: int = TOKEN_DECIMALS


class AddressProvider(ABC):
    """Abstract interface for program-specific address management."""

    @property
    @abstractmethod
    def program_id(self) -> Pubkey:
        """Get the main program ID."""
        pass

    @abstractmethod
    def get_system_addresses(self) -> dict[str, Pubkey]:
        """Get all fixed addresses the program's instructions reference.

        Returns:
            Dictionary mapping address names to Pubkey objects
        """
        pass

    @abstractmethod
    def derive_holder_account(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        """Derive the canonical holder account of `owner` for `mint`.

        Must be pure and deterministic: no network access, same inputs
        always give the same address.

        Args:
            owner: Owner's wallet address
            mint: Token mint address

        Returns:
            Holder account address
        """
        pass


class InstructionBuilder(ABC):
    """Abstract interface for building token lifecycle instructions."""

    @abstractmethod
    def build_create_instruction(
        self,
        token_info: TokenInfo,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the instruction that creates the mint and records metadata.

        Args:
            token_info: Token metadata, mint and authority
            address_provider: Program address provider

        Returns:
            Create instruction
        """
        pass

    @abstractmethod
    def build_mint_instruction(
        self,
        mint: Pubkey,
        authority: Pubkey,
        recipient: Pubkey,
        amount: int,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the instruction that mints `amount` to the recipient's holder account."""
        pass

    @abstractmethod
    def build_transfer_instruction(
        self,
        mint: Pubkey,
        sender: Pubkey,
        recipient: Pubkey,
        amount: int,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the instruction that moves `amount` from sender to recipient."""
        pass

    @abstractmethod
    def build_burn_instruction(
        self,
        mint: Pubkey,
        authority: Pubkey,
        owner: Pubkey,
        amount: int,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the instruction that burns `amount` from the owner's holder account."""
        pass

    @abstractmethod
    def build_create_holder_account_instruction(
        self,
        payer: Pubkey,
        owner: Pubkey,
        mint: Pubkey,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the (non-idempotent) holder account creation instruction."""
        pass
