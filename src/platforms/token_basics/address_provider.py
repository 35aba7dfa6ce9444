"""
token_basics implementation of AddressProvider interface.

This module provides the token_basics program address, the holder account
derivation and the named account maps each program instruction expects.
"""

from dataclasses import dataclass
from typing import Final

from solders.pubkey import Pubkey

from core.pubkeys import SystemAddresses
from interfaces.core import AddressProvider


@dataclass
class TokenBasicsAddresses:
    """token_basics program addresses."""

    PROGRAM: Final[Pubkey] = Pubkey.from_string(
        "FGSYB3dMqy2o4vkRZ2EX3Y67RcgrZzTq611BLwuWQ212"
    )


def derive_holder_account(
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = SystemAddresses.TOKEN_2022_PROGRAM,
    associated_token_program: Pubkey = SystemAddresses.ASSOCIATED_TOKEN_PROGRAM,
) -> Pubkey:
    """Derive the associated token account of `owner` for `mint`.

    The token program rejects any instruction whose holder account does not
    sit at exactly this address.

    Args:
        owner: Owner's wallet address
        mint: Token mint address
        token_program: Token program owning the account
        associated_token_program: Program the address is derived under

    Returns:
        Holder account address
    """
    derived_address, _ = Pubkey.find_program_address(
        [
            bytes(owner),
            bytes(token_program),
            bytes(mint),
        ],
        associated_token_program,
    )
    return derived_address


class TokenBasicsAddressProvider(AddressProvider):
    """token_basics implementation of AddressProvider interface."""

    def __init__(self, program_id: Pubkey | None = None):
        """Initialize the provider.

        Args:
            program_id: Deployed program id, defaults to the published one
        """
        self._program_id = program_id or TokenBasicsAddresses.PROGRAM

    @property
    def program_id(self) -> Pubkey:
        """Get the main program ID."""
        return self._program_id

    def get_system_addresses(self) -> dict[str, Pubkey]:
        """Get all fixed addresses required by token_basics instructions.

        Returns:
            Dictionary mapping address names to Pubkey objects
        """
        return {
            **SystemAddresses.get_all_system_addresses(),
            "program": self._program_id,
        }

    def derive_holder_account(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        """Derive user's holder (Token-2022 associated token) account address.

        Args:
            owner: Owner's wallet address
            mint: Token mint address

        Returns:
            Holder account address
        """
        return derive_holder_account(owner, mint)

    def get_create_instruction_accounts(
        self, mint: Pubkey, authority: Pubkey
    ) -> dict[str, Pubkey]:
        """Get all accounts needed for a create_token instruction."""
        return {
            "authority": authority,
            "mint": mint,
            "token_program_2022": SystemAddresses.TOKEN_2022_PROGRAM,
            "system_program": SystemAddresses.SYSTEM_PROGRAM,
            "rent": SystemAddresses.RENT,
        }

    def get_mint_instruction_accounts(
        self, mint: Pubkey, authority: Pubkey, recipient: Pubkey
    ) -> dict[str, Pubkey]:
        """Get all accounts needed for a mint_token instruction."""
        return {
            "authority": authority,
            "recipient": recipient,
            "mint": mint,
            "recipient_token_account": self.derive_holder_account(recipient, mint),
            "token_program_2022": SystemAddresses.TOKEN_2022_PROGRAM,
            "associated_token_program": SystemAddresses.ASSOCIATED_TOKEN_PROGRAM,
            "system_program": SystemAddresses.SYSTEM_PROGRAM,
            "rent": SystemAddresses.RENT,
        }

    def get_transfer_instruction_accounts(
        self, mint: Pubkey, sender: Pubkey, recipient: Pubkey
    ) -> dict[str, Pubkey]:
        """Get all accounts needed for a transfer_token instruction.

        The program calls the signing owner `authority`; for transfers that
        is the sender, not the mint authority.
        """
        return {
            "authority": sender,
            "mint": mint,
            "sender_token_account": self.derive_holder_account(sender, mint),
            "recipient_token_account": self.derive_holder_account(recipient, mint),
            "recipient": recipient,
            "token_program_2022": SystemAddresses.TOKEN_2022_PROGRAM,
            "associated_token_program": SystemAddresses.ASSOCIATED_TOKEN_PROGRAM,
            "system_program": SystemAddresses.SYSTEM_PROGRAM,
            "rent": SystemAddresses.RENT,
        }

    def get_burn_instruction_accounts(
        self, mint: Pubkey, authority: Pubkey, owner: Pubkey
    ) -> dict[str, Pubkey]:
        """Get all accounts needed for a burn_token instruction."""
        return {
            "authority": authority,
            "mint": mint,
            "token_account": self.derive_holder_account(owner, mint),
            "token_program_2022": SystemAddresses.TOKEN_2022_PROGRAM,
            "system_program": SystemAddresses.SYSTEM_PROGRAM,
        }
