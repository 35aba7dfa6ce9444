"""
token_basics implementation of InstructionBuilder interface.

This module builds the create/mint/transfer/burn instructions of the
token_basics program, and the associated token account creation instruction,
with IDL-based discriminators. Account order and flags reproduce the
program's account structs exactly; the program cannot be asked which order
it wants at runtime.
"""

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from core.pubkeys import MAX_U64, SystemAddresses
from interfaces.core import AddressProvider, InstructionBuilder, TokenInfo
from utils.idl_parser import IDLParser
from utils.logger import get_logger

logger = get_logger(__name__)

# Associated token program instruction tag
ATA_CREATE: int = 0


def validate_amount(amount: int) -> int:
    """Check that `amount` fits an unsigned 64-bit integer.

    Raises:
        ValueError: If the amount is not an int in [0, 2**64)
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_U64:
        raise ValueError(f"Amount {amount} is outside the u64 range")
    return amount


class TokenBasicsInstructionBuilder(InstructionBuilder):
    """token_basics implementation of InstructionBuilder interface with IDL-based discriminators."""

    def __init__(self, idl_parser: IDLParser):
        """Initialize token_basics instruction builder with injected IDL parser.

        Args:
            idl_parser: Pre-loaded IDL parser for the token_basics program
        """
        self._idl_parser = idl_parser

        # Fail early if the IDL does not describe the program we build for
        discriminators = self._idl_parser.get_instruction_discriminators()
        for name in ("create_token", "mint_token", "transfer_token", "burn_token"):
            if name not in discriminators:
                raise ValueError(f"IDL is missing instruction '{name}'")

        logger.info("token_basics instruction builder initialized with injected IDL parser")

    def build_create_instruction(
        self,
        token_info: TokenInfo,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the create_token instruction.

        Both the authority and the new mint must sign; the mint keypair is
        used for this instruction only.

        Args:
            token_info: Token metadata, mint and authority
            address_provider: Program address provider

        Returns:
            create_token instruction
        """
        accounts_info = address_provider.get_create_instruction_accounts(
            token_info.mint, token_info.authority
        )

        accounts = [
            AccountMeta(pubkey=accounts_info["authority"], is_signer=True, is_writable=True),            # authority
            AccountMeta(pubkey=accounts_info["mint"], is_signer=True, is_writable=True),                 # mint
            AccountMeta(pubkey=accounts_info["token_program_2022"], is_signer=False, is_writable=False),  # token_program_2022
            AccountMeta(pubkey=accounts_info["system_program"], is_signer=False, is_writable=False),      # system_program
            AccountMeta(pubkey=accounts_info["rent"], is_signer=False, is_writable=False),                # rent
        ]

        data = self._idl_parser.encode_instruction_data(
            "create_token",
            {"name": token_info.name, "symbol": token_info.symbol, "uri": token_info.uri},
        )

        return Instruction(
            program_id=address_provider.program_id,
            data=data,
            accounts=accounts,
        )

    def build_mint_instruction(
        self,
        mint: Pubkey,
        authority: Pubkey,
        recipient: Pubkey,
        amount: int,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the mint_token instruction.

        Args:
            mint: Token mint address
            authority: Mint authority (must sign)
            recipient: Owner of the receiving holder account
            amount: Amount in minor units
            address_provider: Program address provider

        Returns:
            mint_token instruction
        """
        validate_amount(amount)
        accounts_info = address_provider.get_mint_instruction_accounts(mint, authority, recipient)

        accounts = [
            AccountMeta(pubkey=accounts_info["authority"], is_signer=True, is_writable=True),                 # authority
            AccountMeta(pubkey=accounts_info["recipient"], is_signer=False, is_writable=False),               # recipient
            AccountMeta(pubkey=accounts_info["mint"], is_signer=False, is_writable=True),                     # mint
            AccountMeta(pubkey=accounts_info["recipient_token_account"], is_signer=False, is_writable=True),  # recipient_token_account
            AccountMeta(pubkey=accounts_info["token_program_2022"], is_signer=False, is_writable=False),       # token_program_2022
            AccountMeta(pubkey=accounts_info["associated_token_program"], is_signer=False, is_writable=False), # associated_token_program
            AccountMeta(pubkey=accounts_info["system_program"], is_signer=False, is_writable=False),           # system_program
            AccountMeta(pubkey=accounts_info["rent"], is_signer=False, is_writable=False),                     # rent
        ]

        data = self._idl_parser.encode_instruction_data("mint_token", {"amount": amount})

        return Instruction(
            program_id=address_provider.program_id,
            data=data,
            accounts=accounts,
        )

    def build_transfer_instruction(
        self,
        mint: Pubkey,
        sender: Pubkey,
        recipient: Pubkey,
        amount: int,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the transfer_token instruction.

        Args:
            mint: Token mint address
            sender: Owner of the sending holder account (must sign)
            recipient: Owner of the receiving holder account
            amount: Amount in minor units
            address_provider: Program address provider

        Returns:
            transfer_token instruction
        """
        validate_amount(amount)
        accounts_info = address_provider.get_transfer_instruction_accounts(mint, sender, recipient)

        accounts = [
            AccountMeta(pubkey=accounts_info["authority"], is_signer=True, is_writable=True),                 # authority (sender)
            AccountMeta(pubkey=accounts_info["mint"], is_signer=False, is_writable=False),                    # mint
            AccountMeta(pubkey=accounts_info["sender_token_account"], is_signer=False, is_writable=True),     # sender_token_account
            AccountMeta(pubkey=accounts_info["recipient_token_account"], is_signer=False, is_writable=True),  # recipient_token_account
            AccountMeta(pubkey=accounts_info["recipient"], is_signer=False, is_writable=False),               # recipient
            AccountMeta(pubkey=accounts_info["token_program_2022"], is_signer=False, is_writable=False),       # token_program_2022
            AccountMeta(pubkey=accounts_info["associated_token_program"], is_signer=False, is_writable=False), # associated_token_program
            AccountMeta(pubkey=accounts_info["system_program"], is_signer=False, is_writable=False),           # system_program
            AccountMeta(pubkey=accounts_info["rent"], is_signer=False, is_writable=False),                     # rent
        ]

        data = self._idl_parser.encode_instruction_data("transfer_token", {"amount": amount})

        return Instruction(
            program_id=address_provider.program_id,
            data=data,
            accounts=accounts,
        )

    def build_burn_instruction(
        self,
        mint: Pubkey,
        authority: Pubkey,
        owner: Pubkey,
        amount: int,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build the burn_token instruction.

        Args:
            mint: Token mint address
            authority: Mint authority (must sign)
            owner: Owner of the holder account to burn from
            amount: Amount in minor units
            address_provider: Program address provider

        Returns:
            burn_token instruction
        """
        validate_amount(amount)
        accounts_info = address_provider.get_burn_instruction_accounts(mint, authority, owner)

        accounts = [
            AccountMeta(pubkey=accounts_info["authority"], is_signer=True, is_writable=True),            # authority
            AccountMeta(pubkey=accounts_info["mint"], is_signer=False, is_writable=True),                # mint
            AccountMeta(pubkey=accounts_info["token_account"], is_signer=False, is_writable=True),       # token_account
            AccountMeta(pubkey=accounts_info["token_program_2022"], is_signer=False, is_writable=False),  # token_program_2022
            AccountMeta(pubkey=accounts_info["system_program"], is_signer=False, is_writable=False),      # system_program
        ]

        data = self._idl_parser.encode_instruction_data("burn_token", {"amount": amount})

        return Instruction(
            program_id=address_provider.program_id,
            data=data,
            accounts=accounts,
        )

    def build_create_holder_account_instruction(
        self,
        payer: Pubkey,
        owner: Pubkey,
        mint: Pubkey,
        address_provider: AddressProvider,
    ) -> Instruction:
        """Build a non-idempotent associated token account Create instruction.

        The idempotent variant would hide whether the account existed; the
        ensurer wants the explicit failure and then reads the account back.

        Args:
            payer: Account paying rent (must sign)
            owner: Owner of the new holder account
            mint: Token mint address
            address_provider: Program address provider

        Returns:
            Associated token account creation instruction
        """
        holder_account = address_provider.derive_holder_account(owner, mint)

        accounts = [
            AccountMeta(pubkey=payer, is_signer=True, is_writable=True),                                  # payer
            AccountMeta(pubkey=holder_account, is_signer=False, is_writable=True),                        # associated token account
            AccountMeta(pubkey=owner, is_signer=False, is_writable=False),                                # wallet
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),                                 # mint
            AccountMeta(pubkey=SystemAddresses.SYSTEM_PROGRAM, is_signer=False, is_writable=False),       # system_program
            AccountMeta(pubkey=SystemAddresses.TOKEN_2022_PROGRAM, is_signer=False, is_writable=False),   # token_program
        ]

        return Instruction(
            program_id=SystemAddresses.ASSOCIATED_TOKEN_PROGRAM,
            data=bytes([ATA_CREATE]),
            accounts=accounts,
        )
