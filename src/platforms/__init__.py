"""
Program factory for the token lifecycle client.

This module provides a single place to instantiate the program-specific
implementations of the lifecycle interfaces with IDL support.
"""

from dataclasses import dataclass

from solders.pubkey import Pubkey

from interfaces.core import AddressProvider, InstructionBuilder
from platforms.token_basics import (
    TokenBasicsAddressProvider,
    TokenBasicsInstructionBuilder,
)
from utils.idl_parser import DEFAULT_IDL_PATH, load_idl_parser
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProgramImplementations:
    """Container for all program-specific implementations."""

    address_provider: AddressProvider
    instruction_builder: InstructionBuilder


def create_token_basics_implementations(
    program_id: Pubkey | None = None,
    idl_path: str = DEFAULT_IDL_PATH,
    verbose_idl: bool = False,
) -> ProgramImplementations:
    """Create token_basics implementation instances with IDL support.

    Args:
        program_id: Deployed program id, defaults to the IDL's address
        idl_path: Path to the token_basics IDL
        verbose_idl: Whether to enable verbose logging in the parser

    Returns:
        ProgramImplementations for the token_basics program
    """
    idl_parser = load_idl_parser(idl_path, verbose=verbose_idl)

    if program_id is None and idl_parser.program_address:
        program_id = Pubkey.from_string(idl_parser.program_address)

    address_provider = TokenBasicsAddressProvider(program_id)
    instruction_builder = TokenBasicsInstructionBuilder(idl_parser=idl_parser)

    logger.info(f"token_basics implementations created for program {address_provider.program_id}")

    return ProgramImplementations(
        address_provider=address_provider,
        instruction_builder=instruction_builder,
    )
