"""
token_basics program exports.

This module provides convenient imports for the token_basics program implementations.
"""

from .address_provider import (
    TokenBasicsAddresses,
    TokenBasicsAddressProvider,
    derive_holder_account,
)
from .instruction_builder import TokenBasicsInstructionBuilder

__all__ = [
    "TokenBasicsAddresses",
    "TokenBasicsAddressProvider",
    "TokenBasicsInstructionBuilder",
    "derive_holder_account",
]
