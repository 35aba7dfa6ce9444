"""
IDL Parser module for Solana programs.
Loads an Anchor IDL file and uses it to encode and decode instruction data
for the token_basics program.
"""

import json
import os
import struct
from typing import Any

import base58

from utils.logger import get_logger

logger = get_logger(__name__)

# Constants for Anchor data layout
DISCRIMINATOR_SIZE = 8
PUBLIC_KEY_SIZE = 32
STRING_LENGTH_PREFIX_SIZE = 4

# Bundled IDL of the token_basics program, relative to the project root
DEFAULT_IDL_PATH = os.path.normpath(
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..", "idl", "token_basics.json")
)


class IDLParser:
    """Encodes and decodes instructions using IDL definitions."""

    # A single source of truth for primitive type information, mapping the type name
    # to its struct format character and size in bytes.
    _PRIMITIVE_TYPE_INFO = {
        # type_name: (format_char, size_in_bytes)
        'u8': ('<B', 1),
        'u16': ('<H', 2),
        'u32': ('<I', 4),
        'u64': ('<Q', 8),
        'i64': ('<q', 8),
        'bool': ('<?', 1),
        'pubkey': (None, PUBLIC_KEY_SIZE),
        'string': (None, STRING_LENGTH_PREFIX_SIZE),  # Min size is for the length prefix
    }

    def __init__(self, idl_path: str, verbose: bool = False):
        """
        Initialize the IDL parser.

        Args:
            idl_path: Path to the IDL JSON file
            verbose: Whether to log decode failures
        """
        self.verbose = verbose
        with open(idl_path) as f:
            self.idl = json.load(f)
        self.instructions: dict[bytes, dict[str, Any]] = {}
        self.instruction_min_sizes: dict[bytes, int] = {}
        self._build_instruction_map()
        self._calculate_instruction_sizes()

    # --------------------------------------------------------------------------
    # Public Methods (External API)
    # --------------------------------------------------------------------------

    @property
    def program_address(self) -> str | None:
        """Program address declared by the IDL, if any."""
        return self.idl.get('address')

    def get_instruction_discriminators(self) -> dict[str, bytes]:
        """Get a mapping of instruction names to their discriminators."""
        return {instr['name']: disc for disc, instr in self.instructions.items()}

    def get_instruction_names(self) -> list[str]:
        """Get a list of all available instruction names."""
        return [instr['name'] for instr in self.instructions.values()]

    def get_instruction_accounts(self, name: str) -> list[dict[str, Any]]:
        """Get the ordered account declarations of an instruction.

        Each entry carries 'name' and, when set, 'writable' / 'signer' flags.
        """
        return self._get_instruction(name).get('accounts', [])

    def encode_instruction_data(self, name: str, args: dict[str, Any]) -> bytes:
        """Encode discriminator and arguments of an instruction.

        Args:
            name: Instruction name as declared in the IDL
            args: Argument values keyed by argument name

        Returns:
            Instruction data bytes

        Raises:
            ValueError: If an argument is missing or cannot be encoded
        """
        instruction = self._get_instruction(name)
        data = bytes(instruction['discriminator'])
        for arg in instruction.get('args', []):
            if arg['name'] not in args:
                raise ValueError(f"Missing argument '{arg['name']}' for instruction '{name}'")
            data += self._encode_primitive(args[arg['name']], arg['type'])
        return data

    def validate_instruction_data_length(self, ix_data: bytes, discriminator: bytes) -> bool:
        """Validate that instruction data meets minimum length requirements."""
        if discriminator not in self.instruction_min_sizes:
            return True  # Allow if we don't know the expected size

        expected_min_size = self.instruction_min_sizes[discriminator]
        actual_size = len(ix_data)

        if actual_size < expected_min_size:
            if self.verbose:
                logger.debug(
                    f"Instruction data for '{self.instructions[discriminator]['name']}' is shorter "
                    f"than the expected minimum ({actual_size}/{expected_min_size} bytes)"
                )
            return False

        return True

    def decode_instruction(self, ix_data: bytes, keys: list[bytes], accounts: list[int]) -> dict[str, Any] | None:
        """Decode instruction data using IDL definitions."""
        if len(ix_data) < DISCRIMINATOR_SIZE:
            return None

        discriminator = ix_data[:DISCRIMINATOR_SIZE]
        if discriminator not in self.instructions:
            return None

        if not self.validate_instruction_data_length(ix_data, discriminator):
            return None

        instruction = self.instructions[discriminator]
        data_args = ix_data[DISCRIMINATOR_SIZE:]

        # Decode instruction arguments
        args = {}
        decode_offset = 0
        for arg in instruction.get('args', []):
            try:
                value, decode_offset = self._decode_primitive(data_args, decode_offset, arg['type'])
                args[arg['name']] = value
            except (struct.error, UnicodeDecodeError, ValueError) as e:
                if self.verbose:
                    logger.debug(f"Decode error in argument '{arg['name']}': {e}")
                return None

        # Helper to safely retrieve account public keys
        def get_account_key(index: int) -> str | None:
            if index < len(accounts):
                account_index = accounts[index]
                if account_index < len(keys):
                    return base58.b58encode(keys[account_index]).decode('utf-8')
            return None # Return None for invalid indices

        # Build account info based on instruction definition
        account_info = {}
        for i, account_def in enumerate(instruction.get('accounts', [])):
            account_info[account_def['name']] = get_account_key(i)

        return {
            'instruction_name': instruction['name'],
            'args': args,
            'accounts': account_info
        }

    # --------------------------------------------------------------------------
    # Internal Helper Methods
    # --------------------------------------------------------------------------

    def _get_instruction(self, name: str) -> dict[str, Any]:
        for instruction in self.instructions.values():
            if instruction['name'] == name:
                return instruction
        raise ValueError(f"Instruction '{name}' not found in IDL")

    def _build_instruction_map(self):
        """Build a map of discriminators to instruction definitions."""
        for instruction in self.idl.get('instructions', []):
            # The discriminator from the JSON IDL is a list of u8 integers.
            discriminator = bytes(instruction['discriminator'])
            self.instructions[discriminator] = instruction

    def _calculate_instruction_sizes(self):
        """Calculate minimum data sizes for each instruction."""
        for discriminator, instruction in self.instructions.items():
            min_size = DISCRIMINATOR_SIZE
            for arg in instruction.get('args', []):
                min_size += self._get_primitive_size(arg['type'])
            self.instruction_min_sizes[discriminator] = min_size

    def _get_primitive_size(self, type_name: str) -> int:
        """Get size in bytes for primitive types from the central map."""
        info = self._PRIMITIVE_TYPE_INFO.get(type_name)
        return info[1] if info else 0

    def _encode_primitive(self, value: Any, type_name: str) -> bytes:
        """Encode a primitive value in Borsh layout."""
        if type_name not in self._PRIMITIVE_TYPE_INFO:
            raise ValueError(f"Unknown primitive type: {type_name}")

        if type_name == 'string':
            encoded = value.encode('utf-8')
            return struct.pack('<I', len(encoded)) + encoded

        if type_name == 'pubkey':
            return bytes(value)

        fmt, _ = self._PRIMITIVE_TYPE_INFO[type_name]
        try:
            return struct.pack(fmt, value)
        except struct.error as e:
            raise ValueError(f"Cannot encode {value!r} as {type_name}: {e}") from e

    def _decode_primitive(self, data: bytes, offset: int, type_name: str) -> tuple[Any, int]:
        """Decode primitive types."""
        if type_name not in self._PRIMITIVE_TYPE_INFO:
            raise ValueError(f"Unknown primitive type: {type_name}")

        if type_name == 'string':
            length = struct.unpack_from('<I', data, offset)[0]
            offset += STRING_LENGTH_PREFIX_SIZE
            if offset + length > len(data):
                raise ValueError("String length exceeds instruction data")
            value = data[offset:offset + length].decode('utf-8')
            return value, offset + length

        if type_name == 'pubkey':
            end = offset + PUBLIC_KEY_SIZE
            value = base58.b58encode(data[offset:end]).decode('utf-8')
            return value, end

        # Handle all numeric and bool types from the map
        fmt, size = self._PRIMITIVE_TYPE_INFO[type_name]
        value = struct.unpack_from(fmt, data, offset)[0]
        return value, offset + size


def load_idl_parser(idl_path: str = DEFAULT_IDL_PATH, verbose: bool = False) -> IDLParser:
    """
    Convenience function to load an IDL parser.

    Args:
        idl_path: Path to the IDL JSON file, the bundled token_basics IDL by default
        verbose: Whether to log decode failures

    Returns:
        Initialized IDLParser instance

    Raises:
        FileNotFoundError: If the IDL file does not exist
    """
    if not os.path.exists(idl_path):
        raise FileNotFoundError(f"IDL file not found at {idl_path}")
    parser = IDLParser(idl_path, verbose=verbose)
    logger.info(f"IDL parser loaded from {idl_path} with {len(parser.get_instruction_names())} instructions")
    return parser
