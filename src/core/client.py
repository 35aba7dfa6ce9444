"""
Solana client abstraction for blockchain operations.
"""

import asyncio
import json
import re
from typing import Any

import aiohttp
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.account import Account
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionStatus

from core.errors import (
    AlreadyInitialized,
    NetworkTimeout,
    TransactionExpired,
    ValidationRejected,
)
from core.pubkeys import ASSOCIATED_TOKEN_PROGRAM
from utils.logger import get_logger

logger = get_logger(__name__)

COMMITMENT_LEVELS = ["processed", "confirmed", "finalized"]

# System program log line for an address that is already allocated, e.g.
# "Allocate: account Address { address: <pubkey>, base: None } already in use"
_ALREADY_IN_USE = "already in use"
_ADDRESS_IN_LOG = re.compile(r"address:\s*([1-9A-HJ-NP-Za-km-z]{32,44})")

# The associated token program checks ownership of the target before it
# allocates, so a Create on an existing holder account fails with IllegalOwner
_ATA_ILLEGAL_OWNER = f"Program {ASSOCIATED_TOKEN_PROGRAM} failed: Provided owner is not allowed"


def _instruction_error_details(err: Any) -> tuple[int | None, int | None]:
    """Extract (instruction index, custom error code) from a transaction error."""
    index = getattr(err, "index", None)
    inner = getattr(err, "err", None)
    code = getattr(inner, "code", None)
    return index, code


def rejection_from_error(
    message: str,
    err: Any,
    logs: list[str] | None,
    signature: Signature | None = None,
) -> ValidationRejected:
    """Turn a ledger-side transaction error into the matching rejection.

    Args:
        message: Human readable error message from the node
        err: solders transaction error, if any
        logs: Program logs of the failed execution
        signature: Signature of the rejected transaction

    Returns:
        AlreadyInitialized for "account already in use" and for an associated
        token account Create on an existing account, ValidationRejected otherwise
    """
    logs = list(logs or [])
    index, code = _instruction_error_details(err)
    if err is not None and str(err) not in message:
        message = f"{message}: {err}"

    in_use_lines = [line for line in logs if _ALREADY_IN_USE in line]
    ata_exists = any(_ATA_ILLEGAL_OWNER in line for line in logs)
    if in_use_lines or ata_exists or _ALREADY_IN_USE in message:
        address = None
        match = _ADDRESS_IN_LOG.search(in_use_lines[0] if in_use_lines else message)
        if match:
            address = Pubkey.from_string(match.group(1))
        return AlreadyInitialized(
            message,
            address=address,
            logs=logs,
            code=code,
            instruction_index=index,
            signature=signature,
        )

    return ValidationRejected(
        message, logs=logs, code=code, instruction_index=index, signature=signature
    )


def rejection_from_rpc_exception(
    exc: RPCException, signature: Signature | None = None
) -> ValidationRejected:
    """Map a solana-py RPCException (e.g. preflight failure) to a rejection."""
    payload = exc.args[0] if exc.args else exc
    message = getattr(payload, "message", None) or str(payload)
    data = getattr(payload, "data", None)
    err = getattr(data, "err", None)
    logs = getattr(data, "logs", None)
    return rejection_from_error(message, err, logs, signature)


class SolanaClient:
    """Abstraction for Solana RPC client operations.

    One instance is created per process and handed to every component that
    needs the ledger; it holds the only network connection.
    """

    def __init__(
        self,
        rpc_endpoint: str,
        commitment: str = "finalized",
        confirmation_timeout: float = 60.0,
    ):
        """Initialize Solana client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            commitment: Commitment used for confirmations and state reads
            confirmation_timeout: Seconds to wait for a confirmation
        """
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"commitment must be one of {COMMITMENT_LEVELS}")
        self.rpc_endpoint = rpc_endpoint
        self.commitment = commitment
        self.confirmation_timeout = confirmation_timeout
        self._client = None

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance.

        Returns:
            AsyncClient instance
        """
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, commitment=self.commitment)
        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def get_health(self) -> str | None:
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getHealth",
        }
        result = await self.post_rpc(body)
        if result and "result" in result:
            return result["result"]
        return None

    async def get_account_info(self, pubkey: Pubkey) -> Account | None:
        """Get account info from the blockchain.

        Args:
            pubkey: Public key of the account

        Returns:
            Account, or None if it does not exist
        """
        client = await self.get_client()
        response = await client.get_account_info(pubkey, commitment=self.commitment, encoding="base64")
        return response.value

    async def get_token_account_balance(self, token_account: Pubkey) -> int:
        """Get token balance for an account.

        Args:
            token_account: Token account address

        Returns:
            Token balance in minor units, 0 if the account does not exist
        """
        if await self.get_account_info(token_account) is None:
            return 0
        client = await self.get_client()
        response = await client.get_token_account_balance(token_account, commitment=self.commitment)
        if response.value:
            return int(response.value.amount)
        return 0

    async def get_token_supply(self, mint: Pubkey) -> int:
        """Get the total supply of a mint.

        Args:
            mint: Token mint address

        Returns:
            Total supply in minor units
        """
        client = await self.get_client()
        response = await client.get_token_supply(mint, commitment=self.commitment)
        return int(response.value.amount)

    async def get_latest_blockhash(self) -> tuple[Hash, int]:
        """Get the latest blockhash.

        Returns:
            Recent blockhash and the last block height it is valid for
        """
        client = await self.get_client()
        response = await client.get_latest_blockhash(commitment=self.commitment)
        return response.value.blockhash, response.value.last_valid_block_height

    async def send_transaction(
        self, transaction: Transaction, skip_preflight: bool = False
    ) -> Signature:
        """Send an already signed transaction without waiting for confirmation.

        Args:
            transaction: Signed transaction
            skip_preflight: Whether to skip preflight simulation

        Returns:
            Transaction signature

        Raises:
            ValidationRejected: If preflight simulation rejects the transaction
            SolanaRpcException: On transport failures
        """
        client = await self.get_client()
        tx_opts = TxOpts(skip_preflight=skip_preflight, preflight_commitment=self.commitment)
        try:
            response = await client.send_transaction(transaction, tx_opts)
        except RPCException as e:
            raise rejection_from_rpc_exception(e, transaction.signatures[0]) from e
        return response.value

    async def get_signature_status(self, signature: Signature) -> TransactionStatus | None:
        """Get the status of a transaction, None if the ledger does not know it."""
        client = await self.get_client()
        response = await client.get_signature_statuses([signature], search_transaction_history=True)
        return response.value[0]

    async def confirm_transaction(
        self, signature: Signature, last_valid_block_height: int | None = None
    ) -> None:
        """Wait for transaction confirmation at the client's commitment.

        Args:
            signature: Transaction signature
            last_valid_block_height: Stop waiting once the blockhash expires

        Raises:
            NetworkTimeout: If confirmation was not observed in time
            TransactionExpired: If the blockhash expired without the transaction landing
            ValidationRejected: If the transaction landed with an error
        """
        client = await self.get_client()
        try:
            await asyncio.wait_for(
                client.confirm_transaction(
                    signature,
                    commitment=self.commitment,
                    sleep_seconds=1,
                    last_valid_block_height=last_valid_block_height,
                ),
                timeout=self.confirmation_timeout,
            )
        except TransactionExpiredBlockheightExceededError as e:
            logger.error(f"Transaction {signature} expired before confirmation: {e!s}")
            raise TransactionExpired(f"Transaction {signature} expired: {e!s}", signature) from e
        except (asyncio.TimeoutError, UnconfirmedTxError, SolanaRpcException) as e:
            logger.error(f"Failed to confirm transaction {signature}: {e!s}")
            raise NetworkTimeout(f"Confirmation of {signature} not observed: {e!s}", signature) from e

        status = await self.get_signature_status(signature)
        if status is not None and status.err is not None:
            logs = await self.get_transaction_logs(signature)
            raise rejection_from_error("Transaction failed on-chain", status.err, logs, signature)

    async def get_transaction_logs(self, signature: Signature) -> list[str]:
        """Get the program logs of a landed transaction.

        Args:
            signature: Transaction signature

        Returns:
            Log messages, empty if the node could not provide them
        """
        client = await self.get_client()
        # getTransaction does not serve the processed commitment
        commitment = "confirmed" if self.commitment == "processed" else self.commitment
        try:
            response = await client.get_transaction(
                signature, commitment=commitment, max_supported_transaction_version=0
            )
        except SolanaRpcException as e:
            logger.warning(f"Could not fetch logs of {signature}: {e!s}")
            return []

        if response.value is None or response.value.transaction.meta is None:
            return []
        return list(response.value.transaction.meta.log_messages or [])

    @staticmethod
    def meets_commitment(status: TransactionStatus, commitment: str) -> bool:
        """Check whether a landed transaction reached `commitment`."""
        if status.confirmation_status is None:
            # Nodes drop the field once a transaction is rooted
            return True
        # e.g. TransactionConfirmationStatus.Finalized -> "finalized"
        reached = str(status.confirmation_status).rsplit(".", 1)[-1].lower()
        if reached not in COMMITMENT_LEVELS:
            return False
        return COMMITMENT_LEVELS.index(reached) >= COMMITMENT_LEVELS.index(commitment)

    async def post_rpc(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """
        Send a raw RPC request to the Solana node.

        Args:
            body: JSON-RPC request body.

        Returns:
            Optional[Dict[str, Any]]: Parsed JSON response, or None if the request fails.
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.rpc_endpoint,
                    json=body,
                    timeout=aiohttp.ClientTimeout(10),  # 10-second timeout
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"RPC request failed: {e!s}", exc_info=True)
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode RPC response: {e!s}", exc_info=True)
            return None
