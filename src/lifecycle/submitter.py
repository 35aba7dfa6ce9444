"""
Transaction submission and confirmation.

Turns a list of instructions into a signed transaction, sends it and blocks
until the ledger reports it at the client's commitment, or fails.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from solana.exceptions import SolanaRpcException
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.signature import Signature
from solders.transaction import Transaction

from core.client import SolanaClient
from core.errors import NetworkTimeout, ValidationRejected
from utils.logger import get_logger

logger = get_logger(__name__)


class TransactionOutcome(Enum):
    """Lifecycle of a submitted transaction as seen by the client."""
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class PendingTransaction:
    """A signed transaction in flight, owned by the submitter until resolved."""
    signature: Signature
    transaction: Transaction
    last_valid_block_height: int
    status: TransactionOutcome = TransactionOutcome.SUBMITTED


class TransactionSubmitter:
    """Signs, sends and confirms lifecycle transactions."""

    def __init__(
        self,
        client: SolanaClient,
        payer: Keypair,
        max_retries: int = 1,
        skip_preflight: bool = False,
    ):
        """Initialize the submitter.

        Args:
            client: Solana client for RPC calls
            payer: Fee payer, signs every transaction
            max_retries: Send attempts for one signed transaction
            skip_preflight: Whether to skip preflight simulation
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.client = client
        self.payer = payer
        self.max_retries = max_retries
        self.skip_preflight = skip_preflight

    def build_transaction(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        recent_blockhash: Hash,
    ) -> Transaction:
        """Assemble and sign a transaction with the payer as fee payer.

        Args:
            instructions: Instructions in execution order
            signers: Additional required signers besides the payer
            recent_blockhash: Blockhash the transaction is bound to

        Returns:
            Fully signed transaction
        """
        keypairs = [self.payer]
        for signer in signers:
            if signer.pubkey() not in [k.pubkey() for k in keypairs]:
                keypairs.append(signer)

        message = Message(list(instructions), self.payer.pubkey())
        return Transaction(keypairs, message, recent_blockhash)

    async def submit(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair] = (),
    ) -> Signature:
        """Send instructions as one transaction and wait for confirmation.

        Args:
            instructions: Instructions to execute atomically
            signers: Additional required signers besides the payer

        Returns:
            Transaction signature

        Raises:
            ValidationRejected: If the ledger refused the transaction
            NetworkTimeout: If the outcome could not be observed
        """
        recent_blockhash, last_valid_block_height = await self.client.get_latest_blockhash()
        transaction = self.build_transaction(instructions, signers, recent_blockhash)
        pending = PendingTransaction(
            signature=transaction.signatures[0],
            transaction=transaction,
            last_valid_block_height=last_valid_block_height,
        )

        await self._send(pending)
        logger.info(f"Transaction sent: {pending.signature}")

        try:
            await self.client.confirm_transaction(
                pending.signature, last_valid_block_height=pending.last_valid_block_height
            )
        except ValidationRejected:
            pending.status = TransactionOutcome.FAILED
            raise
        except NetworkTimeout:
            pending.status = TransactionOutcome.UNKNOWN
            raise

        pending.status = TransactionOutcome.CONFIRMED
        logger.info(f"Transaction confirmed ({self.client.commitment}): {pending.signature}")
        return pending.signature

    async def _send(self, pending: PendingTransaction) -> None:
        """Send the signed transaction, re-sending the identical bytes on transport errors.

        Re-sending is safe because the signature stays the same and the
        ledger processes a signature at most once. Rejections are never retried.
        """
        for attempt in range(self.max_retries):
            try:
                await self.client.send_transaction(
                    pending.transaction, skip_preflight=self.skip_preflight
                )
                return
            except ValidationRejected as e:
                pending.status = TransactionOutcome.FAILED
                logger.error(f"Transaction {pending.signature} rejected: {e!s}")
                raise
            except SolanaRpcException as e:
                if attempt == self.max_retries - 1:
                    pending.status = TransactionOutcome.UNKNOWN
                    logger.error(
                        f"Failed to send transaction after {self.max_retries} attempts"
                    )
                    raise NetworkTimeout(
                        f"Sending {pending.signature} failed: {e!s}", pending.signature
                    ) from e

                wait_time = 2**attempt
                logger.warning(
                    f"Transaction attempt {attempt + 1} failed: {e!s}, retrying in {wait_time}s"
                )
                await asyncio.sleep(wait_time)

    async def get_outcome(self, signature: Signature) -> TransactionOutcome:
        """Re-query the ledger for a transaction whose confirmation was not observed.

        Args:
            signature: Transaction signature

        Returns:
            CONFIRMED, FAILED, or UNKNOWN if the ledger has no final answer yet
        """
        status = await self.client.get_signature_status(signature)
        if status is None:
            return TransactionOutcome.UNKNOWN
        if status.err is not None:
            return TransactionOutcome.FAILED
        if SolanaClient.meets_commitment(status, self.client.commitment):
            return TransactionOutcome.CONFIRMED
        return TransactionOutcome.UNKNOWN
