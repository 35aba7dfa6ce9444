"""
Idempotent creation of holder accounts.
"""

from solders.pubkey import Pubkey

from core.errors import AlreadyInitialized, ValidationRejected
from interfaces.core import AddressProvider, InstructionBuilder
from lifecycle.state_reader import TokenStateReader
from lifecycle.submitter import TransactionSubmitter
from utils.logger import get_logger

logger = get_logger(__name__)


class HolderAccountEnsurer:
    """Makes sure a holder account exists before it is named as a target.

    A rejected Create counts as success only when the account at the derived
    address reads back as a Token-2022 account with the expected owner and
    mint. Do not reuse this for accounts at arbitrary addresses.
    """

    def __init__(
        self,
        submitter: TransactionSubmitter,
        address_provider: AddressProvider,
        instruction_builder: InstructionBuilder,
        state_reader: TokenStateReader,
    ):
        self.submitter = submitter
        self.address_provider = address_provider
        self.instruction_builder = instruction_builder
        self.state_reader = state_reader

    async def ensure(self, owner: Pubkey, mint: Pubkey) -> Pubkey:
        """Create `owner`'s holder account for `mint` unless it already exists.

        Safe to call any number of times.

        Args:
            owner: Holder account owner
            mint: Token mint address

        Returns:
            Holder account address

        Raises:
            ValidationRejected: If the Create was rejected and no matching holder
                account exists at the derived address
            NetworkTimeout: If the outcome could not be observed
        """
        holder_account = self.address_provider.derive_holder_account(owner, mint)
        instruction = self.instruction_builder.build_create_holder_account_instruction(
            self.submitter.payer.pubkey(), owner, mint, self.address_provider
        )

        try:
            signature = await self.submitter.submit([instruction])
        except ValidationRejected as e:
            if isinstance(e, AlreadyInitialized) and e.address is not None and e.address != holder_account:
                raise
            # On-chain failures may arrive without logs, so read the account back
            if not await self.state_reader.is_holder_account(holder_account, owner, mint):
                raise
            logger.info(f"Holder account {holder_account} already exists (owner: {owner})")
            return holder_account

        logger.info(f"Holder account {holder_account} created (owner: {owner}): {signature}")
        return holder_account
