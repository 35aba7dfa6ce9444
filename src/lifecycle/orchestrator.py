"""
Token lifecycle orchestration.

Sequences create -> mint -> transfer -> burn against the token_basics program
and verifies after every transition that balances and supply moved exactly
as the transition requires.
"""

import asyncio
from dataclasses import dataclass, field
from enum import IntEnum

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from core.client import SolanaClient
from core.errors import InvariantViolation, LifecycleError
from core.wallet import Wallet
from interfaces.core import TokenInfo
from lifecycle.account_ensurer import HolderAccountEnsurer
from lifecycle.state_reader import TokenSnapshot, TokenStateReader
from lifecycle.submitter import TransactionSubmitter
from platforms import ProgramImplementations
from utils.logger import get_logger

logger = get_logger(__name__)


class LifecycleState(IntEnum):
    """Progress of a token through its lifecycle. Only ever moves forward."""
    UNINITIALIZED = 0
    CREATED = 1
    FUNDED = 2
    TRANSFERRED = 3
    BURNED = 4


@dataclass
class ManagedToken:
    """Everything the orchestrator tracks for one mint."""
    info: TokenInfo
    state: LifecycleState = LifecycleState.CREATED
    holders: set[Pubkey] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def advance(self, state: LifecycleState) -> None:
        if state > self.state:
            logger.info(f"Token {self.info.mint}: {self.state.name} -> {state.name}")
            self.state = state


class TokenLifecycle:
    """Drives token creation, minting, transfers and burns for one authority.

    The wallet is the mint authority of every token created here and pays the
    fees of every transaction.
    """

    def __init__(
        self,
        client: SolanaClient,
        wallet: Wallet,
        implementations: ProgramImplementations,
        max_retries: int = 1,
    ):
        """Initialize the orchestrator.

        Args:
            client: Solana client shared by all components
            wallet: Authority and fee payer
            implementations: token_basics address provider and instruction builder
            max_retries: Send attempts per signed transaction
        """
        self.client = client
        self.wallet = wallet
        self.address_provider = implementations.address_provider
        self.instruction_builder = implementations.instruction_builder

        self.submitter = TransactionSubmitter(client, wallet.keypair, max_retries=max_retries)
        self.state_reader = TokenStateReader(client, self.address_provider)
        self.ensurer = HolderAccountEnsurer(
            self.submitter, self.address_provider, self.instruction_builder, self.state_reader
        )

        self._tokens: dict[Pubkey, ManagedToken] = {}

    def get_state(self, mint: Pubkey) -> LifecycleState:
        """Current lifecycle state of a mint, UNINITIALIZED if unknown."""
        token = self._tokens.get(mint)
        return token.state if token else LifecycleState.UNINITIALIZED

    def get_token_info(self, mint: Pubkey) -> TokenInfo:
        return self._require(mint, LifecycleState.CREATED).info

    async def create_token(
        self,
        name: str,
        symbol: str,
        uri: str,
        mint_keypair: Keypair | None = None,
    ) -> Pubkey:
        """Create a new mint with the wallet as authority.

        Args:
            name: Token name
            symbol: Token symbol
            uri: Metadata URI
            mint_keypair: Keypair of the new mint, generated if omitted

        Returns:
            Mint address (the token identity)
        """
        mint_keypair = mint_keypair or Keypair()
        mint = mint_keypair.pubkey()
        if mint in self._tokens:
            raise LifecycleError(f"Token {mint} was already created")

        token_info = TokenInfo(
            name=name,
            symbol=symbol,
            uri=uri,
            mint=mint,
            authority=self.wallet.pubkey,
        )
        instruction = self.instruction_builder.build_create_instruction(
            token_info, self.address_provider
        )

        logger.info(f"Creating token {name} ({symbol}) with mint {mint}")
        signature = await self.submitter.submit([instruction], signers=[mint_keypair])
        logger.info(f"Token created! Signature: {signature}")

        token = ManagedToken(info=token_info)
        self._tokens[mint] = token

        supply = await self.state_reader.total_supply(mint)
        if supply != 0:
            raise InvariantViolation(mint, f"new mint has supply {supply}, expected 0")
        return mint

    async def mint_to(self, mint: Pubkey, owner: Pubkey, amount: int) -> Signature:
        """Mint `amount` into `owner`'s holder account, creating it if needed.

        Args:
            mint: Token mint address
            owner: Recipient owner
            amount: Amount in minor units

        Returns:
            Signature of the mint transaction
        """
        token = self._require(mint, LifecycleState.CREATED)
        async with token.lock:
            instruction = self.instruction_builder.build_mint_instruction(
                mint, token.info.authority, owner, amount, self.address_provider
            )
            await self.ensurer.ensure(owner, mint)
            token.holders.add(owner)

            before = await self._snapshot(token)
            logger.info(f"Minting {amount} of {mint} to {owner}")
            signature = await self.submitter.submit([instruction])

            expected = dict(before.balances)
            expected[owner] += amount
            await self._verify(token, before.supply + amount, expected)

            token.advance(LifecycleState.FUNDED)
            return signature

    async def transfer(
        self, mint: Pubkey, sender: Keypair, recipient: Pubkey, amount: int
    ) -> Signature:
        """Move `amount` from the sender's holder account to the recipient's.

        The sender signs; the wallet only pays fees.

        Args:
            mint: Token mint address
            sender: Keypair of the sending owner
            recipient: Receiving owner
            amount: Amount in minor units

        Returns:
            Signature of the transfer transaction
        """
        token = self._require(mint, LifecycleState.FUNDED)
        sender_pubkey = sender.pubkey()
        async with token.lock:
            instruction = self.instruction_builder.build_transfer_instruction(
                mint, sender_pubkey, recipient, amount, self.address_provider
            )
            await self.ensurer.ensure(recipient, mint)
            token.holders.update((sender_pubkey, recipient))

            before = await self._snapshot(token)
            logger.info(f"Transferring {amount} of {mint} from {sender_pubkey} to {recipient}")
            signature = await self.submitter.submit([instruction], signers=[sender])

            expected = dict(before.balances)
            expected[sender_pubkey] -= amount
            expected[recipient] += amount
            await self._verify(token, before.supply, expected)

            token.advance(LifecycleState.TRANSFERRED)
            return signature

    async def burn(self, mint: Pubkey, owner: Pubkey, amount: int) -> Signature:
        """Burn `amount` from `owner`'s holder account, signed by the authority.

        Args:
            mint: Token mint address
            owner: Owner of the holder account to burn from
            amount: Amount in minor units

        Returns:
            Signature of the burn transaction
        """
        token = self._require(mint, LifecycleState.FUNDED)
        async with token.lock:
            instruction = self.instruction_builder.build_burn_instruction(
                mint, token.info.authority, owner, amount, self.address_provider
            )
            token.holders.add(owner)

            before = await self._snapshot(token)
            logger.info(f"Burning {amount} of {mint} from {owner}")
            signature = await self.submitter.submit([instruction])

            expected = dict(before.balances)
            expected[owner] -= amount
            await self._verify(token, before.supply - amount, expected)

            token.advance(LifecycleState.BURNED)
            return signature

    async def holder_balance(self, mint: Pubkey, owner: Pubkey) -> int:
        return await self.state_reader.holder_balance(owner, mint)

    async def total_supply(self, mint: Pubkey) -> int:
        return await self.state_reader.total_supply(mint)

    async def verify_conservation(self, mint: Pubkey) -> TokenSnapshot:
        """Check that the known holder balances add up to the supply.

        Returns:
            The snapshot the check was made on

        Raises:
            InvariantViolation: If they do not
        """
        token = self._require(mint, LifecycleState.CREATED)
        snapshot = await self._snapshot(token)
        self._check_conservation(token, snapshot)
        return snapshot

    def _require(self, mint: Pubkey, minimum: LifecycleState) -> ManagedToken:
        token = self._tokens.get(mint)
        if token is None:
            raise LifecycleError(f"Token {mint} was not created by this lifecycle")
        if token.state < minimum:
            raise LifecycleError(
                f"Token {mint} is {token.state.name}, operation requires {minimum.name}"
            )
        return token

    async def _snapshot(self, token: ManagedToken) -> TokenSnapshot:
        return await self.state_reader.snapshot(token.info.mint, sorted(token.holders, key=str))

    async def _verify(
        self, token: ManagedToken, expected_supply: int, expected_balances: dict[Pubkey, int]
    ) -> None:
        """Compare post-transition state with the expected one."""
        after = await self._snapshot(token)
        mint = token.info.mint

        if after.supply != expected_supply:
            raise InvariantViolation(mint, f"supply is {after.supply}, expected {expected_supply}")

        for owner, expected in expected_balances.items():
            actual = after.balances.get(owner)
            if actual != expected:
                raise InvariantViolation(
                    mint, f"balance of {owner} is {actual}, expected {expected}"
                )

        self._check_conservation(token, after)
        logger.info(f"Invariants hold for {mint}: supply {after.supply}")

    @staticmethod
    def _check_conservation(token: ManagedToken, snapshot: TokenSnapshot) -> None:
        if snapshot.total_balance != snapshot.supply:
            raise InvariantViolation(
                token.info.mint,
                f"holder balances sum to {snapshot.total_balance}, supply is {snapshot.supply}",
            )
