"""
Tests for the token lifecycle orchestrator.
"""

import asyncio

import pytest
from solders.keypair import Keypair

from core.errors import InvariantViolation, LifecycleError, ValidationRejected
from core.wallet import Wallet
from fake_ledger import FakeSolanaClient
from lifecycle.orchestrator import LifecycleState, TokenLifecycle

TOKEN = ("Test Token", "TEST", "https://test.com/metadata")


def test_full_lifecycle(lifecycle, wallet):
    recipient = Keypair()

    async def run():
        mint = await lifecycle.create_token(*TOKEN)
        assert lifecycle.get_state(mint) == LifecycleState.CREATED

        await lifecycle.mint_to(mint, wallet.pubkey, 1_000_000_000)
        assert lifecycle.get_state(mint) == LifecycleState.FUNDED
        await lifecycle.mint_to(mint, recipient.pubkey(), 1)

        await lifecycle.transfer(mint, wallet.keypair, recipient.pubkey(), 200_000_000)
        assert lifecycle.get_state(mint) == LifecycleState.TRANSFERRED

        await lifecycle.burn(mint, wallet.pubkey, 500_000_000)
        assert lifecycle.get_state(mint) == LifecycleState.BURNED

        return (
            await lifecycle.holder_balance(mint, wallet.pubkey),
            await lifecycle.holder_balance(mint, recipient.pubkey()),
            await lifecycle.total_supply(mint),
        )

    assert asyncio.run(run()) == (300_000_000, 200_000_001, 500_000_001)


def test_created_token_records_metadata(lifecycle, fake_client, wallet):
    mint_keypair = Keypair()

    mint = asyncio.run(lifecycle.create_token(*TOKEN, mint_keypair=mint_keypair))

    assert mint == mint_keypair.pubkey()
    state = fake_client.state.mints[mint]
    assert (state.name, state.symbol, state.uri) == TOKEN
    assert state.authority == wallet.pubkey
    assert lifecycle.get_token_info(mint).authority == wallet.pubkey


def test_transfer_moves_exact_amount(lifecycle, wallet):
    recipient = Keypair().pubkey()

    async def run():
        mint = await lifecycle.create_token(*TOKEN)
        await lifecycle.mint_to(mint, wallet.pubkey, 700)
        await lifecycle.mint_to(mint, recipient, 50)
        await lifecycle.transfer(mint, wallet.keypair, recipient, 700)
        return (
            await lifecycle.holder_balance(mint, wallet.pubkey),
            await lifecycle.holder_balance(mint, recipient),
        )

    assert asyncio.run(run()) == (0, 750)


def test_transfer_is_signed_by_the_sending_owner(lifecycle, wallet):
    holder = Keypair()

    async def run():
        mint = await lifecycle.create_token(*TOKEN)
        await lifecycle.mint_to(mint, holder.pubkey(), 100)
        # holder sends back to the authority; the wallet only pays fees
        await lifecycle.transfer(mint, holder, wallet.pubkey, 40)
        return (
            await lifecycle.holder_balance(mint, holder.pubkey()),
            await lifecycle.holder_balance(mint, wallet.pubkey),
        )

    assert asyncio.run(run()) == (60, 40)


def test_conservation_holds_after_every_step(lifecycle, wallet):
    others = [Keypair() for _ in range(3)]
    steps = [
        ("mint", wallet.keypair, None, 5_000),
        ("mint", others[0], None, 300),
        ("transfer", wallet.keypair, others[1], 1_200),
        ("transfer", others[1], others[2], 200),
        ("burn", wallet.keypair, None, 800),
        ("transfer", others[0], wallet.keypair, 300),
        ("mint", others[2], None, 7),
        ("burn", wallet.keypair, None, 3_300),
    ]

    async def run():
        mint = await lifecycle.create_token(*TOKEN)
        supplies = []
        for operation, owner, counterparty, amount in steps:
            if operation == "mint":
                await lifecycle.mint_to(mint, owner.pubkey(), amount)
            elif operation == "transfer":
                await lifecycle.transfer(mint, owner, counterparty.pubkey(), amount)
            else:
                await lifecycle.burn(mint, owner.pubkey(), amount)
            snapshot = await lifecycle.verify_conservation(mint)
            assert snapshot.total_balance == snapshot.supply
            supplies.append(snapshot.supply)
        return supplies

    assert asyncio.run(run()) == [5_000, 5_300, 5_300, 5_300, 4_500, 4_500, 4_507, 1_207]


def test_burn_exceeding_balance_is_rejected_and_changes_nothing(lifecycle, wallet):
    async def run():
        mint = await lifecycle.create_token(*TOKEN)
        await lifecycle.mint_to(mint, wallet.pubkey, 100)

        with pytest.raises(ValidationRejected) as exc_info:
            await lifecycle.burn(mint, wallet.pubkey, 101)

        return exc_info.value, mint, (
            await lifecycle.holder_balance(mint, wallet.pubkey),
            await lifecycle.total_supply(mint),
        )

    error, mint, state = asyncio.run(run())
    assert state == (100, 100)
    assert any("insufficient funds" in line for line in error.logs)
    assert lifecycle.get_state(mint) == LifecycleState.FUNDED


def test_transfer_exceeding_balance_is_rejected(lifecycle, wallet):
    recipient = Keypair().pubkey()

    async def run():
        mint = await lifecycle.create_token(*TOKEN)
        await lifecycle.mint_to(mint, wallet.pubkey, 10)
        with pytest.raises(ValidationRejected):
            await lifecycle.transfer(mint, wallet.keypair, recipient, 11)
        return (
            await lifecycle.holder_balance(mint, wallet.pubkey),
            await lifecycle.holder_balance(mint, recipient),
        )

    assert asyncio.run(run()) == (10, 0)


def test_operations_require_a_managed_token(lifecycle, wallet):
    with pytest.raises(LifecycleError):
        asyncio.run(lifecycle.mint_to(Keypair().pubkey(), wallet.pubkey, 1))


def test_transfer_and_burn_require_funding(lifecycle, wallet, fake_client):
    mint = asyncio.run(lifecycle.create_token(*TOKEN))
    sends = fake_client.send_calls

    with pytest.raises(LifecycleError):
        asyncio.run(lifecycle.transfer(mint, wallet.keypair, Keypair().pubkey(), 1))
    with pytest.raises(LifecycleError):
        asyncio.run(lifecycle.burn(mint, wallet.pubkey, 1))

    assert fake_client.send_calls == sends


def test_invalid_amount_fails_before_anything_is_sent(lifecycle, wallet, fake_client):
    mint = asyncio.run(lifecycle.create_token(*TOKEN))
    sends = fake_client.send_calls

    with pytest.raises(ValueError):
        asyncio.run(lifecycle.mint_to(mint, wallet.pubkey, -5))

    assert fake_client.send_calls == sends


def test_ledger_drift_is_an_invariant_violation(lifecycle, wallet, fake_client):
    mint = asyncio.run(lifecycle.create_token(*TOKEN))

    def skim(state):
        holder = state.token_accounts[wallet.get_holder_account(mint)]
        if holder.amount:
            holder.amount -= 1

    fake_client.after_execute = skim

    with pytest.raises(InvariantViolation):
        asyncio.run(lifecycle.mint_to(mint, wallet.pubkey, 1_000))


def test_recreating_a_known_mint_is_refused(lifecycle):
    mint_keypair = Keypair()
    asyncio.run(lifecycle.create_token(*TOKEN, mint_keypair=mint_keypair))

    with pytest.raises(LifecycleError):
        asyncio.run(lifecycle.create_token(*TOKEN, mint_keypair=mint_keypair))


def test_independent_lifecycles_run_concurrently(idl_parser, implementations):
    client = FakeSolanaClient(idl_parser, implementations.address_provider.program_id)
    wallets = [Wallet.from_keypair(Keypair()) for _ in range(3)]
    lifecycles = [TokenLifecycle(client, w, implementations) for w in wallets]

    async def run_one(lifecycle, amount):
        mint = await lifecycle.create_token(*TOKEN)
        await lifecycle.mint_to(mint, lifecycle.wallet.pubkey, amount)
        await lifecycle.burn(mint, lifecycle.wallet.pubkey, amount // 2)
        return await lifecycle.total_supply(mint)

    async def run():
        return await asyncio.gather(
            *(run_one(lc, amount) for lc, amount in zip(lifecycles, (10, 20, 30)))
        )

    assert asyncio.run(run()) == [5, 10, 15]
