import asyncio

from solders.keypair import Keypair

from lifecycle.orchestrator import LifecycleState
from lifecycle_runner import DEFAULT_SCENARIO, run_lifecycle

TOKEN = {"name": "Test Token", "symbol": "TEST", "uri": "https://test.com/metadata"}


def test_default_scenario(lifecycle, wallet):
    recipient = Keypair()

    report = asyncio.run(run_lifecycle(lifecycle, TOKEN, {}, recipient))

    assert report.wallet == wallet.pubkey
    assert report.recipient == recipient.pubkey()
    assert report.wallet_balance == 300_000_000
    assert report.recipient_balance == 200_000_001
    assert report.total_supply == 500_000_001
    assert set(report.signatures) == {"mint_to_wallet", "mint_to_recipient", "transfer", "burn"}
    assert lifecycle.get_state(report.mint) == LifecycleState.BURNED


def test_scenario_overrides(lifecycle):
    scenario = {"mint_amount": 100, "transfer_amount": 30, "burn_amount": 70}

    report = asyncio.run(run_lifecycle(lifecycle, TOKEN, scenario, Keypair()))

    assert report.wallet_balance == 0
    assert report.recipient_balance == DEFAULT_SCENARIO["recipient_mint_amount"] + 30
    assert report.total_supply == 31


def test_every_step_lands_once(lifecycle, fake_client):
    asyncio.run(run_lifecycle(lifecycle, TOKEN, {}, Keypair()))

    # create, two holder accounts, two mints, transfer, burn
    assert len(fake_client.executed) == 7
    assert len(set(fake_client.executed)) == 7
