import pytest
from solders.keypair import Keypair

from core.wallet import Wallet
from fake_ledger import FakeSolanaClient
from lifecycle.orchestrator import TokenLifecycle
from platforms import create_token_basics_implementations


@pytest.fixture
def implementations():
    return create_token_basics_implementations()


@pytest.fixture
def address_provider(implementations):
    return implementations.address_provider


@pytest.fixture
def instruction_builder(implementations):
    return implementations.instruction_builder


@pytest.fixture
def idl_parser(instruction_builder):
    return instruction_builder._idl_parser


@pytest.fixture
def fake_client(idl_parser, address_provider):
    return FakeSolanaClient(idl_parser, address_provider.program_id)


@pytest.fixture
def wallet():
    return Wallet.from_keypair(Keypair())


@pytest.fixture
def lifecycle(fake_client, wallet, implementations):
    return TokenLifecycle(fake_client, wallet, implementations)
