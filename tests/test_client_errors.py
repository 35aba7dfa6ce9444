"""
Tests for mapping ledger errors onto the error taxonomy.
"""

import asyncio
from types import SimpleNamespace

import pytest
from solana.rpc.core import RPCException, TransactionExpiredBlockheightExceededError
from solders.keypair import Keypair
from solders.signature import Signature

from core.client import SolanaClient, rejection_from_error, rejection_from_rpc_exception
from core.errors import (
    AlreadyInitialized,
    NetworkTimeout,
    TransactionExpired,
    ValidationRejected,
)
from core.pubkeys import ASSOCIATED_TOKEN_PROGRAM

# Preflight logs of an associated token account Create on an existing account
ATA_EXISTS_LOGS = [
    f"Program {ASSOCIATED_TOKEN_PROGRAM} invoke [1]",
    "Program log: Create",
    f"Program {ASSOCIATED_TOKEN_PROGRAM} consumed 4338 of 200000 compute units",
    f"Program {ASSOCIATED_TOKEN_PROGRAM} failed: Provided owner is not allowed",
]


def instruction_error(index, code):
    return SimpleNamespace(index=index, err=SimpleNamespace(code=code))


def test_already_in_use_log_becomes_already_initialized():
    address = Keypair().pubkey()
    logs = [
        "Program ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL invoke [1]",
        f"Allocate: account Address {{ address: {address}, base: None }} already in use",
    ]

    error = rejection_from_error("Transaction simulation failed", instruction_error(0, 0), logs)

    assert isinstance(error, AlreadyInitialized)
    assert error.address == address
    assert error.code == 0
    assert error.instruction_index == 0
    assert error.logs == logs


def test_other_failures_stay_validation_rejected():
    logs = ["Program log: Error: insufficient funds"]

    error = rejection_from_error("Transaction simulation failed", instruction_error(0, 1), logs)

    assert type(error) is ValidationRejected
    assert error.code == 1
    assert "insufficient funds" in error.logs[0]


def test_preflight_failure_payload_is_unpacked():
    payload = SimpleNamespace(
        message="Transaction simulation failed: Error processing Instruction 0",
        data=SimpleNamespace(err=instruction_error(0, 3010), logs=["Error Code: AccountNotSigner."]),
    )

    error = rejection_from_rpc_exception(RPCException(payload))

    assert type(error) is ValidationRejected
    assert error.code == 3010
    assert error.logs == ["Error Code: AccountNotSigner."]
    assert error.message.startswith("Transaction simulation failed")


def test_rpc_exception_without_structured_payload():
    error = rejection_from_rpc_exception(RPCException("blockhash not found"))

    assert type(error) is ValidationRejected
    assert error.message == "blockhash not found"
    assert error.code is None


def test_meets_commitment():
    finalized = SimpleNamespace(confirmation_status="TransactionConfirmationStatus.Finalized")
    processed = SimpleNamespace(confirmation_status="TransactionConfirmationStatus.Processed")

    assert SolanaClient.meets_commitment(finalized, "finalized")
    assert SolanaClient.meets_commitment(finalized, "confirmed")
    assert not SolanaClient.meets_commitment(processed, "confirmed")


def test_create_on_existing_holder_account_becomes_already_initialized():
    error = rejection_from_error(
        "Transaction simulation failed: Error processing Instruction 0: "
        "Provided owner is not allowed",
        SimpleNamespace(index=0, err="IllegalOwner"),
        ATA_EXISTS_LOGS,
    )

    assert isinstance(error, AlreadyInitialized)
    assert error.address is None
    assert error.instruction_index == 0


def test_illegal_owner_from_another_program_is_not_already_initialized():
    program = Keypair().pubkey()
    logs = [f"Program {program} failed: Provided owner is not allowed"]

    error = rejection_from_error("Transaction simulation failed", None, logs)

    assert type(error) is ValidationRejected


class StubRpc:
    """AsyncClient stand-in for the confirmation path."""

    def __init__(self, confirm_error=None, err=None, logs=None):
        self.confirm_error = confirm_error
        self.err = err
        self.logs = logs
        self.transaction_requests = 0

    async def confirm_transaction(self, signature, **kwargs):
        if self.confirm_error:
            raise self.confirm_error

    async def get_signature_statuses(self, signatures, search_transaction_history=False):
        return SimpleNamespace(value=[SimpleNamespace(err=self.err, confirmation_status=None)])

    async def get_transaction(self, signature, **kwargs):
        self.transaction_requests += 1
        meta = SimpleNamespace(log_messages=self.logs)
        return SimpleNamespace(value=SimpleNamespace(transaction=SimpleNamespace(meta=meta)))


def confirm_with(rpc, commitment="finalized"):
    client = SolanaClient("http://localhost:8899", commitment=commitment)
    client._client = rpc
    return asyncio.run(client.confirm_transaction(Signature.default(), last_valid_block_height=10))


def test_on_chain_failure_carries_the_transaction_logs():
    rpc = StubRpc(err=SimpleNamespace(index=0, err="IllegalOwner"), logs=ATA_EXISTS_LOGS)

    with pytest.raises(AlreadyInitialized) as exc_info:
        confirm_with(rpc)

    assert exc_info.value.logs == ATA_EXISTS_LOGS
    assert rpc.transaction_requests == 1


def test_on_chain_failure_without_logs_is_still_rejected():
    rpc = StubRpc(err=instruction_error(0, 1), logs=None)

    with pytest.raises(ValidationRejected) as exc_info:
        confirm_with(rpc, commitment="processed")

    assert exc_info.value.logs == []
    assert exc_info.value.code == 1


def test_expired_blockhash_is_a_network_timeout():
    rpc = StubRpc(
        confirm_error=TransactionExpiredBlockheightExceededError("has expired: block height exceeded")
    )

    with pytest.raises(TransactionExpired) as exc_info:
        confirm_with(rpc)

    assert isinstance(exc_info.value, NetworkTimeout)
    assert exc_info.value.signature == Signature.default()


def test_successful_confirmation_fetches_no_logs():
    rpc = StubRpc()

    confirm_with(rpc)

    assert rpc.transaction_requests == 0
