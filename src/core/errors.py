"""
Error taxonomy for token lifecycle operations.

Every error raised below the orchestrator's caller is one of these. Only
rejections of a holder account Create are ever absorbed, by the holder account
ensurer, and only once the account is read back at its derived address.
"""

from solders.pubkey import Pubkey
from solders.signature import Signature


class TokenLifecycleError(Exception):
    """Base class for all lifecycle client errors."""


class ValidationRejected(TokenLifecycleError):
    """The ledger refused a transaction during validation.

    Carries the program diagnostic verbatim. Never retried automatically,
    resubmitting an invalid instruction cannot succeed.
    """

    def __init__(
        self,
        message: str,
        logs: list[str] | None = None,
        code: int | None = None,
        instruction_index: int | None = None,
        signature: Signature | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.logs = list(logs or [])
        self.code = code
        self.instruction_index = instruction_index
        self.signature = signature

    def __str__(self) -> str:
        parts = [self.message]
        if self.instruction_index is not None:
            parts.append(f"instruction={self.instruction_index}")
        if self.code is not None:
            parts.append(f"code={self.code}")
        return " ".join(parts)


class AlreadyInitialized(ValidationRejected):
    """Account creation found the target address already occupied."""

    def __init__(self, message: str, address: Pubkey | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.address = address


class NetworkTimeout(TokenLifecycleError):
    """Confirmation could not be obtained in time; the outcome is unknown.

    The transaction may still land. Re-query ledger state before deciding to
    resubmit anything that is not idempotent.
    """

    def __init__(self, message: str, signature: Signature | None = None):
        super().__init__(message)
        self.signature = signature


class TransactionExpired(NetworkTimeout):
    """The blockhash expired before the target commitment was observed.

    The signed transaction can no longer be processed for the first time, but
    it may have landed below the target commitment. Re-query before resubmitting.
    """


class InvariantViolation(TokenLifecycleError):
    """Balances or supply disagree with what the last transition must produce."""

    def __init__(self, mint: Pubkey, details: str):
        super().__init__(f"Invariant violated for mint {mint}: {details}")
        self.mint = mint
        self.details = details


class LifecycleError(TokenLifecycleError):
    """An operation was requested in a state that does not allow it."""
