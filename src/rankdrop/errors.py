"""Error taxonomy for the transaction pipeline and the components built on it."""

from __future__ import annotations

from rankdrop.models.chain import Receipt


class RankdropError(Exception):
    """Base class for all client errors."""


class GatewayError(RankdropError):
    """The chain gateway could not complete a request."""


class PipelineError(RankdropError):
    """A pipeline operation failed. Carries the call context for diagnosis."""

    def __init__(
        self,
        message: str,
        *,
        method: str,
        address: str,
        receipt: Receipt | None = None,
    ) -> None:
        self.method = method
        self.address = address
        self.receipt = receipt
        status = "none" if receipt is None else ("success" if receipt.status else "reverted")
        tx = receipt.tx_hash if receipt is not None else "?"
        super().__init__(f"{message} (method={method}, address={address}, status={status}, tx={tx})")


class TransactionReverted(PipelineError):
    """The transaction was mined but reverted on-chain. Not retried."""


class ConfirmationTimeout(PipelineError):
    """The network did not confirm the transaction in time.

    The transaction may still land; a retry must use a fresh nonce.
    """

    def __init__(self, message: str, *, method: str, address: str, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        super().__init__(f"{message} [tx={tx_hash}]", method=method, address=address)


class ExpectedEventNotFound(PipelineError):
    """The receipt did not contain the event that marks this operation's outcome."""


class AmbiguousEventMatch(PipelineError):
    """More than one log in the receipt matched the expected event."""


class DecodeError(RankdropError):
    """A log could not be decoded against a schema."""


class SchemaMismatch(DecodeError):
    """The log's topic signature or emitter does not match the schema."""


class EventDecodeFailed(PipelineError, DecodeError):
    """A log carrying the expected signature did not decode against its schema."""


class InstanceCreationFailed(RankdropError):
    """The factory call failed or its creation event was unusable."""


class RankRegressionObserved(RankdropError):
    """A decoded rank is lower than the cached rank for the same address."""

    def __init__(self, address: str, cached: int, observed: int) -> None:
        self.address = address
        self.cached = cached
        self.observed = observed
        super().__init__(f"Rank for {address} went from {cached} to {observed}")


class LifecycleInvariantViolation(RankdropError):
    """An observed state would be activated without being initialized."""
