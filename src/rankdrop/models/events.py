"""Event schemas and decoded event records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from eth_utils import keccak

from rankdrop.models.chain import Receipt


@dataclass(frozen=True)
class EventField:
    name: str
    type: str  # canonical ABI type, e.g. "address", "uint256", "address[]"
    indexed: bool = False


@dataclass(frozen=True)
class EventSchema:
    """Named, ordered field definition for one contract-emitted log type."""

    name: str
    fields: tuple[EventField, ...] = ()
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(f.type for f in self.fields)})"

    @property
    def topic(self) -> bytes:
        """keccak256 of the signature, i.e. the expected topic[0]."""
        return keccak(text=self.signature)

    @property
    def indexed_fields(self) -> tuple[EventField, ...]:
        return tuple(f for f in self.fields if f.indexed)

    @property
    def data_fields(self) -> tuple[EventField, ...]:
        return tuple(f for f in self.fields if not f.indexed)


@dataclass(frozen=True)
class EventRecord:
    """A raw log decoded against a known schema.

    ``args`` preserves the schema's declared field order.
    """

    name: str
    address: str  # emitter
    args: dict[str, Any] = field(default_factory=dict)
    log_index: int = 0
    tx_hash: str = ""

    def __getitem__(self, key: str) -> Any:
        return self.args[key]


@dataclass(frozen=True)
class TxOutcome:
    """The decoded outcome of an operation together with its receipt."""

    record: EventRecord
    receipt: Receipt
