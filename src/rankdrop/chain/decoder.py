"""Event decoder - turns raw receipt logs into typed EventRecords.

Pure functions: no network access and no state, so the same log and
schema always decode to the same record.
"""

from __future__ import annotations

from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from rankdrop.errors import DecodeError, SchemaMismatch
from rankdrop.models.chain import RawLog
from rankdrop.models.events import EventRecord, EventSchema


def _is_hashed_when_indexed(typ: str) -> bool:
    """Reference types are stored in topics as their keccak256 hash."""
    return typ in ("string", "bytes") or typ.endswith("]") or typ.startswith("(")


def _normalise(typ: str, value: Any) -> Any:
    if typ == "address":
        return to_checksum_address(value)
    if typ.startswith("address[") and isinstance(value, (list, tuple)):
        return tuple(to_checksum_address(v) for v in value)
    return value


def matches(schema: EventSchema, log: RawLog) -> bool:
    """True if the log's topic[0] is this schema's signature hash."""
    return not schema.anonymous and bool(log.topics) and bytes(log.topics[0]) == schema.topic


def decode(
    schema: EventSchema,
    log: RawLog,
    expected_address: str | None = None,
    tx_hash: str = "",
) -> EventRecord:
    """Decode ``log`` against ``schema``.

    Raises SchemaMismatch if the topic signature differs, or if
    ``expected_address`` is given and the log was emitted elsewhere.
    Raises DecodeError if the topics or data do not fit the schema.
    """
    if schema.anonymous:
        raise DecodeError(f"Anonymous event {schema.name} has no signature topic to match")
    if not matches(schema, log):
        raise SchemaMismatch(
            f"Log {log.log_index} does not carry the {schema.signature} signature"
        )
    if expected_address is not None and (
        to_checksum_address(log.address) != to_checksum_address(expected_address)
    ):
        raise SchemaMismatch(
            f"{schema.name} log {log.log_index} emitted by {log.address}, "
            f"expected {expected_address}"
        )

    indexed = schema.indexed_fields
    topics = log.topics[1:]
    if len(topics) != len(indexed):
        raise DecodeError(
            f"{schema.name} expects {len(indexed)} indexed topics, log has {len(topics)}"
        )

    values: dict[str, Any] = {}
    try:
        for fld, topic in zip(indexed, topics):
            if _is_hashed_when_indexed(fld.type):
                values[fld.name] = bytes(topic)
            else:
                (raw,) = abi_decode([fld.type], bytes(topic))
                values[fld.name] = _normalise(fld.type, raw)

        data_fields = schema.data_fields
        decoded = abi_decode([f.type for f in data_fields], bytes(log.data))
        for fld, raw in zip(data_fields, decoded):
            values[fld.name] = _normalise(fld.type, raw)
    except (DecodingError, ValueError, TypeError) as exc:
        raise DecodeError(f"Could not decode {schema.name} log {log.log_index}: {exc}") from exc

    # Declared order, not indexed-first order
    args = {f.name: values[f.name] for f in schema.fields}
    return EventRecord(
        name=schema.name,
        address=to_checksum_address(log.address),
        args=args,
        log_index=log.log_index,
        tx_hash=tx_hash,
    )
