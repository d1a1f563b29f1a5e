"""Client-side state records: lifecycle stage, per-user state, instances."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rankdrop.models.chain import Receipt


class LifecycleStage(str, Enum):
    """Per-(airdrop instance, user) stage. Only ever moves forward on-chain."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"  # userInit() included the address
    ACTIVATED = "activated"  # the user called activate()


@dataclass
class UserState:
    """Cached view of one user on one airdrop instance.

    A cache of on-chain state; stale until re-confirmed by a query or event.
    """

    address: str
    class_membership: bool = False
    activated: bool = False
    rank: int = 0

    @property
    def stage(self) -> LifecycleStage:
        if self.activated:
            return LifecycleStage.ACTIVATED
        if self.class_membership:
            return LifecycleStage.INITIALIZED
        return LifecycleStage.UNINITIALIZED


@dataclass(frozen=True)
class ContractInstance:
    """A factory-issued contract, recorded once its creation event decoded."""

    address: str
    created_at: Receipt
    abi: list[dict[str, Any]] = field(default_factory=list, compare=False, repr=False)


@dataclass(frozen=True)
class DeployedContract:
    """Result of deploying a contract from its artifact."""

    name: str
    address: str
    receipt: Receipt
    tag_class_id: int | None = None  # UserRank emits its tag class on deploy


@dataclass
class LifecycleReport:
    """Snapshots observed while running the full lifecycle."""

    signer: str
    rank_after_upgrade: int | None = None
    rank_queried: int | None = None
    airdrop_address: str | None = None
    snapshots: list[tuple[str, UserState]] = field(default_factory=list)
    tx_hashes: list[str] = field(default_factory=list)
