"""Data models for the rankdrop client."""

from rankdrop.models.chain import ContractRef, PendingTx, RawLog, Receipt
from rankdrop.models.events import EventField, EventRecord, EventSchema, TxOutcome
from rankdrop.models.records import (
    ContractInstance,
    DeployedContract,
    LifecycleReport,
    LifecycleStage,
    UserState,
)
from rankdrop.models.config import (
    AirdropConfig,
    ClientConfig,
    DeployConfig,
    UserRankConfig,
)

__all__ = [
    "ContractRef", "PendingTx", "RawLog", "Receipt",
    "EventField", "EventRecord", "EventSchema", "TxOutcome",
    "ContractInstance", "DeployedContract", "LifecycleReport",
    "LifecycleStage", "UserState",
    "AirdropConfig", "ClientConfig", "DeployConfig", "UserRankConfig",
]
