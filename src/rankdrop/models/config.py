"""Configuration models for the client."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class UserRankConfig:
    """Method and event names of the UserRank contract."""

    upgrade_method: str = "upgradeRank"
    rank_event: str = "RankChanged"
    rank_field: str = "newRank"
    user_field: str = "user"
    rank_query: str = "getUserRank"
    deploy_event: str = "UserRankTagClassCreated"
    tag_class_field: str = "userRankTagClassId"


@dataclass
class AirdropConfig:
    """Method and event names of the AirdropFactory / Airdrop contracts."""

    create_method: str = "createAirdropContract"
    create_event: str = "AirdropCreated"
    address_field: str = "contractAddress"
    init_method: str = "userInit"
    init_event: str = "UserInit"
    users_field: str = "users"
    activate_method: str = "activate"
    activate_event: str = "Activate"
    user_field: str = "user"
    is_initialized_query: str = "isInit"
    is_activated_query: str = "isActivate"


@dataclass
class DeployConfig:
    """Constructor parameters for deploying UserRank and AirdropFactory."""

    tag_class_address: str = ""
    tag_address: str = ""
    plc_address: str = ""
    gds_address: str = ""
    user_rank_plc_fees: list[int] = field(default_factory=lambda: [0] * 10)
    user_rank_gds_fees: list[int] = field(default_factory=lambda: [0] * 10)
    airdrop_plc_fee: int = 0


@dataclass
class ClientConfig:
    """Complete client configuration."""

    # Client
    log_level: str = "info"
    confirmation_timeout: float = 120.0  # seconds
    poll_latency: float = 1.0  # seconds between receipt polls

    # Network
    network: str = "hardhat"
    rpc_url: str = "http://127.0.0.1:8545"
    chain_id: int | None = None
    private_key: str = ""  # loaded from env var RANKDROP_PRIVATE_KEY
    deployments_path: str = "deployments.json"
    artifacts_dir: str = "artifacts"

    # Contracts
    user_rank_address: str = ""
    airdrop_factory_address: str = ""

    user_rank: UserRankConfig = field(default_factory=UserRankConfig)
    airdrop: AirdropConfig = field(default_factory=AirdropConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
