"""Configuration loading: TOML file + environment variables + deployments.json."""

from __future__ import annotations

import json
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from rankdrop.chain.schemas import AIRDROP_FACTORY, USER_RANK
from rankdrop.models.config import (
    AirdropConfig,
    ClientConfig,
    DeployConfig,
    UserRankConfig,
)

# name -> (rpc_url, chain_id), from the Hardhat network table
NETWORKS: dict[str, tuple[str, int]] = {
    "hardhat": ("http://127.0.0.1:8545", 1337),
    "bsc": ("https://bsc-dataseed.binance.org/", 56),
    "bscTestnet": ("https://data-seed-prebsc-1-s1.binance.org:8545/", 97),
    "rinkeby": ("", 4),
}


def _override(target: object, section: dict) -> None:
    """Copy keys present in ``section`` onto matching dataclass attributes."""
    for key, value in section.items():
        if hasattr(target, key) and value is not None:
            current = getattr(target, key)
            if isinstance(current, list):
                setattr(target, key, [int(v) for v in value])
            elif isinstance(current, int) and not isinstance(current, bool):
                setattr(target, key, int(value))
            else:
                setattr(target, key, str(value))


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "RANKDROP_",
) -> ClientConfig:
    """Load client configuration from TOML file, env vars, and deployments.json.

    Priority (highest wins):
        1. Environment variables (RANKDROP_PRIVATE_KEY, etc.)
        2. TOML config file
        3. Network table defaults for rpc_url / chain_id
        4. Defaults from ClientConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = ClientConfig()

    # ── Client section ─────────────────────────────────────
    client = raw.get("client", {})
    if v := client.get("log_level"):
        cfg.log_level = str(v)
    if v := client.get("confirmation_timeout"):
        cfg.confirmation_timeout = float(v)
    if v := client.get("poll_latency"):
        cfg.poll_latency = float(v)

    # ── Network section ────────────────────────────────────
    network = raw.get("network", {})
    if v := network.get("network"):
        cfg.network = str(v)
    if v := network.get("rpc_url"):
        cfg.rpc_url = str(v)
    elif cfg.network in NETWORKS and NETWORKS[cfg.network][0]:
        cfg.rpc_url = NETWORKS[cfg.network][0]
    if v := network.get("chain_id"):
        cfg.chain_id = int(v)
    if v := network.get("private_key"):
        cfg.private_key = str(v)
    if v := network.get("deployments_path"):
        cfg.deployments_path = str(v)
    if v := network.get("artifacts_dir"):
        cfg.artifacts_dir = str(v)

    # ── Contracts section ──────────────────────────────────
    contracts = raw.get("contracts", {})
    if v := contracts.get("user_rank_address"):
        cfg.user_rank_address = str(v)
    if v := contracts.get("airdrop_factory_address"):
        cfg.airdrop_factory_address = str(v)

    # ── Contract naming and deploy parameters ──────────────
    cfg.user_rank = UserRankConfig()
    _override(cfg.user_rank, raw.get("user_rank", {}))
    cfg.airdrop = AirdropConfig()
    _override(cfg.airdrop, raw.get("airdrop", {}))
    cfg.deploy = DeployConfig()
    _override(cfg.deploy, raw.get("deploy", {}))

    # ── Environment variable overrides (highest priority) ──
    if key := os.environ.get(f"{env_prefix}PRIVATE_KEY"):
        cfg.private_key = key
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.network = net
        if not network.get("rpc_url") and net in NETWORKS and NETWORKS[net][0]:
            cfg.rpc_url = NETWORKS[net][0]
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if chain_id := os.environ.get(f"{env_prefix}CHAIN_ID"):
        cfg.chain_id = int(chain_id)
    if addr := os.environ.get(f"{env_prefix}USER_RANK_ADDRESS"):
        cfg.user_rank_address = addr
    if addr := os.environ.get(f"{env_prefix}AIRDROP_FACTORY_ADDRESS"):
        cfg.airdrop_factory_address = addr

    if cfg.chain_id is None and cfg.network in NETWORKS:
        cfg.chain_id = NETWORKS[cfg.network][1]

    # Load contract addresses from deployments.json if not explicitly set
    if not (cfg.user_rank_address and cfg.airdrop_factory_address):
        _load_deployments(cfg, cfg.deployments_path)

    # Expand ~ in paths
    cfg.artifacts_dir = str(Path(cfg.artifacts_dir).expanduser())

    return cfg


def _load_deployments(cfg: ClientConfig, deployments_path: str) -> None:
    """Load contract addresses for the configured network from deployments.json."""
    p = Path(deployments_path).expanduser()
    if not p.is_absolute():
        # Try relative to CWD
        p = Path.cwd() / p
    if not p.exists():
        return

    with open(p) as f:
        data = json.load(f)

    section = data.get(cfg.network, {})
    if not cfg.user_rank_address:
        if addr := section.get(USER_RANK, {}).get("address"):
            cfg.user_rank_address = addr
    if not cfg.airdrop_factory_address:
        if addr := section.get(AIRDROP_FACTORY, {}).get("address"):
            cfg.airdrop_factory_address = addr
