"""Lifecycle runner and contract deployer against the simulated chain."""

from __future__ import annotations

import json

import pytest

from rankdrop.chain.schemas import AIRDROP_FACTORY, AIRDROP_FACTORY_ABI, USER_RANK, USER_RANK_ABI, Artifact
from rankdrop.config import load_config
from rankdrop.deploy import ContractDeployer, save_deployments
from rankdrop.models.config import DeployConfig
from rankdrop.models.records import LifecycleStage
from rankdrop.runner import LifecycleRunner

from tests.conftest import make_test_config
from tests.factories import GDS_ADDRESS, PLC_ADDRESS, SIGNER, TAG_ADDRESS, TAG_CLASS_ADDRESS
from tests.mocks import USER_RANK_TAG_CLASS_ID, MockGateway


@pytest.fixture
def deploy_params():
    return DeployConfig(
        tag_class_address=TAG_CLASS_ADDRESS,
        tag_address=TAG_ADDRESS,
        plc_address=PLC_ADDRESS,
        gds_address=GDS_ADDRESS,
        airdrop_plc_fee=3,
    )


# ── Runner ─────────────────────────────────────────────────


async def test_full_run():
    gateway = MockGateway()
    runner = LifecycleRunner(make_test_config(), gateway=gateway)

    report = await runner.run()

    assert report.signer == SIGNER
    assert report.rank_after_upgrade == 1
    assert report.rank_queried == 1
    assert report.airdrop_address == gateway.instances[0]
    assert [label for label, _ in report.snapshots] == ["initialized", "activated"]

    initialized, activated = (state for _, state in report.snapshots)
    assert initialized.stage == LifecycleStage.INITIALIZED
    assert activated.stage == LifecycleStage.ACTIVATED
    assert activated.rank == 1

    # rank first, then the airdrop flow
    assert [m for _, m, _ in gateway.submissions] == [
        "upgradeRank", "createAirdropContract", "userInit", "activate",
    ]


async def test_run_without_user_rank_skips_rank():
    gateway = MockGateway()
    runner = LifecycleRunner(make_test_config(user_rank_address=""), gateway=gateway)

    report = await runner.run()

    assert runner.rank is None
    assert report.rank_after_upgrade is None
    assert report.snapshots[-1][1].rank == 0
    assert "upgradeRank" not in [m for _, m, _ in gateway.submissions]


async def test_create_airdrop_needs_factory_address():
    runner = LifecycleRunner(make_test_config(airdrop_factory_address=""), gateway=MockGateway())
    with pytest.raises(ValueError, match="AirdropFactory"):
        await runner.create_airdrop()


async def test_close_closes_gateway():
    gateway = MockGateway()
    runner = LifecycleRunner(make_test_config(), gateway=gateway)
    await runner.close()
    assert gateway.closed


# ── Deployer ───────────────────────────────────────────────


async def test_deploy_all(pipeline, gateway, deploy_params):
    deployer = ContractDeployer(pipeline, deploy_params)

    user_rank, factory = await deployer.deploy_all(
        Artifact(USER_RANK, USER_RANK_ABI, "0x6080"),
        Artifact(AIRDROP_FACTORY, AIRDROP_FACTORY_ABI, "0x6080"),
    )

    assert user_rank.name == USER_RANK
    assert user_rank.tag_class_id == USER_RANK_TAG_CLASS_ID
    assert factory.name == AIRDROP_FACTORY
    assert factory.tag_class_id is None
    assert user_rank.address != factory.address

    rank_args, factory_args = (args for _, _, args in gateway.submissions)
    assert rank_args == [
        TAG_CLASS_ADDRESS, TAG_ADDRESS, PLC_ADDRESS, [0] * 10, GDS_ADDRESS, [0] * 10,
    ]
    assert factory_args == [TAG_CLASS_ADDRESS, TAG_ADDRESS, PLC_ADDRESS, 3]


async def test_deploy_user_rank_without_event_in_abi(pipeline, deploy_params):
    abi = [e for e in USER_RANK_ABI if e.get("name") != "UserRankTagClassCreated"]
    deployed = await ContractDeployer(pipeline, deploy_params).deploy_user_rank(
        Artifact(USER_RANK, abi, "0x6080"),
    )
    assert deployed.tag_class_id is None


async def test_fee_lists_must_match(pipeline, gateway, deploy_params):
    deploy_params.user_rank_gds_fees = [0] * 9
    with pytest.raises(ValueError, match="same length"):
        await ContractDeployer(pipeline, deploy_params).deploy_user_rank(
            Artifact(USER_RANK, USER_RANK_ABI, "0x6080"),
        )
    assert gateway.submissions == []


async def test_save_deployments_merges(tmp_path, pipeline, deploy_params):
    path = tmp_path / "deployments.json"
    path.write_text(json.dumps({"bsc": {"UserRank": {"address": "0x" + "11" * 20}}}))
    deployed = await ContractDeployer(pipeline, deploy_params).deploy_all(
        Artifact(USER_RANK, USER_RANK_ABI, "0x6080"),
        Artifact(AIRDROP_FACTORY, AIRDROP_FACTORY_ABI, "0x6080"),
    )

    save_deployments(path, "hardhat", deployed)

    data = json.loads(path.read_text())
    assert data["bsc"]["UserRank"]["address"] == "0x" + "11" * 20
    assert data["hardhat"]["UserRank"]["address"] == deployed[0].address
    assert data["hardhat"]["UserRank"]["tag_class_id"] == USER_RANK_TAG_CLASS_ID
    assert "tag_class_id" not in data["hardhat"]["AirdropFactory"]


async def test_deployed_addresses_feed_config(tmp_path, monkeypatch, pipeline, deploy_params):
    for name in ("USER_RANK_ADDRESS", "AIRDROP_FACTORY_ADDRESS", "NETWORK"):
        monkeypatch.delenv(f"RANKDROP_{name}", raising=False)
    monkeypatch.chdir(tmp_path)
    deployed = await ContractDeployer(pipeline, deploy_params).deploy_all(
        Artifact(USER_RANK, USER_RANK_ABI, "0x6080"),
        Artifact(AIRDROP_FACTORY, AIRDROP_FACTORY_ABI, "0x6080"),
    )
    save_deployments(tmp_path / "deployments.json", "hardhat", deployed)

    cfg = load_config()

    assert cfg.user_rank_address == deployed[0].address
    assert cfg.airdrop_factory_address == deployed[1].address
