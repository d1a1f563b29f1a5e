"""Shared fixtures for rankdrop tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from rankdrop.airdrop.client import AirdropClient
from rankdrop.airdrop.factory import AirdropFactoryClient
from rankdrop.airdrop.lifecycle import UserLifecycleStateMachine
from rankdrop.chain.pipeline import TransactionPipeline
from rankdrop.chain.schemas import AIRDROP, AIRDROP_FACTORY, USER_RANK, load_abis
from rankdrop.context import ChainContext
from rankdrop.models.config import ClientConfig
from rankdrop.rank.tracker import RankProgressionTracker

from tests.factories import FACTORY_ADDRESS, SIGNER, TEST_PRIVATE_KEY, USER_RANK_ADDRESS
from tests.mocks import MockGateway

EXPLORER_BASE = "https://testnet.bscscan.com"


def bscscan_link(kind: str, id: str, label: str | None = None) -> str:
    """Build an HTML anchor to the block explorer for the report."""
    url = f"{EXPLORER_BASE}/{kind}/{id}"
    text = label or f"{id[:8]}...{id[-4:]}"
    return f'<a href="{url}" target="_blank">{text}</a>'


# ── Report metadata & explorer links ─────────────────────────────


def pytest_configure(config):
    """Add contract info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "in-memory (tier3: BSC Testnet)"
    meta["UserRank Contract"] = USER_RANK_ADDRESS
    meta["AirdropFactory Contract"] = FACTORY_ADDRESS
    meta["Signer"] = SIGNER


def pytest_html_results_summary(prefix, summary, postfix):
    """Inject clickable explorer links into the report summary."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Explorer Links</strong><br/>"
        f'UserRank: {bscscan_link("address", USER_RANK_ADDRESS, USER_RANK_ADDRESS)}<br/>'
        f'Factory: {bscscan_link("address", FACTORY_ADDRESS, FACTORY_ADDRESS)}<br/>'
        f'Signer: {bscscan_link("address", SIGNER, SIGNER)}'
        "</div>"
    )


def make_test_config(**overrides) -> ClientConfig:
    """Build a ClientConfig suitable for testing."""
    defaults = dict(
        network="hardhat",
        rpc_url="http://127.0.0.1:8545",
        chain_id=1337,
        private_key=TEST_PRIVATE_KEY,
        confirmation_timeout=1.0,
        poll_latency=0.01,
        user_rank_address=USER_RANK_ADDRESS,
        airdrop_factory_address=FACTORY_ADDRESS,
        artifacts_dir="/nonexistent-artifacts",
    )
    defaults.update(overrides)
    return ClientConfig(**defaults)


@pytest.fixture
def test_config():
    return make_test_config()


@pytest.fixture
def gateway():
    return MockGateway()


@pytest.fixture
def ctx(gateway):
    """ChainContext over the mock gateway with the built-in ABIs."""
    return ChainContext(gateway=gateway, abis=load_abis(), confirmation_timeout=1.0)


@pytest.fixture
def pipeline(ctx):
    return TransactionPipeline(ctx)


@pytest.fixture
def lifecycle():
    return UserLifecycleStateMachine()


@pytest.fixture
def factory_client(pipeline, lifecycle):
    return AirdropFactoryClient(pipeline, lifecycle)


@pytest.fixture
def airdrop_client(ctx, pipeline, lifecycle):
    return AirdropClient(ctx, pipeline, lifecycle)


@pytest.fixture
def rank_tracker(ctx, pipeline):
    return RankProgressionTracker(ctx, pipeline, ctx.contract(USER_RANK, USER_RANK_ADDRESS))


@pytest.fixture
def factory_ref(ctx):
    return ctx.contract(AIRDROP_FACTORY, FACTORY_ADDRESS)


@pytest.fixture
async def instance(factory_client, factory_ref, ctx):
    """A freshly created airdrop instance."""
    return await factory_client.create_instance(
        factory_ref, "createAirdropContract", "AirdropCreated", instance_abi=ctx.abis[AIRDROP],
    )
