"""User lifecycle: state machine transitions and the Airdrop client."""

from __future__ import annotations

import pytest

from rankdrop.errors import LifecycleInvariantViolation, TransactionReverted
from rankdrop.models.events import EventRecord
from rankdrop.models.records import LifecycleStage

from tests.factories import SIGNER, USER_B, USER_C, derived_address

INSTANCE = derived_address("airdrop-x")


def _record(name, **args):
    return EventRecord(name=name, address=INSTANCE, args=args, log_index=0, tx_hash="0x01")


# ── State machine ──────────────────────────────────────────


class TestStateMachine:
    def test_unknown_pair_is_uninitialized(self, lifecycle):
        state = lifecycle.state(INSTANCE, SIGNER)
        assert state.stage == LifecycleStage.UNINITIALIZED
        assert state.address == SIGNER

    def test_user_init_marks_every_listed_user(self, lifecycle):
        touched = lifecycle.apply(INSTANCE, _record("UserInit", users=(USER_B, USER_C)))

        assert [s.address for s in touched] == [USER_B, USER_C]
        assert lifecycle.stage(INSTANCE, USER_B) == LifecycleStage.INITIALIZED
        assert lifecycle.stage(INSTANCE, USER_C) == LifecycleStage.INITIALIZED
        assert lifecycle.stage(INSTANCE, SIGNER) == LifecycleStage.UNINITIALIZED

    def test_activate_after_init(self, lifecycle):
        lifecycle.apply(INSTANCE, _record("UserInit", users=(SIGNER,)))
        (state,) = lifecycle.apply(INSTANCE, _record("Activate", tagClassId=5, user=SIGNER))

        assert state.activated and state.class_membership
        assert lifecycle.stage(INSTANCE, SIGNER) == LifecycleStage.ACTIVATED

    def test_activate_without_cached_init_implies_membership(self, lifecycle):
        (state,) = lifecycle.apply(INSTANCE, _record("Activate", tagClassId=5, user=USER_B))
        assert state.class_membership is True

    def test_unrelated_event_is_rejected(self, lifecycle):
        with pytest.raises(ValueError, match="not a lifecycle event"):
            lifecycle.apply(INSTANCE, _record("RankChanged", user=SIGNER, newRank=1))

    def test_state_is_a_copy(self, lifecycle):
        lifecycle.apply(INSTANCE, _record("UserInit", users=(SIGNER,)))
        state = lifecycle.state(INSTANCE, SIGNER)
        state.activated = True
        assert lifecycle.stage(INSTANCE, SIGNER) == LifecycleStage.INITIALIZED

    def test_keys_are_case_insensitive(self, lifecycle):
        lifecycle.apply(INSTANCE, _record("UserInit", users=(SIGNER.lower(),)))
        assert lifecycle.stage(INSTANCE.lower(), SIGNER) == LifecycleStage.INITIALIZED

    def test_instances_are_independent(self, lifecycle):
        other = derived_address("airdrop-y")
        lifecycle.apply(INSTANCE, _record("UserInit", users=(SIGNER,)))
        assert lifecycle.stage(other, SIGNER) == LifecycleStage.UNINITIALIZED

    def test_resync_rejects_activated_without_init(self, lifecycle):
        with pytest.raises(LifecycleInvariantViolation):
            lifecycle.resync(INSTANCE, SIGNER, initialized=False, activated=True)
        assert lifecycle.stage(INSTANCE, SIGNER) == LifecycleStage.UNINITIALIZED

    def test_resync_overwrites_stale_cache(self, lifecycle, caplog):
        lifecycle.apply(INSTANCE, _record("UserInit", users=(SIGNER,)))
        with caplog.at_level("WARNING"):
            state = lifecycle.resync(INSTANCE, SIGNER, initialized=False)

        assert state.stage == LifecycleStage.UNINITIALIZED
        assert "chain reports uninitialized" in caplog.text

    def test_resync_none_keeps_flag(self, lifecycle):
        lifecycle.resync(INSTANCE, SIGNER, initialized=True)
        state = lifecycle.resync(INSTANCE, SIGNER, activated=None)
        assert state.class_membership is True


# ── Airdrop client against the simulated chain ─────────────


async def test_init_then_activate(airdrop_client, instance, lifecycle):
    states = await airdrop_client.init_users(instance, [SIGNER])
    assert [s.stage for s in states] == [LifecycleStage.INITIALIZED]

    assert await airdrop_client.is_initialized(instance) is True
    assert await airdrop_client.is_activated(instance) is False
    assert lifecycle.stage(instance.address, SIGNER) == LifecycleStage.INITIALIZED

    state = await airdrop_client.activate(instance)
    assert state.stage == LifecycleStage.ACTIVATED
    assert await airdrop_client.is_activated(instance) is True


async def test_activate_before_init_reverts(airdrop_client, instance, lifecycle):
    with pytest.raises(TransactionReverted) as info:
        await airdrop_client.activate(instance)

    assert info.value.method == "activate"
    assert lifecycle.stage(instance.address, SIGNER) == LifecycleStage.UNINITIALIZED


async def test_init_users_other_addresses(airdrop_client, instance, gateway):
    await airdrop_client.init_users(instance, [USER_B.lower(), USER_C])

    _, method, args = gateway.submissions[-1]
    assert method == "userInit"
    assert args == [[USER_B, USER_C]]
    assert await airdrop_client.is_initialized(instance, USER_B) is True
    assert await airdrop_client.is_initialized(instance, SIGNER) is False


async def test_client_accepts_plain_address(airdrop_client, instance, lifecycle):
    await airdrop_client.init_users(instance.address, [SIGNER])
    assert lifecycle.stage(instance.address, SIGNER) == LifecycleStage.INITIALIZED


async def test_refresh_reads_chain_state(airdrop_client, instance, gateway, lifecycle):
    # state changed on-chain by someone else; the cache has not seen it
    gateway.initialized[instance.address] = {SIGNER}
    gateway.activated[instance.address] = {SIGNER}
    assert lifecycle.stage(instance.address, SIGNER) == LifecycleStage.UNINITIALIZED

    state = await airdrop_client.refresh(instance)
    assert state.stage == LifecycleStage.ACTIVATED
    assert [c[1] for c in gateway.view_calls] == ["isInit", "isActivate"]


async def test_activated_implies_initialized_in_every_snapshot(airdrop_client, instance, lifecycle):
    await airdrop_client.init_users(instance, [SIGNER, USER_B])
    await airdrop_client.activate(instance)
    await airdrop_client.refresh(instance, USER_C)

    for _, state in lifecycle.snapshot():
        assert not state.activated or state.class_membership
