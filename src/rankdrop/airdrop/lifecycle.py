"""User lifecycle state machine, keyed by (airdrop instance, user address).

Stages only move forward on-chain: Uninitialized -> Initialized -> Activated.
The machine changes state on two inputs only: a decoded UserInit/Activate
event from a confirmed transaction, or an explicit on-chain query.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from eth_utils import to_checksum_address

from rankdrop.errors import LifecycleInvariantViolation
from rankdrop.models.config import AirdropConfig
from rankdrop.models.events import EventRecord
from rankdrop.models.records import ContractInstance, LifecycleStage, UserState

log = logging.getLogger(__name__)

_STAGE_ORDER = {
    LifecycleStage.UNINITIALIZED: 0,
    LifecycleStage.INITIALIZED: 1,
    LifecycleStage.ACTIVATED: 2,
}


def _key(instance: str, address: str) -> tuple[str, str]:
    return to_checksum_address(instance), to_checksum_address(address)


class UserLifecycleStateMachine:
    """Client-side cache of each user's stage on each airdrop instance."""

    def __init__(self, names: AirdropConfig | None = None) -> None:
        self._names = names or AirdropConfig()
        self._states: dict[tuple[str, str], UserState] = {}
        self._instances: set[str] = set()

    def register_instance(self, instance: ContractInstance) -> None:
        """Start tracking a freshly created instance; every address is Uninitialized."""
        addr = to_checksum_address(instance.address)
        self._instances.add(addr)
        for key in [k for k in self._states if k[0] == addr]:
            del self._states[key]
        log.debug("Tracking airdrop instance %s", addr)

    def is_tracked(self, instance: str) -> bool:
        return to_checksum_address(instance) in self._instances

    def state(self, instance: str, address: str) -> UserState:
        """Snapshot of the cached state. Unknown pairs are Uninitialized."""
        key = _key(instance, address)
        cached = self._states.get(key)
        if cached is None:
            return UserState(address=key[1])
        return replace(cached)

    def stage(self, instance: str, address: str) -> LifecycleStage:
        return self.state(instance, address).stage

    def _entry(self, instance: str, address: str) -> UserState:
        key = _key(instance, address)
        if key not in self._states:
            self._states[key] = UserState(address=key[1])
        return self._states[key]

    # ── Event-driven transitions ───────────────────────────

    def apply(self, instance: str, record: EventRecord) -> list[UserState]:
        """Advance state from a confirmed, decoded lifecycle event.

        Returns snapshots of the users whose state the event touched.
        """
        names = self._names
        if record.name == names.init_event:
            users = record.args.get(names.users_field, ())
            if isinstance(users, str):
                users = (users,)
            touched = []
            for user in users:
                entry = self._entry(instance, user)
                entry.class_membership = True
                touched.append(replace(entry))
            log.info("UserInit on %s: %d users initialized", instance, len(touched))
            return touched

        if record.name == names.activate_event:
            user = record.args[names.user_field]
            entry = self._entry(instance, user)
            if not entry.class_membership:
                # The contract only activates initialized users; our cache was stale
                log.debug("Activate for %s with no cached UserInit, marking initialized", user)
            entry.class_membership = True
            entry.activated = True
            log.info("Activate on %s: %s activated", instance, user)
            return [replace(entry)]

        raise ValueError(f"{record.name} is not a lifecycle event")

    # ── Query-driven resync ────────────────────────────────

    def resync(
        self,
        instance: str,
        address: str,
        initialized: bool | None = None,
        activated: bool | None = None,
    ) -> UserState:
        """Overwrite cached flags with on-chain query results.

        A resync does not imply a transition happened locally; it only
        corrects the cache. None leaves a flag as cached.
        """
        current = self.state(instance, address)
        proposed = replace(
            current,
            class_membership=current.class_membership if initialized is None else initialized,
            activated=current.activated if activated is None else activated,
        )
        if proposed.activated and not proposed.class_membership:
            raise LifecycleInvariantViolation(
                f"{address} on {instance} reads as activated but not initialized"
            )
        if _STAGE_ORDER[proposed.stage] < _STAGE_ORDER[current.stage]:
            log.warning(
                "Cached stage for %s on %s was %s, chain reports %s",
                address, instance, current.stage.value, proposed.stage.value,
            )

        entry = self._entry(instance, address)
        entry.class_membership = proposed.class_membership
        entry.activated = proposed.activated
        return replace(entry)

    def snapshot(self) -> list[tuple[str, UserState]]:
        """Every cached (instance, state) pair."""
        return [(inst, replace(state)) for (inst, _), state in self._states.items()]
