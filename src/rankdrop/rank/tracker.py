"""Rank progression tracker for the UserRank contract."""

from __future__ import annotations

import logging

from eth_utils import to_checksum_address

from rankdrop.context import ChainContext
from rankdrop.errors import RankRegressionObserved
from rankdrop.interfaces.pipeline import TransactionExecutor
from rankdrop.models.chain import ContractRef
from rankdrop.models.config import UserRankConfig

log = logging.getLogger(__name__)


class RankProgressionTracker:
    """Per-address rank cache, advanced by upgradeRank() and resynced by getUserRank()."""

    def __init__(
        self,
        ctx: ChainContext,
        pipeline: TransactionExecutor,
        user_rank: ContractRef,
        names: UserRankConfig | None = None,
    ) -> None:
        self._ctx = ctx
        self._pipeline = pipeline
        self._contract = user_rank
        self._names = names or UserRankConfig()
        self._ranks: dict[str, int] = {}

    def cached_rank(self, address: str | None = None) -> int | None:
        return self._ranks.get(to_checksum_address(address or self._ctx.signer))

    async def upgrade(self, address: str | None = None) -> int:
        """Submit upgradeRank() and return the rank decoded from RankChanged.

        upgradeRank() acts on the signer, so ``address`` may only name the
        signer; anything else raises ValueError before submitting. A decoded
        event for another user, or a decoded rank below the cached one,
        raises and leaves the cache alone.
        """
        names = self._names
        signer = to_checksum_address(self._ctx.signer)
        if address is not None and to_checksum_address(address) != signer:
            raise ValueError(f"upgradeRank() acts on the signer {signer}, not {address}")

        record = await self._pipeline.execute(
            self._contract, names.upgrade_method, [], names.rank_event,
        )
        decoded_user = record.args.get(names.user_field)
        if decoded_user and to_checksum_address(decoded_user) != signer:
            log.error("%s reports user %s, signer is %s", names.rank_event, decoded_user, signer)
            raise ValueError(
                f"{names.rank_event} was emitted for {decoded_user}, expected signer {signer}"
            )
        user = signer
        new_rank = int(record.args[names.rank_field])

        cached = self._ranks.get(user)
        if cached is not None and new_rank < cached:
            log.error("Rank regression for %s: cached %d, decoded %d", user, cached, new_rank)
            raise RankRegressionObserved(user, cached, new_rank)

        self._ranks[user] = new_rank
        log.info("Address:%s newRank:%d", user, new_rank)
        return new_rank

    async def current_rank(self, address: str | None = None) -> int:
        """Query getUserRank() and overwrite the cache with the result."""
        user = to_checksum_address(address or self._ctx.signer)
        rank = int(await self._ctx.gateway.call(self._contract, self._names.rank_query, [user]))
        previous = self._ranks.get(user)
        if previous is not None and previous != rank:
            log.warning("Cached rank for %s was %d, chain reports %d", user, previous, rank)
        self._ranks[user] = rank
        log.info("Address:%s Rank:%d", user, rank)
        return rank
