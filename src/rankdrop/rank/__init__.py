"""UserRank progression tracking."""

from rankdrop.rank.tracker import RankProgressionTracker

__all__ = ["RankProgressionTracker"]
