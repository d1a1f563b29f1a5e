"""rankdrop - orchestration client for the UserRank and Airdrop contracts."""

__version__ = "0.1.0"
