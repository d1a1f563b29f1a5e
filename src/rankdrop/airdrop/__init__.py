"""Airdrop factory, participant client and lifecycle state machine."""

from rankdrop.airdrop.client import AirdropClient
from rankdrop.airdrop.factory import AirdropFactoryClient
from rankdrop.airdrop.lifecycle import UserLifecycleStateMachine

__all__ = ["AirdropClient", "AirdropFactoryClient", "UserLifecycleStateMachine"]
