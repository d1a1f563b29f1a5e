"""Protocol interfaces for rankdrop components."""

from rankdrop.interfaces.gateway import ChainGateway
from rankdrop.interfaces.pipeline import TransactionExecutor

__all__ = ["ChainGateway", "TransactionExecutor"]
