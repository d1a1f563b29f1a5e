"""EVM integration: gateway, schemas, decoder and transaction pipeline."""

from rankdrop.chain.gateway import Web3ChainGateway
from rankdrop.chain.pipeline import TransactionPipeline

__all__ = ["Web3ChainGateway", "TransactionPipeline"]
